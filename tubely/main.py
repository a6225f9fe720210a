"""
FastAPI application entry point.

Run with:
    uvicorn --factory tubely.main:create_app

Everything stateful (settings, DB engine, S3 client, media tools, the
ingestion service) is built in create_app() and hung off app.state; tests
pass their own collaborators in.
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from tubely.api.router import api_router
from tubely.auth.dependencies import build_authenticator
from tubely.auth.tokens import Authenticator
from tubely.config import Settings
from tubely.database import create_engine, create_session_factory, init_db
from tubely.errors import TubelyError
from tubely.media.inspector import FFprobeInspector, MediaInspector
from tubely.media.normalizer import FFmpegNormalizer, MediaNormalizer
from tubely.media.staging import StagingStore
from tubely.middleware.metrics_middleware import MetricsMiddleware
from tubely.services.ingest_service import IngestionService
from tubely.storage.backends import S3Backend, build_backend
from tubely.storage.s3_client import S3Client
from tubely.utils.logging import configure_logging

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


async def handle_tubely_error(request: Request, exc: TubelyError) -> JSONResponse:
    """Render a pipeline error; internal detail is logged, never returned."""
    extra = {"event": "request_failed", "code": exc.code, "stage": exc.stage, "path": request.url.path}
    if exc.detail:
        extra["detail"] = exc.detail
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}", extra=extra, exc_info=exc)
    else:
        logger.info(f"{exc.code}: {exc.message}", extra=extra)

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def create_app(
    settings: Optional[Settings] = None,
    *,
    s3_client: Optional[S3Client] = None,
    inspector: Optional[MediaInspector] = None,
    normalizer: Optional[MediaNormalizer] = None,
    authenticator: Optional[Authenticator] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Defaults to Settings() loaded from the environment
        s3_client: Object store client (built from settings if omitted)
        inspector: Media inspector (ffprobe if omitted)
        normalizer: Media normalizer (ffmpeg if omitted)
        authenticator: Bearer token authenticator (per AUTH_PROVIDER if omitted)
    """
    settings = settings or Settings()
    engine = create_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for startup/shutdown events.
        - Startup: configure logging, create tables
        - Shutdown: dispose the engine
        """
        configure_logging(settings.service_name, settings.log_level)
        await init_db(engine)
        yield
        await engine.dispose()

    app = FastAPI(
        title="Tubely API",
        description="Video and thumbnail ingestion for Tubely",
        version=VERSION,
        lifespan=lifespan,
    )

    s3_client = s3_client or S3Client(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.authenticator = authenticator or build_authenticator(settings)
    app.state.ingestion_service = IngestionService(
        settings=settings,
        staging=StagingStore(settings),
        inspector=inspector or FFprobeInspector(settings),
        normalizer=normalizer or FFmpegNormalizer(settings),
        video_backend=build_backend(settings, "video", s3_client),
        thumbnail_backend=build_backend(settings, "thumbnail", s3_client),
        resolver=S3Backend(settings, s3_client),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Metrics middleware (must be after CORS to track all requests)
    app.add_middleware(MetricsMiddleware)

    app.add_exception_handler(TubelyError, handle_tubely_error)
    app.include_router(api_router, prefix="/api")

    os.makedirs(settings.assets_root, exist_ok=True)
    app.mount("/assets", StaticFiles(directory=settings.assets_root), name="assets")

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "Tubely API",
            "version": VERSION,
            "environment": settings.environment,
        }

    @app.get("/metrics")
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app
