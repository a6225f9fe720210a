"""
Test configuration and fixtures.
Uses in-memory SQLite, fake media tools and a fake boto3 client, so no
database server, ffmpeg or network is needed.
"""
import uuid as uuid_module

import pytest
from typing import AsyncGenerator

from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from tubely.auth.tokens import make_access_token
from tubely.config import Settings
from tubely.database import get_db, init_db
from tubely.main import create_app
from tubely.models.user import User
from tubely.models.video import Video
from tubely.services.ingest_service import IngestionService
from tubely.storage.s3_client import S3Client

from tests.fakes import TEST_BUCKET, FakeBotoClient, FakeInspector, FakeNormalizer, build_service


@pytest.fixture
def staging_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def assets_dir(tmp_path):
    path = tmp_path / "assets"
    path.mkdir()
    return path


@pytest.fixture
def settings(staging_dir, assets_dir) -> Settings:
    """Settings for tests; use settings.model_copy(update=...) to vary."""
    return Settings(
        _env_file=None,
        environment="test",
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret="test-secret",
        s3_bucket=TEST_BUCKET,
        s3_region="us-east-1",
        video_storage="s3",
        video_url_mode="signed",
        thumbnail_storage="inline",
        assets_root=str(assets_dir),
        assets_base_url="http://test/assets",
        staging_dir=str(staging_dir),
        staging_chunk_size=64 * 1024,
        max_video_upload_bytes=8 * 1024 * 1024,
        max_thumbnail_upload_bytes=1024 * 1024,
    )


@pytest.fixture
def boto_client() -> FakeBotoClient:
    return FakeBotoClient()


@pytest.fixture
def s3_client(settings, boto_client) -> S3Client:
    return S3Client(settings, client=boto_client)


@pytest.fixture
def inspector() -> FakeInspector:
    return FakeInspector("16:9")


@pytest.fixture
def normalizer() -> FakeNormalizer:
    return FakeNormalizer()


@pytest.fixture
def service(settings, s3_client, inspector, normalizer) -> IngestionService:
    return build_service(settings, s3_client, inspector, normalizer)


@pytest.fixture
async def app(settings, s3_client, inspector, normalizer) -> AsyncGenerator[FastAPI, None]:
    """Application wired to the fakes, with tables created."""
    app = create_app(settings, s3_client=s3_client, inspector=inspector, normalizer=normalizer)
    await init_db(app.state.engine)
    yield app
    await app.state.engine.dispose()


@pytest.fixture
async def db_session(app: FastAPI) -> AsyncGenerator[AsyncSession, None]:
    """Session on the app's database."""
    async with app.state.session_factory() as session:
        yield session


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user."""
    user = User(id=str(uuid_module.uuid4()), email="owner@example.com")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    """Create a user who owns nothing."""
    user = User(id=str(uuid_module.uuid4()), email="other@example.com")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def test_video(db_session: AsyncSession, test_user: User) -> Video:
    """Create an empty video owned by test_user."""
    video = Video(id=str(uuid_module.uuid4()), user_id=test_user.id, title="Boots on the ground")
    db_session.add(video)
    await db_session.commit()
    await db_session.refresh(video)
    return video


def use_session(app: FastAPI, db_session: AsyncSession) -> None:
    """Route handlers share the test's session."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
async def client(
    app: FastAPI, settings: Settings, db_session: AsyncSession, test_user: User
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client authenticated as test_user."""
    use_session(app, db_session)
    token = make_access_token(settings, test_user.id)
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": f"Bearer {token}"},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def anon_client(app: FastAPI, db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client without credentials."""
    use_session(app, db_session)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
