"""
Upload endpoints for video media.

1. POST /thumbnail_upload/{video_id} - multipart field "thumbnail" (image/jpeg, image/png)
2. POST /video_upload/{video_id} - multipart field "video" (video/mp4)

The multipart body is parsed inside the handler, after the ID, the token,
ownership and the declared Content-Length have been checked. The raw body is
also capped while it streams in, so a chunked request without a
Content-Length can't spool more than the limit either.

Security:
- All endpoints require a bearer token
- Only the owner of a video can attach media to it
"""
import uuid
from typing import AsyncGenerator

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import MultiPartException, MultiPartParser

from tubely.api.deps import get_ingestion_service, present_video
from tubely.auth.dependencies import get_current_principal
from tubely.database import get_db
from tubely.errors import BadRequest, PayloadTooLarge
from tubely.schemas.video import ErrorResponse, VideoResponse
from tubely.services.ingest_service import IngestionService, MediaKind

router = APIRouter()

# Slack for multipart boundaries and part headers on top of the file itself
MULTIPART_OVERHEAD = 64 * 1024

ERROR_RESPONSES = {
    status: {"model": ErrorResponse}
    for status in (400, 401, 403, 404, 413, 415, 422, 500, 502)
}


def parse_video_id(raw: str) -> str:
    try:
        return str(uuid.UUID(raw))
    except ValueError:
        raise BadRequest("Invalid ID")


def check_content_length(request: Request, limit: int) -> None:
    """Reject early when the declared body size already exceeds the limit."""
    declared = request.headers.get("content-length")
    if declared is None:
        return
    try:
        size = int(declared)
    except ValueError:
        raise BadRequest("Invalid Content-Length")
    if size > limit + MULTIPART_OVERHEAD:
        raise PayloadTooLarge()


async def capped_body(request: Request, max_bytes: int) -> AsyncGenerator[bytes, None]:
    """
    Yield the raw request body, refusing more than ``max_bytes``.

    Applies to chunked requests too, where there is no Content-Length to
    check up front.
    """
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > max_bytes:
            raise PayloadTooLarge()
        yield chunk


async def parse_upload_form(request: Request, max_bytes: int) -> FormData:
    """Parse a multipart body of at most ``max_bytes`` holding a single file."""
    content_type = request.headers.get("content-type", "")
    if content_type.split(";", 1)[0].strip().lower() != "multipart/form-data":
        raise BadRequest("Expected a multipart/form-data body")

    parser = MultiPartParser(request.headers, capped_body(request, max_bytes), max_files=1)
    try:
        return await parser.parse()
    except MultiPartException as e:
        raise BadRequest(e.message)


async def _handle_upload(
    request: Request,
    video_id: str,
    kind: MediaKind,
    db: AsyncSession,
    principal_id: str,
    service: IngestionService,
) -> VideoResponse:
    video_id = parse_video_id(video_id)
    # Owner and size checks come before a single body byte is read
    await service.authorize_upload(db, principal_id, video_id)
    limit = service.settings.upload_limit(kind.value)
    check_content_length(request, limit)

    form = await parse_upload_form(request, limit + MULTIPART_OVERHEAD)
    try:
        upload = form.get(kind.value)
        if not isinstance(upload, UploadFile):
            raise BadRequest(f"Couldn't get the {kind.value} from form field '{kind.value}'")

        video = await service.ingest(
            db,
            principal_id=principal_id,
            video_id=video_id,
            stream=upload,
            content_type=upload.content_type,
            kind=kind,
        )
    finally:
        await form.close()

    return await present_video(service, video)


@router.post("/thumbnail_upload/{video_id}", response_model=VideoResponse, responses=ERROR_RESPONSES)
async def upload_thumbnail(
    video_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
    service: IngestionService = Depends(get_ingestion_service),
):
    """
    Attach a thumbnail image to a video.

    Stored inline, on the asset filesystem, or in the bucket depending on
    THUMBNAIL_STORAGE.
    """
    return await _handle_upload(request, video_id, MediaKind.THUMBNAIL, db, principal_id, service)


@router.post("/video_upload/{video_id}", response_model=VideoResponse, responses=ERROR_RESPONSES)
async def upload_video(
    video_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
    service: IngestionService = Depends(get_ingestion_service),
):
    """
    Attach an MP4 video to a video record.

    The upload is probed, rewritten for fast start and stored under
    landscape/, portrait/ or other/ depending on its aspect ratio.
    """
    return await _handle_upload(request, video_id, MediaKind.VIDEO, db, principal_id, service)
