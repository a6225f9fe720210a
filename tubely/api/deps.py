"""
Shared API dependencies and response helpers.
"""
from fastapi import Request

from tubely.models.video import Video
from tubely.schemas.video import VideoResponse
from tubely.services.ingest_service import IngestionService


def get_ingestion_service(request: Request) -> IngestionService:
    """The ingestion service built in create_app()."""
    return request.app.state.ingestion_service


async def present_video(service: IngestionService, video: Video) -> VideoResponse:
    """Build the response for a record, resolving media references for this read."""
    thumbnail_url, video_url = await service.resolve_urls(video)
    response = VideoResponse.model_validate(video)
    return response.model_copy(update={"thumbnail_url": thumbnail_url, "video_url": video_url})
