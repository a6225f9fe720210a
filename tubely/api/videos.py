"""
Video record endpoints.

Records are created empty and get media attached through the upload
endpoints. Reads resolve stored references into URLs on every request.
"""
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from tubely.api.deps import get_ingestion_service, present_video
from tubely.api.uploads import ERROR_RESPONSES, parse_video_id
from tubely.auth.dependencies import get_current_principal
from tubely.database import get_db
from tubely.repositories.video_repository import VideoRepository
from tubely.schemas.video import VideoCreate, VideoResponse
from tubely.services.ingest_service import IngestionService

router = APIRouter()


@router.post("", response_model=VideoResponse, status_code=status.HTTP_201_CREATED, responses=ERROR_RESPONSES)
async def create_video(
    payload: VideoCreate,
    db: AsyncSession = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
    service: IngestionService = Depends(get_ingestion_service),
):
    """Create a draft video owned by the caller."""
    await VideoRepository.ensure_user(db, principal_id)
    video = await VideoRepository.create_video(
        db,
        user_id=principal_id,
        title=payload.title,
        description=payload.description,
    )
    return await present_video(service, video)


@router.get("", response_model=List[VideoResponse], responses=ERROR_RESPONSES)
async def list_videos(
    db: AsyncSession = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
    service: IngestionService = Depends(get_ingestion_service),
):
    """List the caller's videos, newest first."""
    videos = await VideoRepository.list_videos_for_user(db, principal_id)
    return [await present_video(service, video) for video in videos]


@router.get("/{video_id}", response_model=VideoResponse, responses=ERROR_RESPONSES)
async def get_video(
    video_id: str,
    db: AsyncSession = Depends(get_db),
    principal_id: str = Depends(get_current_principal),
    service: IngestionService = Depends(get_ingestion_service),
):
    """Get one of the caller's videos."""
    video = await service.get_owned_video(db, principal_id, parse_video_id(video_id))
    return await present_video(service, video)
