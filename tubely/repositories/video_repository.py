"""
Repository for video records (the metadata store).
"""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tubely.errors import PersistenceFailed
from tubely.models.user import User
from tubely.models.video import Video

logger = logging.getLogger(__name__)


class VideoRepository:
    """Repository for video database operations."""

    @staticmethod
    async def get_video(db: AsyncSession, video_id: str) -> Optional[Video]:
        """Get a video by ID, or None if it doesn't exist."""
        result = await db.execute(select(Video).where(Video.id == video_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def update_video(db: AsyncSession, video: Video) -> Video:
        """
        Commit pending changes to a video.

        Raises:
            PersistenceFailed: If the commit fails (the session is rolled back)
        """
        video_id = video.id
        try:
            db.add(video)
            await db.commit()
            await db.refresh(video)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to update video {video_id}: {e}")
            raise PersistenceFailed(detail=str(e)) from e
        return video

    @staticmethod
    async def end_read(db: AsyncSession) -> None:
        """
        Close the read transaction so its pooled connection is returned.

        Loaded records stay usable (sessions don't expire on commit) and are
        written back later through update_video().
        """
        try:
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to end read transaction: {e}")
            raise PersistenceFailed(detail=str(e)) from e

    @staticmethod
    async def create_video(
        db: AsyncSession,
        user_id: str,
        title: str,
        description: Optional[str] = None
    ) -> Video:
        """Create a draft video record with no media attached."""
        video = Video(user_id=user_id, title=title, description=description)
        db.add(video)
        await db.commit()
        await db.refresh(video)
        return video

    @staticmethod
    async def list_videos_for_user(db: AsyncSession, user_id: str) -> List[Video]:
        """All videos owned by a user, newest first."""
        result = await db.execute(
            select(Video)
            .where(Video.user_id == user_id)
            .order_by(Video.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def ensure_user(db: AsyncSession, user_id: str, email: Optional[str] = None) -> User:
        """
        Get the user row for a principal, creating it on first sight.

        Tokens are issued elsewhere, so the first authenticated request from
        a principal is when we learn about it.
        """
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            user = User(id=user_id, email=email or f"{user_id}@users.tubely.local")
            db.add(user)
            await db.commit()
            await db.refresh(user)
        return user
