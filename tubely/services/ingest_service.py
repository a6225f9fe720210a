"""
Media ingestion orchestrator.

Video flow:
1. Validate the declared content type, load the owned video record and end
   the read transaction
2. Stage the upload to a temp file (size-capped)
3. Probe the staged file for its aspect ratio
4. Rewrite the container for fast start into a second staged file
5. Derive a classified key and store the normalized bytes
6. Point the record's video_url at the stored reference

Thumbnail flow: validate, load, read into memory (size-capped), store via the
configured backend, point thumbnail_url at the reference.

The record is only mutated once the artifact is stored. Every staged file is
registered on an ExitStack as soon as it exists, so it is removed on success,
on error and on cancellation alike. Nothing is retried.
"""
import asyncio
import enum
import logging
import time
from contextlib import ExitStack
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from tubely.config import Settings
from tubely.errors import (
    BadRequest,
    Forbidden,
    NormalizeFailed,
    NotFound,
    PersistenceFailed,
    StagingFailed,
    TubelyError,
    UnsupportedMediaType,
)
from tubely.media.inspector import MediaInspector
from tubely.media.normalizer import MediaNormalizer
from tubely.media.staging import AsyncReadable, StagingStore, read_limited
from tubely.models.video import Video
from tubely.repositories.video_repository import VideoRepository
from tubely.storage.backends import StorageBackend
from tubely.storage.keys import derive_key
from tubely.utils.logging import log_ingest_started, log_ingest_completed, log_ingest_failed
from tubely.utils.metrics import ingest_stage_duration_seconds, ingested_bytes_total, ingestions_total

logger = logging.getLogger(__name__)

THUMBNAIL_PREFIX = "thumbnails"


class MediaKind(str, enum.Enum):
    """Kind of media being ingested."""
    VIDEO = "video"
    THUMBNAIL = "thumbnail"


# Allowed content types per media kind
ALLOWED_CONTENT_TYPES = {
    MediaKind.THUMBNAIL: frozenset({"image/jpeg", "image/png"}),
    MediaKind.VIDEO: frozenset({"video/mp4"}),
}


def parse_media_type(raw: Optional[str]) -> str:
    """
    Normalize a Content-Type header value to ``type/subtype``.

    Parameters (``; charset=...``) are dropped and the result is lower-cased.

    Raises:
        BadRequest: If the value is missing or not of the form type/subtype
    """
    if not raw:
        raise BadRequest("No Content-Type specified")
    media_type = raw.split(";", 1)[0].strip().lower()
    main, sep, sub = media_type.partition("/")
    if not sep or not main or not sub or "/" in sub or " " in media_type:
        raise BadRequest("Couldn't parse Content-Type")
    return media_type


def validate_content_type(kind: MediaKind, raw_content_type: Optional[str]) -> str:
    """
    Check the declared content type against the kind's allow-list.

    Returns:
        The normalized media type

    Raises:
        BadRequest: If the content type can't be parsed
        UnsupportedMediaType: If it isn't allowed for this kind
    """
    media_type = parse_media_type(raw_content_type)
    allowed = ALLOWED_CONTENT_TYPES[kind]
    if media_type not in allowed:
        raise UnsupportedMediaType(
            f"Unsupported {kind.value} type '{media_type}'. Allowed: {', '.join(sorted(allowed))}"
        )
    return media_type


class IngestionService:
    """Sequences staging, inspection, normalization, storage and persistence."""

    def __init__(
        self,
        settings: Settings,
        staging: StagingStore,
        inspector: MediaInspector,
        normalizer: MediaNormalizer,
        video_backend: StorageBackend,
        thumbnail_backend: StorageBackend,
        resolver: StorageBackend,
    ):
        self.settings = settings
        self.staging = staging
        self.inspector = inspector
        self.normalizer = normalizer
        self.video_backend = video_backend
        self.thumbnail_backend = thumbnail_backend
        self.resolver = resolver

    async def ingest(
        self,
        db: AsyncSession,
        principal_id: str,
        video_id: str,
        stream: AsyncReadable,
        content_type: Optional[str],
        kind: MediaKind,
    ) -> Video:
        """
        Ingest one upload and attach it to a video record.

        Args:
            db: Database session
            principal_id: Authenticated user ID
            video_id: Target video record ID
            stream: Upload body (async read)
            content_type: Declared Content-Type of the upload
            kind: video or thumbnail

        Returns:
            The updated Video

        Raises:
            TubelyError: See tubely.errors; nothing is mutated on failure
        """
        kind = MediaKind(kind)
        started = time.monotonic()
        log_ingest_started(logger, video_id=video_id, user_id=principal_id, kind=kind.value, content_type=content_type)

        try:
            media_type = validate_content_type(kind, content_type)
            video = await self.authorize_upload(db, principal_id, video_id)
            limit = self.settings.upload_limit(kind.value)

            if kind is MediaKind.VIDEO:
                reference = await self._store_video(stream, media_type, limit)
                video.video_url = reference
            else:
                reference = await self._store_thumbnail(stream, media_type, limit)
                video.thumbnail_url = reference

            try:
                with ingest_stage_duration_seconds.labels(stage="persist").time():
                    video = await VideoRepository.update_video(db, video)
            except PersistenceFailed:
                # The artifact is stored but nothing points at it
                logger.error(
                    f"Stored {kind.value} for video {video_id} but couldn't record it; "
                    f"dangling reference: {_loggable(reference)}"
                )
                raise

        except TubelyError as e:
            ingestions_total.labels(kind=kind.value, outcome="failed").inc()
            log_ingest_failed(
                logger,
                video_id=video_id,
                user_id=principal_id,
                kind=kind.value,
                error=e,
                duration_ms=(time.monotonic() - started) * 1000,
            )
            raise

        ingestions_total.labels(kind=kind.value, outcome="success").inc()
        log_ingest_completed(
            logger,
            video_id=video_id,
            user_id=principal_id,
            kind=kind.value,
            duration_ms=(time.monotonic() - started) * 1000,
            reference=reference,
        )
        return video

    async def ingest_video(self, db, principal_id, video_id, stream, content_type) -> Video:
        return await self.ingest(db, principal_id, video_id, stream, content_type, MediaKind.VIDEO)

    async def ingest_thumbnail(self, db, principal_id, video_id, stream, content_type) -> Video:
        return await self.ingest(db, principal_id, video_id, stream, content_type, MediaKind.THUMBNAIL)

    async def get_owned_video(self, db: AsyncSession, principal_id: str, video_id: str) -> Video:
        """Load a video the principal owns (NotFound / Forbidden otherwise)."""
        return await self._load_owned_video(db, principal_id, video_id)

    async def authorize_upload(self, db: AsyncSession, principal_id: str, video_id: str) -> Video:
        """
        Check the principal may attach media to a video, before any upload
        byte is read.

        The read transaction is ended straight away so no pooled connection is
        held while the body streams in or the media tools run.
        """
        video = await self._load_owned_video(db, principal_id, video_id)
        await VideoRepository.end_read(db)
        return video

    async def resolve_urls(self, video: Video) -> Tuple[Optional[str], Optional[str]]:
        """
        Client-usable (thumbnail_url, video_url) for a record.

        Computed on every read; the record itself is left untouched so a
        signed URL is never written back.
        """
        thumbnail_url = await self.resolver.resolve(video.thumbnail_url)
        video_url = await self.resolver.resolve(video.video_url)
        return thumbnail_url, video_url

    async def _load_owned_video(self, db: AsyncSession, principal_id: str, video_id: str) -> Video:
        video = await VideoRepository.get_video(db, video_id)
        if video is None:
            raise NotFound(f"Video {video_id} not found")
        if video.user_id != principal_id:
            raise Forbidden()
        return video

    async def _store_video(self, stream: AsyncReadable, media_type: str, limit: int) -> str:
        with ExitStack() as cleanup:
            with ingest_stage_duration_seconds.labels(stage="stage").time():
                staged = await self.staging.stage(stream, limit, suffix=".mp4")
            cleanup.callback(staged.release)

            with ingest_stage_duration_seconds.labels(stage="probe").time():
                probe = await self.inspector.probe(staged.path)

            with ingest_stage_duration_seconds.labels(stage="normalize").time():
                output_path = await self.normalizer.normalize(staged.path)
            try:
                normalized = self.staging.adopt(output_path)
            except OSError as e:
                raise NormalizeFailed(detail=f"normalized output missing: {e}") from e
            cleanup.callback(normalized.release)

            try:
                data = await asyncio.to_thread(normalized.read_bytes)
            except OSError as e:
                raise StagingFailed(detail=f"couldn't read normalized file: {e}") from e

            key = derive_key(probe.classification, media_type, self.settings.key_random_bytes)
            with ingest_stage_duration_seconds.labels(stage="upload").time():
                reference = await self.video_backend.store(key, data, media_type)

        ingested_bytes_total.labels(kind=MediaKind.VIDEO.value).inc(len(data))
        logger.info(f"Stored video as {key} (aspect_ratio={probe.aspect_ratio}, {len(data)} bytes)")
        return reference

    async def _store_thumbnail(self, stream: AsyncReadable, media_type: str, limit: int) -> str:
        with ingest_stage_duration_seconds.labels(stage="stage").time():
            try:
                data = await read_limited(stream, limit, self.settings.staging_chunk_size)
            except OSError as e:
                raise StagingFailed(detail=str(e)) from e

        key = derive_key(THUMBNAIL_PREFIX, media_type, self.settings.key_random_bytes)
        with ingest_stage_duration_seconds.labels(stage="upload").time():
            reference = await self.thumbnail_backend.store(key, data, media_type)

        ingested_bytes_total.labels(kind=MediaKind.THUMBNAIL.value).inc(len(data))
        return reference


def _loggable(reference: str) -> str:
    if reference.startswith("data:"):
        return reference[:40] + "..."
    return reference
