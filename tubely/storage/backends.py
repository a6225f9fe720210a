"""
Storage backends for processed media.

Every strategy for keeping an artifact (embedded in the record, written to
the local asset directory, or put in an S3 bucket) implements the same two
calls:

- store(): persist the bytes and return the reference saved on the record
- resolve(): turn a saved reference into a client-usable URL at read time

Object store references are saved as ``bucket,key``. They are turned into
signed, direct or CDN URLs only when a record is read, so a persisted value
can never silently expire.
"""
import asyncio
import base64
import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

from tubely.config import Settings
from tubely.errors import UploadFailed
from tubely.storage.s3_client import S3Client

logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """A place where processed media lives."""

    name: str = "abstract"

    @abstractmethod
    async def store(self, key: str, data: bytes, content_type: str) -> str:
        """Persist ``data`` and return the reference to save on the record."""

    async def resolve(self, reference: Optional[str]) -> Optional[str]:
        """Client-usable URL for a saved reference."""
        return reference


class InlineBackend(StorageBackend):
    """Embeds the bytes in the record as a data: URL."""

    name = "inline"

    async def store(self, key: str, data: bytes, content_type: str) -> str:
        encoded = base64.b64encode(data).decode("ascii")
        return f"data:{content_type};base64,{encoded}"


class FilesystemBackend(StorageBackend):
    """Writes under the asset root, served by the app's /assets mount."""

    name = "filesystem"

    def __init__(self, root: str, base_url: str):
        self.root = os.path.abspath(root)
        self.base_url = base_url.rstrip("/")

    def path_for(self, key: str) -> str:
        path = os.path.abspath(os.path.join(self.root, key))
        if os.path.commonpath([self.root, path]) != self.root:
            raise ValueError(f"Key escapes asset root: {key}")
        return path

    def _write(self, path: str, data: bytes) -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        # Write then rename so readers never see a partial asset
        tmp_path = path + ".part"
        try:
            with open(tmp_path, "wb") as f:
                f.write(data)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    async def store(self, key: str, data: bytes, content_type: str) -> str:
        path = self.path_for(key)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as e:
            logger.error(f"Failed to write asset {path}: {e}")
            raise UploadFailed(detail=str(e)) from e
        logger.debug(f"Wrote asset {path} ({len(data)} bytes)")
        return f"{self.base_url}/{key}"


class S3Backend(StorageBackend):
    """Puts objects in an S3 bucket and resolves references per url_mode."""

    name = "s3"

    def __init__(self, settings: Settings, client: S3Client):
        self.client = client
        self.bucket = settings.s3_bucket
        self.region = settings.s3_region
        self.endpoint = settings.s3_endpoint
        self.url_mode = settings.video_url_mode
        self.cdn_domain = settings.s3_cdn_domain
        self.ttl = settings.presign_ttl_seconds

    async def store(self, key: str, data: bytes, content_type: str) -> str:
        artifact = await asyncio.to_thread(self.client.upload, self.bucket, key, data, content_type)
        return artifact.reference

    async def resolve(self, reference: Optional[str]) -> Optional[str]:
        parsed = parse_reference(reference)
        if parsed is None:
            # Inline data, asset URLs and legacy absolute URLs pass through
            return reference
        bucket, key = parsed

        if self.url_mode == "signed":
            return await asyncio.to_thread(self.client.signed_url, bucket, key, self.ttl)
        if self.url_mode == "cdn":
            return f"https://{self.cdn_domain}/{key}"
        if self.endpoint:
            return f"{self.endpoint.rstrip('/')}/{bucket}/{key}"
        return f"https://{bucket}.s3.{self.region}.amazonaws.com/{key}"


def parse_reference(reference: Optional[str]) -> Optional[tuple[str, str]]:
    """Split a ``bucket,key`` reference; None for anything else."""
    if not reference or reference.startswith("data:") or "://" in reference:
        return None
    bucket, sep, key = reference.partition(",")
    if not sep or not bucket or not key:
        return None
    return bucket, key


def build_backend(settings: Settings, kind: str, s3_client: Optional[S3Client]) -> StorageBackend:
    """
    Select the backend configured for a media kind.

    Args:
        settings: Application settings
        kind: "video" or "thumbnail"
        s3_client: Required when the selected strategy is s3
    """
    strategy = settings.video_storage if kind == "video" else settings.thumbnail_storage

    if strategy == "inline":
        return InlineBackend()
    if strategy == "filesystem":
        return FilesystemBackend(settings.assets_root, settings.assets_base_url)
    if strategy == "s3":
        if s3_client is None:
            raise ValueError(f"{kind} storage is s3 but no S3 client was provided")
        return S3Backend(settings, s3_client)
    raise ValueError(f"Unknown storage strategy for {kind}: {strategy}")
