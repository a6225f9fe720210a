"""
Storage module for processed media.

Artifacts go to an S3-compatible bucket (AWS S3, Cloudflare R2, MinIO), the
local asset directory, or are embedded inline, depending on configuration.
"""
from tubely.storage.s3_client import S3Client, StoredArtifact
from tubely.storage.backends import (
    FilesystemBackend,
    InlineBackend,
    S3Backend,
    StorageBackend,
    build_backend,
)
from tubely.storage.keys import derive_key

__all__ = [
    "S3Client",
    "StoredArtifact",
    "StorageBackend",
    "InlineBackend",
    "FilesystemBackend",
    "S3Backend",
    "build_backend",
    "derive_key",
]
