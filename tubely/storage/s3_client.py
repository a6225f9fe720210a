"""
S3-compatible object storage client.

Uses boto3 with the S3 API, so it works against AWS S3, Cloudflare R2 and
MinIO alike (set S3_ENDPOINT for the latter two).

Objects are written with a single put_object call: either the full payload
is visible under the key afterwards or the call fails. Retrieval links are
presigned GET URLs generated on demand, so nothing that can expire is ever
persisted.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from tubely.config import Settings
from tubely.errors import SigningFailed, UploadFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredArtifact:
    """An object that was durably written to the store."""
    bucket: str
    key: str
    content_type: str

    @property
    def reference(self) -> str:
        """Persisted form of the artifact: ``bucket,key``."""
        return f"{self.bucket},{self.key}"


class S3Client:
    """
    Thin wrapper around a boto3 S3 client.

    The boto3 client can be injected, which is how tests run without a
    network.
    """

    def __init__(self, settings: Settings, client: Optional[Any] = None):
        self.region = settings.s3_region
        if client is not None:
            self._client = client
            return

        kwargs = {
            "region_name": settings.s3_region,
            # s3v4 is required for presigning against R2 and MinIO
            "config": Config(signature_version="s3v4"),
        }
        if settings.s3_endpoint:
            kwargs["endpoint_url"] = settings.s3_endpoint
            kwargs["config"] = Config(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
            )
        if settings.s3_access_key and settings.s3_secret_key:
            kwargs["aws_access_key_id"] = settings.s3_access_key
            kwargs["aws_secret_access_key"] = settings.s3_secret_key

        self._client = boto3.client("s3", **kwargs)
        logger.info(f"S3 client initialized (region={settings.s3_region}, endpoint={settings.s3_endpoint})")

    def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> StoredArtifact:
        """
        Put the full payload under ``key``.

        Raises:
            UploadFailed: If the store rejects the put or is unreachable
        """
        try:
            self._client.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to upload {key} to bucket {bucket}: {e}")
            raise UploadFailed(detail=str(e)) from e

        logger.debug(f"Uploaded {key} ({len(data)} bytes) to bucket {bucket}")
        return StoredArtifact(bucket=bucket, key=key, content_type=content_type)

    def signed_url(self, bucket: str, key: str, ttl: int) -> str:
        """
        Generate a presigned GET URL valid for ``ttl`` seconds.

        Raises:
            SigningFailed: If the URL can't be generated
        """
        try:
            url = self._client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=ttl,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to generate presigned URL for {bucket}/{key}: {e}")
            raise SigningFailed(detail=str(e)) from e

        logger.debug(f"Generated presigned read URL for {key} (expires in {ttl}s)")
        return url

