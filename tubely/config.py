"""
Application configuration using Pydantic Settings.

Settings are loaded from environment variables (or .env) once, frozen, and
handed to each component at construction time. Nothing reads a module-level
settings object.
"""
from typing import Literal, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Immutable application settings."""

    # Environment
    environment: str = "dev"
    log_level: str = "INFO"
    service_name: str = "tubely-api"

    # Database (metadata store)
    database_url: str = "sqlite+aiosqlite:///./tubely.db"

    # Authentication
    auth_provider: Literal["jwt", "firebase"] = "jwt"
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    firebase_project_id: Optional[str] = None
    firebase_credentials_json: Optional[str] = None  # Path to JSON file or JSON string

    # S3-compatible object storage (AWS S3, Cloudflare R2, MinIO)
    s3_bucket: str = "tubely-media"
    s3_region: str = "us-east-1"
    s3_endpoint: Optional[str] = None  # e.g., https://<account_id>.r2.cloudflarestorage.com
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    s3_cdn_domain: Optional[str] = None  # e.g., d111111abcdef8.cloudfront.net

    # Storage strategies
    video_storage: Literal["s3", "filesystem"] = "s3"
    video_url_mode: Literal["signed", "direct", "cdn"] = "signed"
    thumbnail_storage: Literal["inline", "filesystem", "s3"] = "inline"
    assets_root: str = "./assets"
    assets_base_url: str = "http://localhost:8091/assets"
    presign_ttl_seconds: int = 600  # Signed URL lifetime (10 min)

    # Upload limits
    max_video_upload_bytes: int = 1 << 30  # 1 GiB
    max_thumbnail_upload_bytes: int = 10 << 20  # 10 MiB

    # Staging
    staging_dir: Optional[str] = None  # None = system temp dir
    staging_chunk_size: int = 1 << 20
    key_random_bytes: int = 32

    # External media tools
    ffprobe_path: str = "ffprobe"
    ffmpeg_path: str = "ffmpeg"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @model_validator(mode="after")
    def check_consistency(self) -> "Settings":
        if self.video_url_mode == "cdn" and not self.s3_cdn_domain:
            raise ValueError("S3_CDN_DOMAIN must be set when VIDEO_URL_MODE=cdn")
        if self.key_random_bytes < 16:
            raise ValueError("KEY_RANDOM_BYTES must be at least 16")
        if self.presign_ttl_seconds <= 0:
            raise ValueError("PRESIGN_TTL_SECONDS must be positive")
        if self.max_video_upload_bytes <= 0 or self.max_thumbnail_upload_bytes <= 0:
            raise ValueError("Upload limits must be positive")
        if self.auth_provider == "firebase" and not self.firebase_project_id:
            raise ValueError("FIREBASE_PROJECT_ID must be set when AUTH_PROVIDER=firebase")
        return self

    def upload_limit(self, kind: str) -> int:
        """Maximum accepted payload size in bytes for a media kind."""
        if kind == "video":
            return self.max_video_upload_bytes
        return self.max_thumbnail_upload_bytes
