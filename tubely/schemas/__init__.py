"""
Pydantic schemas for API request/response validation.
"""
from tubely.schemas.video import (
    VideoCreate,
    VideoResponse,
    ErrorResponse,
)

__all__ = [
    "VideoCreate",
    "VideoResponse",
    "ErrorResponse",
]
