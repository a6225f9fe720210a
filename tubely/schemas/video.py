"""
Pydantic schemas for video endpoints.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class VideoCreate(BaseModel):
    """Schema for creating a draft video record."""
    title: str = Field(..., min_length=1, max_length=255, description="Video title")
    description: Optional[str] = Field(None, description="Free-form description")


class VideoResponse(BaseModel):
    """
    Schema for video response.

    thumbnail_url and video_url are resolved at read time: object store
    references come back as signed (or direct/CDN) URLs.
    """
    id: str
    user_id: str
    title: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ErrorResponse(BaseModel):
    """Schema for error responses."""
    error: str = Field(..., description="Client-safe error message")
    code: str = Field(..., description="Error kind, e.g. PayloadTooLarge")
    stage: Optional[str] = Field(None, description="Pipeline stage that failed, if any")
