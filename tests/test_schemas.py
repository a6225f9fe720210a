"""
Tests for Pydantic schemas validation.
"""
import pytest
from datetime import datetime
from pydantic import ValidationError

from tubely.models.video import Video
from tubely.schemas.video import ErrorResponse, VideoCreate, VideoResponse


class TestVideoSchemas:
    """Tests for video schemas."""

    def test_video_create_valid(self):
        """Test valid video creation."""
        schema = VideoCreate(title="Boots", description="On the ground")
        assert schema.title == "Boots"
        assert schema.description == "On the ground"

    def test_video_create_description_optional(self):
        assert VideoCreate(title="Boots").description is None

    def test_video_create_missing_title(self):
        """Test video creation without title raises error."""
        with pytest.raises(ValidationError):
            VideoCreate()

    def test_video_create_title_too_long(self):
        with pytest.raises(ValidationError):
            VideoCreate(title="x" * 256)

    def test_video_response_from_model(self):
        """Test building a response from an ORM object."""
        now = datetime.utcnow()
        video = Video(
            id="video-uuid",
            user_id="user-uuid",
            title="Boots",
            video_url="tubely-media,landscape/abc.mp4",
            created_at=now,
            updated_at=now,
        )

        schema = VideoResponse.model_validate(video)

        assert schema.id == "video-uuid"
        assert schema.video_url == "tubely-media,landscape/abc.mp4"
        assert schema.thumbnail_url is None


class TestErrorSchema:
    """Tests for the error body."""

    def test_error_response(self):
        schema = ErrorResponse(error="Video not found", code="NotFound")
        assert schema.stage is None
