"""
Video model (the media record).

The ingestion pipeline only ever writes thumbnail_url and video_url.
What is stored there depends on the storage strategy:

- object store: "bucket,key" (resolved to a URL when read)
- inline: a data: URL
- filesystem: an absolute /assets URL
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime

from tubely.models.base import Base, generate_uuid


class Video(Base):
    """A user's video and references to its processed media."""

    __tablename__ = "videos"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Media references (see module docstring)
    thumbnail_url = Column(Text, nullable=True)
    video_url = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="videos")

    def __repr__(self):
        return f"<Video(id={self.id}, user={self.user_id}, title={self.title})>"
