"""
User model.
Users own videos; the id is the principal carried in access tokens.
"""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
from tubely.models.base import Base, generate_uuid


class User(Base):
    """Account that owns videos."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), nullable=False, unique=True, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    videos = relationship("Video", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"
