"""
Database models package.
"""
from tubely.models.base import Base
from tubely.models.user import User
from tubely.models.video import Video

__all__ = [
    "Base",
    "User",
    "Video",
]
