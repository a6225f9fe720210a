"""
Business logic services.
"""
from tubely.services.ingest_service import IngestionService, MediaKind

__all__ = [
    "IngestionService",
    "MediaKind",
]
