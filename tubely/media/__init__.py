"""
Local media handling: staging, inspection and container normalization.
"""
from tubely.media.staging import StagedFile, StagingStore, read_limited
from tubely.media.inspector import FFprobeInspector, MediaInspector, MediaProbe, classify_aspect_ratio
from tubely.media.normalizer import FFmpegNormalizer, MediaNormalizer

__all__ = [
    "StagedFile",
    "StagingStore",
    "read_limited",
    "FFprobeInspector",
    "MediaInspector",
    "MediaProbe",
    "classify_aspect_ratio",
    "FFmpegNormalizer",
    "MediaNormalizer",
]
