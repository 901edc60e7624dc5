"""Data models for YouTube video data and stored records."""

from .record import MetadataRecord
from .video import (
    CompleteVideoData,
    TranscriptSegment,
    TranscriptStatus,
    VideoMetadata,
    transcript_text,
)

__all__ = [
    "CompleteVideoData",
    "MetadataRecord",
    "TranscriptSegment",
    "TranscriptStatus",
    "VideoMetadata",
    "transcript_text",
]
