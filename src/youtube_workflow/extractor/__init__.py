"""Extractors for YouTube video data."""

from .data_api import YouTubeDataClient
from .duration import duration_to_minutes, duration_to_seconds, parse_duration
from .metadata import MetadataExtractor
from .strategies import (
    AlternativeCaptionStrategy,
    CommentStrategy,
    DescriptionStrategy,
    TranscriptStrategy,
    WhisperStrategy,
    YouTubeCaptionStrategy,
)
from .transcript import TranscriptExtractor, build_strategies, transcript_status
from .video_source import extract_from_file, extract_from_urls, extract_video_id

__all__ = [
    "AlternativeCaptionStrategy",
    "CommentStrategy",
    "DescriptionStrategy",
    "MetadataExtractor",
    "TranscriptExtractor",
    "TranscriptStrategy",
    "WhisperStrategy",
    "YouTubeCaptionStrategy",
    "YouTubeDataClient",
    "build_strategies",
    "duration_to_minutes",
    "duration_to_seconds",
    "extract_from_file",
    "extract_from_urls",
    "extract_video_id",
    "parse_duration",
    "transcript_status",
]
