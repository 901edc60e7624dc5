"""
YouTube Workflow
================

Data core of a YouTube content-production pipeline.

Features:
- Resolve video references and fetch metadata from the YouTube Data API
- Transcripts through an ordered fallback chain (captions, alternative
  caption scraping, speech-to-text, description mining, comment mining)
- Immutable, checksummed metadata records with reliable recovery when the
  local file or the master sheet is damaged

Example:
    $ ywf fetch "https://www.youtube.com/watch?v=dQw4w9WgXcQ" --json
    $ ywf transcript dQw4w9WgXcQ --whisper
    $ ywf metadata reliable VID-0001
"""

__version__ = "1.0.0"

from .collector import VideoCollector
from .config import Settings, TranscriptSettings
from .errors import (
    InvalidInputError,
    NoReliableSourceError,
    NotFoundError,
    TooLongError,
    UpstreamFailureError,
    WorkflowError,
)
from .extractor import TranscriptExtractor, extract_video_id, parse_duration, transcript_status
from .models import CompleteVideoData, MetadataRecord, TranscriptSegment, TranscriptStatus, VideoMetadata
from .storage import MasterColumns, MetadataStore

__all__ = [
    # Services
    "VideoCollector",
    "TranscriptExtractor",
    "MetadataStore",
    "MasterColumns",
    # Helpers
    "extract_video_id",
    "parse_duration",
    "transcript_status",
    # Models
    "CompleteVideoData",
    "MetadataRecord",
    "TranscriptSegment",
    "TranscriptStatus",
    "VideoMetadata",
    # Config
    "Settings",
    "TranscriptSettings",
    # Errors
    "WorkflowError",
    "InvalidInputError",
    "NotFoundError",
    "TooLongError",
    "NoReliableSourceError",
    "UpstreamFailureError",
    # Meta
    "__version__",
]
