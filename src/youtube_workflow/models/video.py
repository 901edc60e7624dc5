"""
Video data models for the YouTube workflow core.

Timings inside a transcript are integer milliseconds. Durations shown to
people are display strings (``M:SS`` / ``H:MM:SS``) produced by the
duration codec.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


SOURCE_NONE = "none"
SOURCE_YOUTUBE = "youtube"
SOURCE_ALTERNATIVE = "alternative-libs"
SOURCE_WHISPER = "whisper"
SOURCE_DESCRIPTION = "description"
SOURCE_COMMENTS = "comments"
SOURCE_UNKNOWN = "unknown"

QUALITY_NONE = "none"
QUALITY_LOW = "low"
QUALITY_MEDIUM = "medium"
QUALITY_HIGH = "high"


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


@dataclass(frozen=True)
class TranscriptSegment:
    """A single segment of a transcript with timing information."""
    text: str
    start_ms: int
    duration_ms: int

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "start_ms": self.start_ms,
            "duration_ms": self.duration_ms,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TranscriptSegment":
        return cls(
            text=data.get('text', ''),
            start_ms=int(data.get('start_ms', 0) or 0),
            duration_ms=int(data.get('duration_ms', 0) or 0),
        )


def transcript_text(segments: Optional[list[TranscriptSegment]]) -> str:
    """Join segment texts in order with a single space."""
    if not segments:
        return ""
    return ' '.join(s.text for s in segments)


@dataclass(frozen=True)
class TranscriptStatus:
    """Derived summary of a transcript. Never stored on its own."""
    available: bool
    source: str
    quality: str
    length: int
    segment_count: int

    def to_dict(self) -> dict:
        return {
            "available": self.available,
            "source": self.source,
            "quality": self.quality,
            "length": self.length,
            "segments": self.segment_count,
        }


@dataclass(frozen=True)
class VideoMetadata:
    """Metadata for a YouTube video, as fetched from the Data API."""
    video_id: str
    title: str
    description: str
    channel_title: str
    published_at: Optional[str]
    duration: str  # display string, e.g. "4:13"
    duration_seconds: int
    view_count: int
    like_count: int
    tags: list[str] = field(default_factory=list)
    category_id: Optional[str] = None
    thumbnails: dict[str, Any] = field(default_factory=dict)

    @property
    def youtube_url(self) -> str:
        return watch_url(self.video_id)

    def to_dict(self) -> dict:
        return {
            "video_id": self.video_id,
            "youtube_url": self.youtube_url,
            "title": self.title,
            "description": self.description,
            "channel_title": self.channel_title,
            "published_at": self.published_at,
            "duration": self.duration,
            "duration_seconds": self.duration_seconds,
            "view_count": self.view_count,
            "like_count": self.like_count,
            "tags": list(self.tags),
            "category_id": self.category_id,
            "thumbnails": dict(self.thumbnails),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VideoMetadata":
        return cls(
            video_id=data.get('video_id', ''),
            title=data.get('title', ''),
            description=data.get('description', '') or '',
            channel_title=data.get('channel_title', ''),
            published_at=data.get('published_at'),
            duration=data.get('duration', 'Unknown'),
            duration_seconds=int(data.get('duration_seconds', 0) or 0),
            view_count=int(data.get('view_count', 0) or 0),
            like_count=int(data.get('like_count', 0) or 0),
            tags=list(data.get('tags') or []),
            category_id=data.get('category_id'),
            thumbnails=dict(data.get('thumbnails') or {}),
        )


@dataclass
class CompleteVideoData:
    """Metadata plus transcript, as assembled for the workflow."""
    metadata: VideoMetadata
    transcript: Optional[list[TranscriptSegment]]
    transcript_status: TranscriptStatus
    thumbnail_url: str
    original_url: str

    @property
    def video_id(self) -> str:
        return self.metadata.video_id

    @property
    def transcript_text(self) -> str:
        return transcript_text(self.transcript)

    def to_dict(self) -> dict:
        """Flat payload, the shape persisted as a record's original metadata."""
        result = self.metadata.to_dict()
        result.update({
            "transcript": (
                [s.to_dict() for s in self.transcript]
                if self.transcript is not None else None
            ),
            "transcript_text": self.transcript_text,
            "transcript_status": self.transcript_status.to_dict(),
            "thumbnail_url": self.thumbnail_url,
            "original_url": self.original_url,
        })
        return result
