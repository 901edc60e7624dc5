"""
Metadata extraction from YouTube videos using the Data API.
"""

import logging

from ..errors import InvalidInputError, NotFoundError
from ..models.video import VideoMetadata
from .data_api import YouTubeDataClient
from .duration import duration_to_seconds, parse_duration
from .video_source import extract_video_id

logger = logging.getLogger(__name__)


def _count(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class MetadataExtractor:
    """Fetch metadata for a single video. No retries; upstream errors propagate."""

    def __init__(self, data_client: YouTubeDataClient):
        """
        Initialize the metadata extractor.

        Args:
            data_client: Data API wrapper used for videos.list.
        """
        self.data_client = data_client

    async def extract(self, video_id_or_url: str) -> VideoMetadata:
        """
        Fetch metadata for a YouTube video.

        Args:
            video_id_or_url: Watch/short/embed URL or bare video id.

        Returns:
            VideoMetadata with defaults substituted for absent fields.

        Raises:
            InvalidInputError: no video id could be resolved.
            NotFoundError: the API returned no items.
            UpstreamFailureError: the API call failed.
        """
        video_id = extract_video_id(video_id_or_url)
        if not video_id:
            raise InvalidInputError(f"Invalid YouTube URL or video ID: {video_id_or_url!r}")

        items = await self.data_client.list_videos(video_id)
        if not items:
            raise NotFoundError(f"Video not found: {video_id}")

        video = items[0]
        snippet = video.get('snippet') or {}
        statistics = video.get('statistics') or {}
        duration_code = (video.get('contentDetails') or {}).get('duration')

        metadata = VideoMetadata(
            video_id=video_id,
            title=snippet.get('title') or "Unknown Title",
            description=snippet.get('description') or '',
            channel_title=snippet.get('channelTitle') or "Unknown Channel",
            published_at=snippet.get('publishedAt'),
            duration=parse_duration(duration_code),
            duration_seconds=duration_to_seconds(duration_code),
            view_count=_count(statistics.get('viewCount')),
            like_count=_count(statistics.get('likeCount')),
            tags=list(snippet.get('tags') or []),
            category_id=snippet.get('categoryId'),
            thumbnails=dict(snippet.get('thumbnails') or {}),
        )
        logger.debug("Fetched metadata for %s: %s", video_id, metadata.title)
        return metadata
