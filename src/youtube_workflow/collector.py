"""
Core YouTube collector that assembles complete video data.

Metadata and transcript are fetched concurrently; both must finish before
the combined record is built.
"""

import asyncio
import logging
from typing import Optional

from .config import DEFAULT_SETTINGS, Settings
from .errors import InvalidInputError
from .extractor import (
    MetadataExtractor,
    TranscriptExtractor,
    YouTubeDataClient,
    build_strategies,
    extract_video_id,
    transcript_status,
)
from .models.video import CompleteVideoData, TranscriptSegment, VideoMetadata

logger = logging.getLogger(__name__)

HEALTH_CHECK_VIDEO_ID = "dQw4w9WgXcQ"


def thumbnail_url(video_id: str, quality: str = "maxresdefault") -> str:
    """Static thumbnail URL for a video id."""
    return f"https://img.youtube.com/vi/{video_id}/{quality}.jpg"


class VideoCollector:
    """
    Main collector class that orchestrates YouTube data extraction.

    Combines the metadata fetcher and the transcript chain into a single
    "complete video data" result for the workflow and for metadata recovery.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        data_client: Optional[YouTubeDataClient] = None,
        metadata_extractor: Optional[MetadataExtractor] = None,
        transcript_extractor: Optional[TranscriptExtractor] = None,
    ):
        """
        Initialize the collector.

        Args:
            settings: Configuration settings. Uses defaults if not provided.
            data_client: Data API wrapper. Built from the settings' API key
                         when an extractor needs one and none is given.
            metadata_extractor: Overrides the default metadata fetcher.
            transcript_extractor: Overrides the default transcript chain.
        """
        self.settings = settings or DEFAULT_SETTINGS

        if data_client is None and (metadata_extractor is None or transcript_extractor is None):
            data_client = YouTubeDataClient(api_key=self.settings.youtube_api_key)
        self.data_client = data_client

        self.metadata_extractor = metadata_extractor or MetadataExtractor(data_client)
        self.transcript_extractor = transcript_extractor or TranscriptExtractor(
            build_strategies(
                self.settings.transcript,
                data_client,
                self.metadata_extractor,
                openai_api_key=self.settings.openai_api_key,
            ),
            self.settings.transcript,
        )

    async def get_video_metadata(self, video_id_or_url: str) -> VideoMetadata:
        return await self.metadata_extractor.extract(video_id_or_url)

    async def get_transcript(self, video_id_or_url: str) -> Optional[list[TranscriptSegment]]:
        """Transcript segments, or None when unavailable or the input is unresolvable."""
        video_id = extract_video_id(video_id_or_url)
        if not video_id:
            logger.error("Cannot fetch transcript, invalid YouTube URL or video ID: %r", video_id_or_url)
            return None
        return await self.transcript_extractor.extract(video_id)

    async def get_complete_video_data(self, video_url: str) -> CompleteVideoData:
        """
        Collect metadata and transcript for a single video.

        Args:
            video_url: YouTube video URL or bare id.

        Returns:
            CompleteVideoData. A missing transcript is reported in
            ``transcript_status``, not raised.
        """
        video_id = extract_video_id(video_url)
        if not video_id:
            raise InvalidInputError(f"Invalid YouTube URL: {video_url!r}")

        logger.info("Processing video: %s", video_url)
        metadata, transcript = await asyncio.gather(
            self.get_video_metadata(video_id),
            self.get_transcript(video_id),
        )
        return CompleteVideoData(
            metadata=metadata,
            transcript=transcript,
            transcript_status=transcript_status(transcript),
            thumbnail_url=thumbnail_url(video_id),
            original_url=video_url,
        )

    async def health_check(self) -> bool:
        """Fetch metadata for a known public video. Raises on failure."""
        await self.get_video_metadata(HEALTH_CHECK_VIDEO_ID)
        logger.info("YouTube service health check passed")
        return True
