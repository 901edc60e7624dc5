"""
Async access to the YouTube Data API v3.

google-api-python-client is synchronous, so every ``execute()`` runs in a
worker thread. Errors from the client are wrapped in UpstreamFailureError.
"""

import asyncio
import logging
from typing import Any, Optional

from googleapiclient.discovery import build

from ..errors import UpstreamFailureError

logger = logging.getLogger(__name__)

VIDEO_PARTS = "snippet,statistics,contentDetails"


def build_youtube_client(api_key: str):
    """Build a discovery-based Data API client authenticated by API key."""
    return build("youtube", "v3", developerKey=api_key, cache_discovery=False)


class YouTubeDataClient:
    """Read-only queries against the Data API used by the workflow."""

    def __init__(self, api_key: Optional[str] = None, client: Any = None):
        """
        Initialize the Data API wrapper.

        Args:
            api_key: Data API key. Used only when ``client`` is not given.
            client: A prebuilt ``googleapiclient`` resource (or a stand-in
                    exposing ``videos()`` and ``commentThreads()``).
        """
        if client is None:
            if not api_key:
                raise ValueError("A YouTube Data API key or client is required")
            client = build_youtube_client(api_key)
        self._client = client

    async def _execute(self, request, what: str) -> dict:
        try:
            return await asyncio.to_thread(request.execute)
        except Exception as e:
            logger.error("Data API %s failed: %s", what, e)
            raise UpstreamFailureError(f"YouTube Data API {what} failed: {e}") from e

    async def list_videos(self, video_id: str, parts: str = VIDEO_PARTS) -> list[dict]:
        """Return the ``items`` of a videos.list call for one id."""
        request = self._client.videos().list(part=parts, id=video_id)
        response = await self._execute(request, f"videos.list({video_id})")
        return response.get('items') or []

    async def list_comment_threads(
        self,
        video_id: str,
        max_results: int = 50,
        order: str = "relevance",
    ) -> list[dict]:
        """Return the ``items`` of a commentThreads.list call (top-level comments)."""
        request = self._client.commentThreads().list(
            part="snippet",
            videoId=video_id,
            maxResults=max_results,
            order=order,
            textFormat="plainText",
        )
        response = await self._execute(request, f"commentThreads.list({video_id})")
        return response.get('items') or []
