"""Fakes and builders shared by the network-free tests."""

from youtube_workflow.extractor.strategies import TranscriptStrategy
from youtube_workflow.models.video import TranscriptSegment, VideoMetadata
from youtube_workflow.storage.view import MasterColumns

RICK_ID = "dQw4w9WgXcQ"
RICK_URL = f"https://www.youtube.com/watch?v={RICK_ID}"


def video_item(video_id=RICK_ID, **snippet_overrides):
    """A videos.list item shaped like the Data API response."""
    snippet = {
        "title": "Never Gonna Give You Up",
        "description": "The official video for Never Gonna Give You Up.",
        "channelTitle": "Rick Astley",
        "publishedAt": "2009-10-25T06:57:33Z",
        "tags": ["rick astley", "music"],
        "categoryId": "10",
        "thumbnails": {"default": {"url": "https://i.ytimg.com/vi/x/default.jpg"}},
    }
    snippet.update(snippet_overrides)
    return {
        "id": video_id,
        "snippet": snippet,
        "statistics": {"viewCount": "1500000000", "likeCount": "17000000"},
        "contentDetails": {"duration": "PT3M33S"},
    }


def comment_item(text):
    return {"snippet": {"topLevelComment": {"snippet": {"textDisplay": text}}}}


class FakeDataClient:
    """Stands in for YouTubeDataClient."""

    def __init__(self, videos=None, comments=None):
        self.videos = videos or {}
        self.comments = comments or {}
        self.calls = []

    async def list_videos(self, video_id, parts="snippet,statistics,contentDetails"):
        self.calls.append(("videos", video_id))
        return self.videos.get(video_id, [])

    async def list_comment_threads(self, video_id, max_results=50, order="relevance"):
        self.calls.append(("comments", video_id, max_results, order))
        return self.comments.get(video_id, [])


class FakeMetadataExtractor:
    def __init__(self, metadata):
        self.metadata = metadata
        self.calls = 0

    async def extract(self, video_id_or_url):
        self.calls += 1
        return self.metadata


class StubStrategy(TranscriptStrategy):
    def __init__(self, name, result=None, error=None):
        self.name = name
        self.result = result or []
        self.error = error
        self.calls = 0

    async def attempt(self, video_id):
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.result)


class FakeSheetView:
    def __init__(self, rows=None, error=None):
        self.columns = MasterColumns()
        self.rows = rows or {}
        self.error = error
        self.lookups = []

    async def find_video_row(self, video_id):
        self.lookups.append(video_id)
        if self.error:
            raise self.error
        return self.rows.get(video_id)


def make_metadata(**overrides):
    values = dict(
        video_id=RICK_ID,
        title="Never Gonna Give You Up",
        description="",
        channel_title="Rick Astley",
        published_at="2009-10-25T06:57:33Z",
        duration="3:33",
        duration_seconds=213,
        view_count=1500000000,
        like_count=17000000,
        tags=["rick astley"],
        category_id="10",
        thumbnails={},
    )
    values.update(overrides)
    return VideoMetadata(**values)


def caption_segments(count=3):
    return [
        TranscriptSegment(text=f"line {i}", start_ms=i * 2500, duration_ms=2400)
        for i in range(count)
    ]

