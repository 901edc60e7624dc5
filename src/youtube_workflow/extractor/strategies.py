"""
Transcript extraction strategies.

Each strategy turns a video id into transcript segments, or an empty list
when it has nothing to offer. Strategies may also raise; the chain in
``transcript.py`` treats a raised error the same as an empty result.

1. youtube           - youtube-transcript-api, preferred languages
2. alternative-libs  - yt-dlp json3 subtitles, then any listed transcript
3. whisper           - audio download + ffmpeg + OpenAI speech-to-text
4. description       - sentences mined from the video description
5. comments          - top relevant comments, prefixed "Comment: "
"""

import asyncio
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional

import openai
import yt_dlp
from yt_dlp.utils import DownloadError
from youtube_transcript_api import YouTubeTranscriptApi

from ..config.settings import (
    STRATEGY_ALTERNATIVE,
    STRATEGY_COMMENTS,
    STRATEGY_DESCRIPTION,
    STRATEGY_WHISPER,
    STRATEGY_YOUTUBE,
    TranscriptSettings,
)
from ..errors import AudioProcessingError, TooLongError, UpstreamFailureError
from ..models.video import TranscriptSegment, watch_url
from .data_api import YouTubeDataClient
from .duration import duration_to_minutes
from .metadata import MetadataExtractor

logger = logging.getLogger(__name__)

DESCRIPTION_MIN_LENGTH = 50
DESCRIPTION_CHUNK_MIN_LENGTH = 20
DESCRIPTION_SEGMENT_MS = 3000

COMMENT_FETCH_LIMIT = 50
COMMENT_KEEP_LIMIT = 20
COMMENT_MIN_LENGTH = 30
COMMENT_MAX_LENGTH = 200
COMMENT_SEGMENT_MS = 4000
COMMENT_PREFIX = "Comment: "

AUDIO_SAMPLE_RATE = 16000
AUDIO_CHANNELS = 1
AUDIO_BITRATE = "32k"


def _to_ms(seconds) -> int:
    return int(round(float(seconds or 0) * 1000))


def segments_from_snippets(raw_segments) -> list[TranscriptSegment]:
    """Convert caption snippets (seconds-based objects or dicts) to segments."""
    segments = []
    for seg in raw_segments:
        # Handle different segment formats
        if hasattr(seg, 'text'):
            text = seg.text
            start = getattr(seg, 'start', 0)
            duration = getattr(seg, 'duration', 0)
        elif isinstance(seg, dict):
            text = seg.get('text', '')
            start = seg.get('start', 0)
            duration = seg.get('duration', 0)
        else:
            continue

        clean_text = (text or '').replace('\n', ' ').strip()
        if clean_text:
            segments.append(TranscriptSegment(
                text=clean_text,
                start_ms=_to_ms(start),
                duration_ms=_to_ms(duration),
            ))
    return segments


def parse_json3_subtitles(filepath: str) -> list[TranscriptSegment]:
    """Parse a yt-dlp json3 subtitle file."""
    with open(filepath, 'r', encoding='utf-8') as f:
        data = json.load(f)

    segments = []
    for event in data.get('events', []):
        # Skip events without segments
        segs = event.get('segs', [])
        if not segs:
            continue

        text = ''.join(seg.get('utf8', '') for seg in segs)
        text = text.replace('\n', ' ').strip()
        if text:
            segments.append(TranscriptSegment(
                text=text,
                start_ms=int(event.get('tStartMs', 0)),
                duration_ms=int(event.get('dDurationMs', 0)),
            ))
    return segments


class TranscriptStrategy:
    """One self-contained technique for producing transcript segments."""

    name = ""

    async def attempt(self, video_id: str) -> list[TranscriptSegment]:
        raise NotImplementedError


class YouTubeCaptionStrategy(TranscriptStrategy):
    """Primary caption extraction through youtube-transcript-api."""

    name = STRATEGY_YOUTUBE

    def __init__(self, preferred_langs: Optional[list[str]] = None, api: Any = None):
        self.preferred_langs = preferred_langs or ['en']
        self.api = api or YouTubeTranscriptApi()

    async def attempt(self, video_id: str) -> list[TranscriptSegment]:
        transcript = await asyncio.to_thread(
            self.api.fetch, video_id, languages=self.preferred_langs
        )
        return segments_from_snippets(transcript)


class AlternativeCaptionStrategy(TranscriptStrategy):
    """
    Secondary caption scraping.

    Techniques run in order and the first non-empty result wins:
    yt-dlp subtitle download (manual, then automatic captions), then any
    transcript youtube-transcript-api can list for the video.
    """

    name = STRATEGY_ALTERNATIVE

    def __init__(
        self,
        preferred_langs: Optional[list[str]] = None,
        api: Any = None,
        quiet: bool = True,
        techniques: Optional[list[Callable[[str], list[TranscriptSegment]]]] = None,
    ):
        self.preferred_langs = preferred_langs or ['en']
        self.api = api or YouTubeTranscriptApi()
        self.quiet = quiet
        self.techniques = techniques or [self._extract_with_ytdlp, self._extract_from_listing]

    async def attempt(self, video_id: str) -> list[TranscriptSegment]:
        for technique in self.techniques:
            technique_name = getattr(technique, '__name__', repr(technique))
            try:
                segments = await asyncio.to_thread(technique, video_id)
            except Exception as e:
                logger.debug("Caption technique %s failed for %s: %s", technique_name, video_id, e)
                continue
            if segments:
                logger.debug("Caption technique %s succeeded for %s", technique_name, video_id)
                return segments
        return []

    def _extract_with_ytdlp(self, video_id: str) -> list[TranscriptSegment]:
        """Download json3 subtitles with yt-dlp into a temp dir and parse them."""
        with tempfile.TemporaryDirectory() as tmpdir:
            ydl_opts = {
                'quiet': self.quiet,
                'no_warnings': self.quiet,
                'skip_download': True,
                'writesubtitles': True,
                'writeautomaticsub': True,
                'subtitleslangs': self.preferred_langs,
                'subtitlesformat': 'json3',
                'outtmpl': os.path.join(tmpdir, '%(id)s'),
                'socket_timeout': 30,
            }
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                ydl.extract_info(watch_url(video_id), download=True)

            # Preferred languages first, then any subtitle file
            for lang in self.preferred_langs:
                sub_file = os.path.join(tmpdir, f"{video_id}.{lang}.json3")
                if os.path.exists(sub_file):
                    return parse_json3_subtitles(sub_file)

            for name in sorted(os.listdir(tmpdir)):
                if name.endswith('.json3'):
                    return parse_json3_subtitles(os.path.join(tmpdir, name))
        return []

    def _extract_from_listing(self, video_id: str) -> list[TranscriptSegment]:
        """Take the first listed transcript that fetches, translating when possible."""
        target = self.preferred_langs[0]
        for transcript_info in self.api.list(video_id):
            try:
                language = getattr(transcript_info, 'language_code', '')
                if language not in self.preferred_langs and getattr(transcript_info, 'is_translatable', False):
                    transcript_info = transcript_info.translate(target)
                segments = segments_from_snippets(transcript_info.fetch())
            except Exception as e:
                logger.debug("Listed transcript fetch failed for %s: %s", video_id, e)
                continue
            if segments:
                return segments
        return []


def download_audio(video_id: str, output_dir: Path, quiet: bool = True) -> Path:
    """
    Download the audio-only stream using yt-dlp.
    Returns path to the downloaded file.
    """
    ydl_opts = {
        'quiet': quiet,
        'no_warnings': quiet,
        'format': 'bestaudio/best',
        'noplaylist': True,
        'outtmpl': str(output_dir / 'source.%(ext)s'),
    }
    try:
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            ydl.download([watch_url(video_id)])
    except DownloadError as e:
        raise AudioProcessingError(f"Audio download failed for {video_id}: {e}") from e

    source_files = sorted(output_dir.glob('source.*'))
    if not source_files:
        raise AudioProcessingError(f"No audio file found after download for {video_id}")
    logger.debug("Downloaded audio: %s", source_files[0])
    return source_files[0]


async def normalize_audio(input_path: Path, output_dir: Path) -> Path:
    """
    Transcode audio to mono, 16kHz, 32kbps MP3 with ffmpeg.
    Returns path to normalized file.
    """
    output_path = output_dir / "normalized.mp3"
    process = await asyncio.create_subprocess_exec(
        "ffmpeg",
        "-y",
        "-i", str(input_path),
        "-vn",
        "-ac", str(AUDIO_CHANNELS),
        "-ar", str(AUDIO_SAMPLE_RATE),
        "-b:a", AUDIO_BITRATE,
        "-codec:a", "libmp3lame",
        str(output_path),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    _, stderr = await process.communicate()
    if process.returncode != 0:
        message = stderr.decode('utf-8', errors='replace')[:300]
        raise AudioProcessingError(f"ffmpeg failed (rc={process.returncode}): {message}")
    if not output_path.exists():
        raise AudioProcessingError("Normalized file not created")
    return output_path


class WhisperStrategy(TranscriptStrategy):
    """
    Speech-to-text fallback through the OpenAI transcription API.

    Admission is gated by the video's duration. The audio lives in a
    temporary directory that is removed whether transcription succeeds or not.
    """

    name = STRATEGY_WHISPER

    def __init__(
        self,
        metadata_extractor: MetadataExtractor,
        settings: TranscriptSettings,
        client: Optional[openai.AsyncOpenAI] = None,
        api_key: Optional[str] = None,
    ):
        self.metadata_extractor = metadata_extractor
        self.settings = settings
        self._client = client
        self._api_key = api_key

    @property
    def client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def attempt(self, video_id: str) -> list[TranscriptSegment]:
        metadata = await self.metadata_extractor.extract(video_id)
        minutes = duration_to_minutes(metadata.duration)
        limit = self.settings.max_audio_duration_minutes
        if minutes > limit:
            raise TooLongError(video_id, minutes, limit)

        with tempfile.TemporaryDirectory(prefix="ywf-audio-", dir=self.settings.temp_dir) as tmpdir:
            workdir = Path(tmpdir)
            source = await asyncio.to_thread(download_audio, video_id, workdir)
            normalized = await normalize_audio(source, workdir)
            return await self.transcribe(normalized, metadata.duration_seconds)

    async def transcribe(self, audio_path: Path, duration_seconds: int = 0) -> list[TranscriptSegment]:
        """Send an audio file to the transcription API and convert its segments."""
        try:
            with open(audio_path, 'rb') as audio:
                response = await self.client.audio.transcriptions.create(
                    model=self.settings.whisper_model,
                    file=audio,
                    response_format="verbose_json",
                    timestamp_granularities=["segment"],
                )
        except openai.OpenAIError as e:
            raise UpstreamFailureError(f"Speech-to-text request failed: {e}") from e

        segments = []
        for seg in getattr(response, 'segments', None) or []:
            text = (seg.text or '').strip()
            if not text:
                continue
            start_ms = _to_ms(seg.start)
            segments.append(TranscriptSegment(
                text=text,
                start_ms=start_ms,
                duration_ms=max(_to_ms(seg.end) - start_ms, 0),
            ))

        # Timestamps are optional in the response
        text = (getattr(response, 'text', '') or '').strip()
        if not segments and text:
            segments.append(TranscriptSegment(text=text, start_ms=0, duration_ms=duration_seconds * 1000))
        return segments


_URL_RE = re.compile(r'(?:https?://|www\.)\S+', re.IGNORECASE)
_TIMESTAMP_RE = re.compile(r'\b\d{1,2}:\d{2}(?::\d{2})?\b')
_SENTENCE_END_RE = re.compile(r'[.!?]+')


def clean_description(description: str) -> str:
    """Strip URLs and timestamps, collapse whitespace."""
    text = _URL_RE.sub(' ', description or '')
    text = _TIMESTAMP_RE.sub(' ', text)
    return re.sub(r'\s+', ' ', text).strip()


def segments_from_description(description: str) -> list[TranscriptSegment]:
    """Sentence-like chunks of a description, on a fixed 3 second cadence."""
    cleaned = clean_description(description)
    if len(cleaned) < DESCRIPTION_MIN_LENGTH:
        return []

    chunks = [c.strip() for c in _SENTENCE_END_RE.split(cleaned)]
    chunks = [c for c in chunks if len(c) >= DESCRIPTION_CHUNK_MIN_LENGTH]
    return [
        TranscriptSegment(
            text=chunk,
            start_ms=index * DESCRIPTION_SEGMENT_MS,
            duration_ms=DESCRIPTION_SEGMENT_MS,
        )
        for index, chunk in enumerate(chunks)
    ]


class DescriptionStrategy(TranscriptStrategy):
    """Low-quality transcript mined from the video description."""

    name = STRATEGY_DESCRIPTION

    def __init__(self, metadata_extractor: MetadataExtractor):
        self.metadata_extractor = metadata_extractor

    async def attempt(self, video_id: str) -> list[TranscriptSegment]:
        metadata = await self.metadata_extractor.extract(video_id)
        return segments_from_description(metadata.description)


_SPAM_PATTERNS = [
    re.compile(r'^\W*(?:first|second|third)(?:\W|comment|here|lol)*$', re.IGNORECASE),
    re.compile(r'\bsub(?:scribe)?\s*(?:to|4)\s*(?:me|my|sub)\b', re.IGNORECASE),
    re.compile(r'\bcheck\s+out\s+my\s+channel\b', re.IGNORECASE),
]


def is_spam_comment(text: str) -> bool:
    """Heuristic spam filter for comment mining."""
    stripped = text.strip()
    if len(stripped) < 10:
        return True
    if not re.search(r'[^\W_]', stripped):
        return True  # symbols only
    if len(re.findall(r'@\w+', stripped)) >= 3:
        return True
    return any(p.search(stripped) for p in _SPAM_PATTERNS)


def _comment_text(item: dict) -> str:
    snippet = ((item.get('snippet') or {}).get('topLevelComment') or {}).get('snippet') or {}
    text = snippet.get('textDisplay') or snippet.get('textOriginal') or ''
    return re.sub(r'\s+', ' ', text).strip()


def segments_from_comments(items: list[dict]) -> list[TranscriptSegment]:
    """Filter comment threads and lay them out on a fixed 4 second cadence."""
    kept = []
    for item in items:
        text = _comment_text(item)
        if COMMENT_MIN_LENGTH <= len(text) < COMMENT_MAX_LENGTH and not is_spam_comment(text):
            kept.append(text)
        if len(kept) >= COMMENT_KEEP_LIMIT:
            break
    return [
        TranscriptSegment(
            text=f"{COMMENT_PREFIX}{text}",
            start_ms=index * COMMENT_SEGMENT_MS,
            duration_ms=COMMENT_SEGMENT_MS,
        )
        for index, text in enumerate(kept)
    ]


class CommentStrategy(TranscriptStrategy):
    """Low-quality transcript built from the most relevant top-level comments."""

    name = STRATEGY_COMMENTS

    def __init__(self, data_client: YouTubeDataClient):
        self.data_client = data_client

    async def attempt(self, video_id: str) -> list[TranscriptSegment]:
        items = await self.data_client.list_comment_threads(
            video_id, max_results=COMMENT_FETCH_LIMIT, order="relevance"
        )
        return segments_from_comments(items)
