"""
Transcript resolution across an ordered chain of strategies.

Strategies are attempted in the configured order. The first one that yields
a non-empty segment list wins and its output is returned untouched. A
strategy that raises is logged and counts as having produced nothing. When
every enabled strategy comes up empty the chain returns None: "no
transcript" is a normal outcome, not an error.

``transcript_status`` classifies a result after the fact. It is a heuristic
over segment shape, not a record of which strategy actually ran:

- any text prefixed "Comment:"                  -> comments / low
- exactly one segment                           -> description / low
- uniform 3s segments at 0, 3000, 6000 ...      -> description / low
- every duration zero                           -> unknown / medium
- every duration >= 5s                          -> whisper / high
- anything else                                 -> youtube / high
"""

import logging
from typing import Optional

from ..config.settings import (
    STRATEGY_ALTERNATIVE,
    STRATEGY_COMMENTS,
    STRATEGY_DESCRIPTION,
    STRATEGY_WHISPER,
    STRATEGY_YOUTUBE,
    TranscriptSettings,
)
from ..models.video import (
    QUALITY_HIGH,
    QUALITY_LOW,
    QUALITY_MEDIUM,
    QUALITY_NONE,
    SOURCE_COMMENTS,
    SOURCE_DESCRIPTION,
    SOURCE_NONE,
    SOURCE_UNKNOWN,
    SOURCE_WHISPER,
    SOURCE_YOUTUBE,
    TranscriptSegment,
    TranscriptStatus,
    transcript_text,
)
from .data_api import YouTubeDataClient
from .metadata import MetadataExtractor
from .strategies import (
    COMMENT_PREFIX,
    DESCRIPTION_SEGMENT_MS,
    AlternativeCaptionStrategy,
    CommentStrategy,
    DescriptionStrategy,
    TranscriptStrategy,
    WhisperStrategy,
    YouTubeCaptionStrategy,
)

logger = logging.getLogger(__name__)

WHISPER_MIN_SEGMENT_MS = 5000


def transcript_status(segments: Optional[list[TranscriptSegment]]) -> TranscriptStatus:
    """Derive availability, provenance and quality from segment shape."""
    if not segments:
        return TranscriptStatus(
            available=False,
            source=SOURCE_NONE,
            quality=QUALITY_NONE,
            length=0,
            segment_count=0,
        )

    if any(s.text.startswith(COMMENT_PREFIX.strip()) for s in segments):
        source, quality = SOURCE_COMMENTS, QUALITY_LOW
    elif len(segments) == 1:
        source, quality = SOURCE_DESCRIPTION, QUALITY_LOW
    elif all(
        s.duration_ms == DESCRIPTION_SEGMENT_MS and s.start_ms == i * DESCRIPTION_SEGMENT_MS
        for i, s in enumerate(segments)
    ):
        source, quality = SOURCE_DESCRIPTION, QUALITY_LOW
    elif all(s.duration_ms == 0 for s in segments):
        source, quality = SOURCE_UNKNOWN, QUALITY_MEDIUM
    elif all(s.duration_ms >= WHISPER_MIN_SEGMENT_MS for s in segments):
        source, quality = SOURCE_WHISPER, QUALITY_HIGH
    else:
        source, quality = SOURCE_YOUTUBE, QUALITY_HIGH

    return TranscriptStatus(
        available=True,
        source=source,
        quality=quality,
        length=len(transcript_text(segments)),
        segment_count=len(segments),
    )


def build_strategies(
    settings: TranscriptSettings,
    data_client: YouTubeDataClient,
    metadata_extractor: MetadataExtractor,
    openai_api_key: Optional[str] = None,
) -> dict[str, TranscriptStrategy]:
    """Default strategy set, keyed by strategy name."""
    return {
        STRATEGY_YOUTUBE: YouTubeCaptionStrategy(settings.preferred_langs),
        STRATEGY_ALTERNATIVE: AlternativeCaptionStrategy(settings.preferred_langs),
        STRATEGY_WHISPER: WhisperStrategy(metadata_extractor, settings, api_key=openai_api_key),
        STRATEGY_DESCRIPTION: DescriptionStrategy(metadata_extractor),
        STRATEGY_COMMENTS: CommentStrategy(data_client),
    }


class TranscriptExtractor:
    """Resolve a transcript by walking an ordered chain of strategies."""

    def __init__(
        self,
        strategies: dict[str, TranscriptStrategy],
        settings: Optional[TranscriptSettings] = None,
    ):
        """
        Initialize the transcript chain.

        Args:
            strategies: Available strategies keyed by name.
            settings: Order and feature flags. Never mutated.
        """
        self.strategies = strategies
        self.settings = settings or TranscriptSettings()

    def active_strategies(self) -> list[TranscriptStrategy]:
        """Strategies that will run, in order: listed, enabled, and available."""
        order = self.settings.strategy_order or [STRATEGY_YOUTUBE]
        active = []
        for name in order:
            if not self.settings.is_enabled(name):
                continue
            strategy = self.strategies.get(name)
            if strategy is None:
                logger.warning("Unknown transcript strategy %r in configured order", name)
                continue
            active.append(strategy)
        return active

    async def extract(self, video_id: str) -> Optional[list[TranscriptSegment]]:
        """
        Extract a transcript for a YouTube video.

        Args:
            video_id: YouTube video id (11 characters).

        Returns:
            Segments from the first strategy that produced any, or None.
        """
        for strategy in self.active_strategies():
            try:
                segments = await strategy.attempt(video_id)
            except Exception as e:
                logger.warning("Transcript strategy %s failed for %s: %s", strategy.name, video_id, e)
                continue

            if segments:
                logger.info(
                    "Transcript for %s resolved by %s (%d segments)",
                    video_id, strategy.name, len(segments),
                )
                return segments
            logger.debug("Transcript strategy %s produced nothing for %s", strategy.name, video_id)

        logger.info("No transcript available for %s", video_id)
        return None
