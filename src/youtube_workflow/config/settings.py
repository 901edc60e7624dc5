"""
Configuration settings for the YouTube workflow core.

Settings are plain values handed to the services that need them. Nothing
reads or mutates a process-wide config object.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

try:
    import yaml
    YAML_AVAILABLE = True
except ImportError:
    YAML_AVAILABLE = False


STRATEGY_YOUTUBE = "youtube"
STRATEGY_ALTERNATIVE = "alternative-libs"
STRATEGY_WHISPER = "whisper"
STRATEGY_DESCRIPTION = "description"
STRATEGY_COMMENTS = "comments"

DEFAULT_STRATEGY_ORDER = [
    STRATEGY_YOUTUBE,
    STRATEGY_ALTERNATIVE,
    STRATEGY_WHISPER,
    STRATEGY_DESCRIPTION,
    STRATEGY_COMMENTS,
]


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, ""))
    except ValueError:
        return default


@dataclass
class TranscriptSettings:
    """Which transcript strategies run, and in what order."""

    # Master switch for everything except the primary caption strategy
    enable_fallbacks: bool = True
    # Speech-to-text costs money per minute
    enable_whisper_fallback: bool = False
    enable_description_fallback: bool = True
    # Comment threads burn Data API quota
    enable_comments_analysis: bool = False

    max_audio_duration_minutes: int = 15
    strategy_order: list[str] = field(default_factory=lambda: list(DEFAULT_STRATEGY_ORDER))

    preferred_langs: list[str] = field(default_factory=lambda: ['en'])
    whisper_model: str = "whisper-1"
    temp_dir: Optional[str] = None  # None: system temp directory

    def is_enabled(self, name: str) -> bool:
        """Feature-flag check for a strategy, independent of its position in the order."""
        if name == STRATEGY_YOUTUBE:
            return True
        if not self.enable_fallbacks:
            return False
        if name == STRATEGY_WHISPER:
            return self.enable_whisper_fallback
        if name == STRATEGY_DESCRIPTION:
            return self.enable_description_fallback
        if name == STRATEGY_COMMENTS:
            return self.enable_comments_analysis
        return True

    def to_dict(self) -> dict:
        return {
            "enable_fallbacks": self.enable_fallbacks,
            "enable_whisper_fallback": self.enable_whisper_fallback,
            "enable_description_fallback": self.enable_description_fallback,
            "enable_comments_analysis": self.enable_comments_analysis,
            "max_audio_duration_minutes": self.max_audio_duration_minutes,
            "strategy_order": list(self.strategy_order),
            "preferred_langs": list(self.preferred_langs),
            "whisper_model": self.whisper_model,
            "temp_dir": self.temp_dir,
        }


@dataclass
class Settings:
    """Configuration settings for the workflow core."""

    youtube_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None

    # Primary records live here, backups under <metadata_dir>/backups
    metadata_dir: str = "data/metadata"

    log_level: str = "INFO"

    transcript: TranscriptSettings = field(default_factory=TranscriptSettings)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        methods = os.getenv("TRANSCRIPT_FALLBACK_METHODS")
        if methods:
            fallbacks = [m.strip() for m in methods.split(',') if m.strip()]
            order = [STRATEGY_YOUTUBE] + [m for m in fallbacks if m != STRATEGY_YOUTUBE]
        else:
            order = list(DEFAULT_STRATEGY_ORDER)

        transcript = TranscriptSettings(
            enable_fallbacks=_env_flag("ENABLE_TRANSCRIPT_FALLBACKS", True),
            enable_whisper_fallback=_env_flag("ENABLE_WHISPER_FALLBACK", False),
            enable_description_fallback=_env_flag("ENABLE_DESCRIPTION_FALLBACK", True),
            enable_comments_analysis=_env_flag("ENABLE_COMMENTS_ANALYSIS", False),
            max_audio_duration_minutes=_env_int("MAX_AUDIO_DURATION_MINUTES", 15),
            strategy_order=order,
        )
        return cls(
            youtube_api_key=os.getenv("YOUTUBE_API_KEY"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            metadata_dir=os.getenv("METADATA_DIR", "data/metadata"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            transcript=transcript,
        )

    @classmethod
    def from_file(cls, file_path: str) -> "Settings":
        """
        Load settings from a YAML or JSON file.

        Top-level keys match the Settings fields; the ``transcript`` mapping
        matches TranscriptSettings. Unknown keys are ignored.
        """
        path = Path(file_path)
        with open(path, 'r', encoding='utf-8') as f:
            if path.suffix in ('.yaml', '.yml'):
                if not YAML_AVAILABLE:
                    raise ImportError(
                        "PyYAML is not installed. "
                        "Install it with: pip install pyyaml"
                    )
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)

        transcript_data = data.get('transcript') or {}
        transcript = TranscriptSettings(**{
            k: v for k, v in transcript_data.items()
            if k in TranscriptSettings.__dataclass_fields__
        })
        return cls(
            youtube_api_key=data.get('youtube_api_key'),
            openai_api_key=data.get('openai_api_key'),
            metadata_dir=data.get('metadata_dir', "data/metadata"),
            log_level=data.get('log_level', "INFO"),
            transcript=transcript,
        )

    def to_dict(self) -> dict:
        # Keys are reported as present/absent, never echoed
        return {
            "youtube_api_key": bool(self.youtube_api_key),
            "openai_api_key": bool(self.openai_api_key),
            "metadata_dir": self.metadata_dir,
            "log_level": self.log_level,
            "transcript": self.transcript.to_dict(),
        }


DEFAULT_SETTINGS = Settings()
