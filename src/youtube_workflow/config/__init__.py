"""Configuration for the YouTube workflow core."""

from .settings import DEFAULT_SETTINGS, Settings, TranscriptSettings

__all__ = ["DEFAULT_SETTINGS", "Settings", "TranscriptSettings"]
