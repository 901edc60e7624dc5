"""
Error types raised by the workflow core.

Transcript strategies never surface these to callers of the chain; the chain
logs them and moves on. Store and fetcher errors propagate.
"""


class WorkflowError(Exception):
    """Base class for all workflow errors."""


class InvalidInputError(WorkflowError):
    """No video id could be resolved from the given reference."""


class NotFoundError(WorkflowError):
    """The upstream API has no such video, or the store has no record."""


class TooLongError(WorkflowError):
    """Video exceeds the speech-to-text duration ceiling."""

    def __init__(self, video_id: str, minutes: float, limit: float):
        self.video_id = video_id
        self.minutes = minutes
        self.limit = limit
        super().__init__(
            f"Video {video_id} is {minutes:.1f} min long, "
            f"speech-to-text limit is {limit:g} min"
        )


class AudioProcessingError(WorkflowError):
    """Audio download or transcoding for speech-to-text failed."""


class NoReliableSourceError(WorkflowError):
    """Every metadata recovery tier was exhausted."""


class UpstreamFailureError(WorkflowError):
    """A third-party API call failed. The original error is the __cause__."""
