"""
Interface to the spreadsheet view layer.

The master sheet is where people read and edit video rows. It is not a
source of truth: the metadata store only reads from it, to find a source URL
for recovery and to report discrepancies.
"""

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class MasterColumns:
    """Row keys of the master sheet for the fields the store cares about."""
    youtube_url: str = "youtubeUrl"
    title: str = "title"
    youtube_video_id: str = "youtubeVideoId"
    channel: str = "channel"
    duration: str = "duration"


class SheetView(Protocol):
    columns: MasterColumns

    async def find_video_row(self, video_id: str) -> Optional[dict]:
        """The row for a video as a column-key to value mapping, or None."""
        ...
