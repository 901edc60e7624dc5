"""
Conversions for YouTube's ISO-8601 duration codes (``PT4M13S``).
"""

import re
from typing import Optional

UNKNOWN_DURATION = "Unknown"

_ISO_DURATION = re.compile(r'^PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?$')


def _components(code: Optional[str]) -> Optional[tuple[int, int, int]]:
    if not isinstance(code, str):
        return None
    match = _ISO_DURATION.match(code.strip())
    if not match:
        return None
    hours, minutes, seconds = (int(g or 0) for g in match.groups())
    return hours, minutes, seconds


def parse_duration(code: Optional[str]) -> str:
    """Format an ISO duration as H:MM:SS or M:SS ("PT4M13S" -> "4:13")."""
    parts = _components(code)
    if parts is None:
        return UNKNOWN_DURATION
    h, m, s = parts
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def duration_to_seconds(code: Optional[str]) -> int:
    """Total seconds of an ISO duration, 0 when unparseable."""
    parts = _components(code)
    if parts is None:
        return 0
    h, m, s = parts
    return h * 3600 + m * 60 + s


def duration_to_minutes(display: Optional[str]) -> float:
    """Total minutes of a H:MM:SS or M:SS display string, 0 when unparseable."""
    if not isinstance(display, str) or display == UNKNOWN_DURATION:
        return 0
    parts = display.strip().split(':')
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        return 0
    numbers = [int(p) for p in parts]
    if len(numbers) == 2:
        numbers.insert(0, 0)
    h, m, s = numbers
    return h * 60 + m + s / 60
