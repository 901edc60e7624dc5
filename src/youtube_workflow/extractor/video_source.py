"""
Video id extraction from URLs, bare ids, and URL lists.
"""

import re
from typing import Optional


VIDEO_ID_LENGTH = 11

# The id must end at a URL delimiter, whitespace, or end of input.
_ID = r'([A-Za-z0-9_-]{11})(?=$|[/?&#\s])'

VIDEO_ID_PATTERNS = [
    re.compile(r'youtube(?:-nocookie)?\.com/watch\?(?:[^#\s]*&)?v=' + _ID),
    re.compile(r'youtu\.be/' + _ID),
    re.compile(r'youtube(?:-nocookie)?\.com/(?:embed|v|shorts|live)/' + _ID),
    re.compile(r'^' + _ID),  # bare 11-char id
]


def extract_video_id(value) -> Optional[str]:
    """
    Extract a single video id from a URL or bare id.

    Args:
        value: YouTube video URL or bare video id. Anything else, including
               None and non-strings, is accepted.

    Returns:
        Video id (11 characters) or None. Never raises.
    """
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value:
        return None
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(value)
        if match:
            return match.group(1)
    return None


def extract_from_urls(urls: list[str]) -> list[str]:
    """
    Extract video ids from multiple URLs, skipping unresolvable entries.

    Args:
        urls: List of YouTube video URLs or ids.

    Returns:
        List of valid video ids, in input order.
    """
    video_ids = []
    for url in urls:
        vid = extract_video_id(url)
        if vid:
            video_ids.append(vid)
    return video_ids


def extract_from_file(file_path: str) -> list[str]:
    """
    Extract video ids from a text file (one URL per line, ``#`` comments).

    Args:
        file_path: Path to text file with URLs.

    Returns:
        List of video ids.
    """
    video_ids = []
    with open(file_path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#'):
                vid = extract_video_id(line)
                if vid:
                    video_ids.append(vid)
    return video_ids
