"""
YouTube URL parsing and validation.
"""

import re

from ytanalysis.core.constants import YOUTUBE_URL_PATTERNS
from ytanalysis.core.error_codes import JobError, ErrorCode

_COMPILED_PATTERNS = [re.compile(p) for p in YOUTUBE_URL_PATTERNS]


def extract_video_id(url: str) -> str | None:
    """
    Extract the video id from one of the accepted link shapes:
    watch?v=<id>, youtu.be/<id> or embed/<id>.
    Returns None if the URL does not match any of them.
    """
    if not url:
        return None
    url = url.strip()
    if not url:
        return None

    for pattern in _COMPILED_PATTERNS:
        m = pattern.match(url)
        if m:
            return m.group(1)
    return None


def validate_youtube_url(url: str | None) -> str:
    """
    Validate a submitted YouTube URL and return the video_id.
    Raises JobError(INVALID_URL) if empty or not an accepted shape.
    """
    if not url or not url.strip():
        raise JobError(ErrorCode.INVALID_URL, "YouTube URL is required")
    video_id = extract_video_id(url)
    if not video_id:
        raise JobError(ErrorCode.INVALID_URL, "Invalid YouTube URL format")
    return video_id


def is_youtube_url(url: str) -> bool:
    """Quick check if a string looks like an accepted YouTube URL."""
    return extract_video_id(url) is not None
