"""
Video ID Extraction
Parses free-form YouTube URLs into the 11-character video ID.
"""

import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")

# Loose scan used when the input is not a recognizable YouTube URL
VIDEO_ID_SCAN = re.compile(r"([A-Za-z0-9_-]{11})(?:\b|$)")

SHORT_LINK_HOST = "youtu.be"
MAIN_HOST = "youtube.com"

# Path keywords followed by the video ID, e.g. /embed/<id>
PATH_KEYWORDS = ("embed", "v", "e", "watch")


def _valid(candidate: Optional[str]) -> Optional[str]:
    if candidate and VIDEO_ID_PATTERN.match(candidate):
        return candidate
    return None


def _scan(text: str) -> Optional[str]:
    match = VIDEO_ID_SCAN.search(text)
    return match.group(1) if match else None


def _from_url(url: str) -> Optional[str]:
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    parts = parsed.path.split("/")

    if host == SHORT_LINK_HOST:
        first = parts[1] if len(parts) > 1 else ""
        return _valid(first[:11])

    if MAIN_HOST in host:
        v = parse_qs(parsed.query).get("v", [""])[0]
        if len(v) == 11 and _valid(v):
            return v

        if "shorts" in parts:
            i = parts.index("shorts")
            if i + 1 < len(parts) and parts[i + 1]:
                return _valid(parts[i + 1][:11])

        for i, part in enumerate(parts[:-1]):
            if part in PATH_KEYWORDS and parts[i + 1]:
                video_id = _valid(parts[i + 1][:11])
                if video_id:
                    return video_id

    return None


def extract_video_id(url: str) -> Optional[str]:
    """
    Extract the YouTube video ID from a URL or free-form string.

    Handles youtu.be short links, watch?v= URLs, /shorts/, /embed/, /v/ and /e/
    paths. Anything else falls back to scanning the raw input for an
    11-character token.

    Args:
        url: URL or text supplied by the caller

    Returns:
        The 11-character video ID, or None if nothing matched
    """
    text = str(url).strip()
    try:
        video_id = _from_url(text)
    except ValueError:
        video_id = None
    return video_id or _scan(text)
