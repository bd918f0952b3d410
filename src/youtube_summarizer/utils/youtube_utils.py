"""Utility functions for working with YouTube URLs and caption text."""

import re
from html import unescape
from typing import Optional, Union

from ..exceptions import InvalidUrlError
from ..models.video_data import ThumbnailQuality, VideoRef, VIDEO_ID_PATTERN
from .logging import get_logger

logger = get_logger("youtube_utils")

YOUTUBE_URL_PREFIXES = ("https://www.youtube.com/", "https://youtu.be/")

# ?v=ID or &v=ID
_QUERY_ID_PATTERN = re.compile(r"[?&]v=([A-Za-z0-9_-]{11})(?![A-Za-z0-9_-])")
# youtu.be/ID, youtube.com/embed/ID, m.youtube.com/shorts/ID ... on YouTube hosts only
_PATH_ID_PATTERN = re.compile(
    r"(?<![A-Za-z0-9-])(?:youtube(?:-nocookie)?\.com|youtu\.be)/"
    r"(?:(?:embed|shorts|live|v|e)/)?([A-Za-z0-9_-]{11})(?![A-Za-z0-9_-])",
    re.IGNORECASE
)

_TAG_PATTERN = re.compile(r"<[^>]+>")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def is_youtube_url(url: Optional[str]) -> bool:
    """
    Cheap prefix check used to short-circuit before running the pipeline.

    Args:
        url: Candidate URL

    Returns:
        True if the URL starts with a known YouTube origin
    """
    if not url:
        return False
    return url.startswith(YOUTUBE_URL_PREFIXES)


def extract_video_id(url: Optional[str]) -> Optional[str]:
    """
    Extract the 11-character video ID from a YouTube URL.

    Args:
        url: YouTube URL or video ID

    Returns:
        Video ID or None if no ID token is present
    """
    if not url:
        return None

    candidate = url.strip()
    if VIDEO_ID_PATTERN.match(candidate):
        return candidate

    for pattern in (_QUERY_ID_PATTERN, _PATH_ID_PATTERN):
        match = pattern.search(candidate)
        if match:
            return match.group(1)

    return None


def parse_video_id(url: Optional[str]) -> VideoRef:
    """
    Parse a URL into a VideoRef.

    Raises:
        InvalidUrlError: If no video ID can be found
    """
    video_id = extract_video_id(url)
    if not video_id:
        logger.warning(f"Could not extract video ID from URL: {url}")
        raise InvalidUrlError(url)
    return VideoRef(video_id=video_id, source_url=(url or "").strip())


def get_thumbnail_url(video_id: str, quality: Union[str, ThumbnailQuality] = ThumbnailQuality.MAXRES) -> str:
    """
    Build the thumbnail URL for a video. No request is made to check it exists.

    Raises:
        ValueError: If the quality tier is unknown
    """
    if not isinstance(quality, ThumbnailQuality):
        quality = ThumbnailQuality(quality)
    return f"https://img.youtube.com/vi/{video_id}/{quality.filename}"


def _decode_once(text: str) -> str:
    text = unescape(text)
    text = text.replace("\\n", " ")
    return _WHITESPACE_PATTERN.sub(" ", text).strip()


def decode_html(text: Optional[str]) -> str:
    """
    Decode HTML entities, turn escaped newlines into spaces and collapse whitespace.

    Caption payloads are sometimes escaped twice (``&amp;#39;``), so decoding
    runs to a fixed point. After the first pass every change makes the text
    shorter, which bounds the loop, and the result is stable under another
    decode.
    """
    if not text:
        return ""
    previous = None
    current = text
    while current != previous:
        previous, current = current, _decode_once(current)
    return current


def strip_tags(text: str) -> str:
    """Replace inline markup such as ``<font>`` or ``<s>`` with spaces."""
    return _TAG_PATTERN.sub(" ", text)


def clean_caption_text(raw: str) -> str:
    """Strip inner markup, then decode entities."""
    return decode_html(strip_tags(raw))
