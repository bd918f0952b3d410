"""
Utility modules for the YouTube summarizer.
"""

from .logging import setup_logger, get_logger
from .youtube_utils import (
    is_youtube_url,
    extract_video_id,
    parse_video_id,
    get_thumbnail_url,
    decode_html,
    strip_tags,
    clean_caption_text
)

__all__ = [
    'setup_logger',
    'get_logger',
    'is_youtube_url',
    'extract_video_id',
    'parse_video_id',
    'get_thumbnail_url',
    'decode_html',
    'strip_tags',
    'clean_caption_text'
]
