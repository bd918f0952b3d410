"""
YouTube Summarizer Package

Transcript and metadata acquisition for YouTube videos, with a retry/fallback
pipeline over YouTube's InnerTube clients and a thin summarization layer.
"""

__version__ = "0.1.0"

from .utils.logging import get_logger
from .exceptions import (
    TranscriptError,
    InvalidUrlError,
    VideoUnavailableError,
    NetworkFailureError,
    EmptyCaptionsError,
    ParseFailureError,
    AcquisitionCancelledError
)
from .models import Transcript, TranscriptLine, VideoMetadata, VideoRef
from .core.youtube_service import YouTubeService

__all__ = [
    'get_logger',

    # Errors
    'TranscriptError',
    'InvalidUrlError',
    'VideoUnavailableError',
    'NetworkFailureError',
    'EmptyCaptionsError',
    'ParseFailureError',
    'AcquisitionCancelledError',

    # Models
    'Transcript',
    'TranscriptLine',
    'VideoMetadata',
    'VideoRef',

    # Entry point
    'YouTubeService'
]
