"""Error taxonomy for transcript and metadata acquisition."""

from typing import Optional


class TranscriptError(Exception):
    """Base class for transcript-related errors."""

    # Whether another strategy may still succeed after this error
    retryable: bool = False

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__doc__ or ""
        super().__init__(self.message)


class InvalidUrlError(TranscriptError):
    """The input does not contain a recognizable YouTube video identifier."""

    def __init__(self, url: Optional[str] = None, message: str = ""):
        self.url = url
        super().__init__(message or f"Invalid YouTube URL: {url!r}")


class VideoUnavailableError(TranscriptError):
    """The video cannot be played (removed, private, region-blocked or login-required)."""

    def __init__(self, status: str = "ERROR", reason: Optional[str] = None):
        self.status = status
        self.reason = reason
        if reason:
            message = reason
        elif status == "LOGIN_REQUIRED":
            message = "This video requires login to view"
        elif status == "UNPLAYABLE":
            message = "Video is unplayable"
        else:
            message = "Video unavailable"
        super().__init__(message)


class NetworkFailureError(TranscriptError):
    """Transient transport failure: connection error, timeout or HTTP error status."""

    retryable = True

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class EmptyCaptionsError(TranscriptError):
    """The caption payload was fetched and parsed but held no usable lines."""

    retryable = True


class ParseFailureError(TranscriptError):
    """The payload did not match any known response schema."""

    retryable = True


class AcquisitionCancelledError(TranscriptError):
    """The caller cancelled the acquisition between two attempts."""
