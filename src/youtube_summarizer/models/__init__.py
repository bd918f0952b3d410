"""Data models for YouTube transcript acquisition."""

from .video_data import (
    VideoRef,
    CaptionTrack,
    TranscriptLine,
    Transcript,
    VideoMetadata,
    AcquisitionAttempt,
    AttemptOutcome,
    ClientProfile,
    ThumbnailQuality,
    RawPlayerPayload,
)

__all__ = [
    "VideoRef",
    "CaptionTrack",
    "TranscriptLine",
    "Transcript",
    "VideoMetadata",
    "AcquisitionAttempt",
    "AttemptOutcome",
    "ClientProfile",
    "ThumbnailQuality",
    "RawPlayerPayload",
]
