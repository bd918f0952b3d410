"""Data models for video-related information."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from ..exceptions import InvalidUrlError

VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")


class ThumbnailQuality(Enum):
    """Thumbnail tiers served by img.youtube.com."""
    DEFAULT = "default"     # 120x90
    MEDIUM = "medium"       # 320x180
    HIGH = "high"           # 480x360
    STANDARD = "standard"   # 640x480
    MAXRES = "maxres"       # 1280x720

    @property
    def filename(self) -> str:
        return {
            ThumbnailQuality.DEFAULT: "default.jpg",
            ThumbnailQuality.MEDIUM: "mqdefault.jpg",
            ThumbnailQuality.HIGH: "hqdefault.jpg",
            ThumbnailQuality.STANDARD: "sddefault.jpg",
            ThumbnailQuality.MAXRES: "maxresdefault.jpg",
        }[self]


class ClientProfile(Enum):
    """YouTube client impersonated by a player request."""
    ANDROID = "android"
    WEB = "web"


class AttemptOutcome(Enum):
    """Outcome of one acquisition attempt."""
    SUCCESS = "success"
    EMPTY_RESULT = "empty_result"
    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class VideoRef:
    """Canonical reference to a single video."""
    video_id: str
    source_url: str = ""

    def __post_init__(self):
        if not isinstance(self.video_id, str) or not VIDEO_ID_PATTERN.match(self.video_id):
            raise InvalidUrlError(self.source_url or self.video_id)

    @property
    def watch_url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"

    def thumbnail_url(self, quality: ThumbnailQuality = ThumbnailQuality.MAXRES) -> str:
        return f"https://img.youtube.com/vi/{self.video_id}/{quality.filename}"


@dataclass(frozen=True)
class CaptionTrack:
    """One per-language caption stream exposed by the player response."""
    language_code: str
    base_url: str
    display_name: str = ""
    kind: str = ""

    @property
    def is_auto_generated(self) -> bool:
        return self.kind == "asr"

    @property
    def label(self) -> str:
        return self.display_name or self.language_code


@dataclass(frozen=True)
class TranscriptLine:
    """Represents a single transcript line with timing in milliseconds."""
    text: str
    offset_ms: int
    duration_ms: int

    def __post_init__(self):
        if self.offset_ms < 0 or self.duration_ms < 0:
            raise ValueError(
                f"Transcript timings must be non-negative (offset={self.offset_ms}, duration={self.duration_ms})"
            )

    @property
    def end_ms(self) -> int:
        return self.offset_ms + self.duration_ms

    @property
    def timestamp_str(self) -> str:
        """Get formatted timestamp string."""
        minutes, seconds = divmod(self.offset_ms // 1000, 60)
        return f"{minutes:02d}:{seconds:02d}"


@dataclass
class AcquisitionAttempt:
    """Diagnostic record of one (strategy, parameters) pair the orchestrator tried."""
    strategy: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    outcome: AttemptOutcome = AttemptOutcome.SUCCESS
    detail: str = ""
    elapsed_ms: int = 0


@dataclass
class Transcript:
    """
    Transcript for a video together with the metadata needed to render a note.

    An empty ``lines`` list means the video has no usable captions. That is a
    terminal state callers branch on, not an error.
    """
    video_ref: VideoRef
    title: str = "Unknown"
    author: str = "Unknown"
    channel_url: str = ""
    lines: List[TranscriptLine] = field(default_factory=list)
    language_code: Optional[str] = None
    is_fallback_language: bool = False
    attempts: List[AcquisitionAttempt] = field(default_factory=list)

    def __post_init__(self):
        # Caption formats arrive in document order; sort so consumers can rely on it
        self.lines = sorted(self.lines, key=lambda line: line.offset_ms)

    @property
    def video_id(self) -> str:
        return self.video_ref.video_id

    @property
    def has_captions(self) -> bool:
        return len(self.lines) > 0

    @property
    def text(self) -> str:
        """Transcript text with lines joined by single spaces."""
        return " ".join(line.text for line in self.lines)

    @property
    def timestamped_text(self) -> str:
        return "\n".join(f"[{line.timestamp_str}] {line.text}" for line in self.lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "video_id": self.video_id,
            "url": self.video_ref.source_url,
            "title": self.title,
            "author": self.author,
            "channel_url": self.channel_url,
            "language_code": self.language_code,
            "is_fallback_language": self.is_fallback_language,
            "lines": [
                {
                    "text": line.text,
                    "offset_ms": line.offset_ms,
                    "duration_ms": line.duration_ms
                }
                for line in self.lines
            ]
        }


@dataclass
class VideoMetadata:
    """Represents YouTube video metadata, used when captions are unavailable."""
    video_ref: VideoRef
    title: str = "Unknown"
    description: str = ""
    author: str = "Unknown"
    channel_url: str = ""
    tags: FrozenSet[str] = field(default_factory=frozenset)
    publish_date: str = ""

    @property
    def video_id(self) -> str:
        return self.video_ref.video_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "video_id": self.video_id,
            "url": self.video_ref.source_url,
            "title": self.title,
            "description": self.description,
            "author": self.author,
            "channel_url": self.channel_url,
            "tags": sorted(self.tags),
            "publish_date": self.publish_date,
        }


@dataclass
class RawPlayerPayload:
    """
    Whatever a single player-context fetch produced.

    ``player_response`` is the InnerTube player JSON (from the ANDROID endpoint
    or embedded in the watch page). ``initial_data`` and ``html`` are only
    present for the WEB profile, and so is ``innertube``: the API key, client
    version, visitor data and context scraped from the page's ytcfg.
    """
    video_id: str
    profile: ClientProfile
    player_response: Dict[str, Any] = field(default_factory=dict)
    initial_data: Dict[str, Any] = field(default_factory=dict)
    html: str = ""
    innertube: Dict[str, Any] = field(default_factory=dict)

    @property
    def video_details(self) -> Dict[str, Any]:
        return self.player_response.get("videoDetails") or {}

    @property
    def microformat(self) -> Dict[str, Any]:
        return (self.player_response.get("microformat") or {}).get("playerMicroformatRenderer") or {}
