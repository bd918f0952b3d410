"""Command layer: transcript -> prompt -> backend -> markdown note."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..core.config import SummaryConfig, config
from ..core.youtube_service import YouTubeService
from ..exceptions import TranscriptError
from ..models import Transcript, VideoMetadata
from ..utils.logging import get_logger
from .prompt_service import PromptService

logger = get_logger("summarization_service")


class AlreadyProcessingError(Exception):
    """A summarization is already running on this service."""

    def __init__(self, message: str = "Already processing a video, please wait..."):
        super().__init__(message)


class SummarizationError(Exception):
    """The summary could not be produced."""


class SummarizationBackend(ABC):
    """Anything that turns a prompt into summary markdown."""

    @abstractmethod
    async def summarize(self, prompt: str, video_id: str) -> str:
        ...


class NoteRenderer:
    """Renders the final markdown note."""

    def render(self, transcript: Transcript, thumbnail_url: str, url: str, summary_text: str) -> str:
        author = f"[{transcript.author}]({transcript.channel_url})" if transcript.channel_url else transcript.author
        parts = [
            f"# {transcript.title}\n",
            f"![Thumbnail]({thumbnail_url})\n",
            f"👤 {author}  🔗 [Watch video]({url})",
            summary_text,
        ]
        return "\n".join(parts)


@dataclass
class SummaryResult:
    """Outcome of one summarization."""
    markdown: str
    transcript: Transcript
    used_metadata: bool = False
    metadata: Optional[VideoMetadata] = None


class SummarizationService:
    """
    Orchestrates a full summarization request.

    At most one request runs at a time; a concurrent call is rejected with
    AlreadyProcessingError instead of being queued.
    """

    def __init__(
        self,
        youtube_service: YouTubeService,
        prompt_service: PromptService,
        backend: SummarizationBackend,
        renderer: Optional[NoteRenderer] = None,
        summary_config: Optional[SummaryConfig] = None
    ):
        self.youtube_service = youtube_service
        self.prompt_service = prompt_service
        self.backend = backend
        self.renderer = renderer or NoteRenderer()
        self.summary_config = summary_config or config.summary
        self._lock = asyncio.Lock()
        logger.info("Initialized SummarizationService")

    @property
    def is_processing(self) -> bool:
        return self._lock.locked()

    async def summarize_video(self, url: str, lang_code: Optional[str] = None) -> SummaryResult:
        """
        Summarize a YouTube video into a markdown note.

        Raises:
            AlreadyProcessingError: Another summarization is in progress
            TranscriptError: Acquisition failed (invalid URL, unavailable video, ...)
            SummarizationError: No captions and metadata fallback disabled, or the backend failed
        """
        if self._lock.locked():
            logger.warning(f"Rejected summarization of {url}: already processing")
            raise AlreadyProcessingError()

        async with self._lock:
            return await self._summarize(url, lang_code or self.summary_config.default_language)

    async def _summarize(self, url: str, lang_code: str) -> SummaryResult:
        transcript = await self.youtube_service.fetch_transcript(url, lang_code)
        thumbnail_url = self.youtube_service.get_thumbnail_url(
            transcript.video_id, self.summary_config.thumbnail_quality
        )

        metadata: Optional[VideoMetadata] = None
        if transcript.has_captions:
            prompt = self.prompt_service.build_prompt(transcript.text)
        elif self.summary_config.fallback_to_metadata:
            logger.info(f"No captions for {transcript.video_id}, summarizing from metadata")
            try:
                metadata = await self.youtube_service.fetch_video_metadata(url)
            except TranscriptError as e:
                raise SummarizationError(f"No captions available and metadata fetch failed: {e}") from e
            prompt = self.prompt_service.build_metadata_prompt(metadata)
        else:
            raise SummarizationError("No captions available for this video")

        try:
            summary = await self.backend.summarize(prompt, transcript.video_id)
        except Exception as e:
            logger.error(f"Summarization backend failed for {transcript.video_id}: {e}")
            raise SummarizationError(f"Summary generation failed: {e}") from e

        markdown = self.renderer.render(transcript, thumbnail_url, url, summary)
        logger.info(f"Summary generated for {transcript.video_id} (metadata only: {metadata is not None})")
        return SummaryResult(
            markdown=markdown,
            transcript=transcript,
            used_metadata=metadata is not None,
            metadata=metadata,
        )
