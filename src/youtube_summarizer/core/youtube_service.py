"""Public entry points for transcript and metadata acquisition."""

import asyncio
from dataclasses import replace
from typing import Optional, Union

from ..exceptions import NetworkFailureError, ParseFailureError, TranscriptError
from ..models import ClientProfile, ThumbnailQuality, Transcript, VideoMetadata
from ..utils.logging import get_logger
from ..utils import youtube_utils
from .client_fetcher import ClientFetcher
from .config import Config, config
from .http_client import HttpClient
from .metadata_extractor import UNKNOWN, extract_metadata
from .orchestrator import ProgressCallback, TranscriptOrchestrator

logger = get_logger("youtube_service")


class YouTubeService:
    """
    Facade over the acquisition pipeline.

    Holds no per-request state, so one instance may serve concurrent callers.
    An injected ``http`` client is shared and left open; otherwise every call
    opens and closes its own session.
    """

    def __init__(
        self,
        http: Optional[HttpClient] = None,
        cfg: Optional[Config] = None,
        progress_callback: Optional[ProgressCallback] = None
    ):
        self._http = http
        self.config = cfg or config
        self.progress_callback = progress_callback
        logger.debug("Initialized YouTubeService")

    @staticmethod
    def is_youtube_url(url: str) -> bool:
        return youtube_utils.is_youtube_url(url)

    @staticmethod
    def get_thumbnail_url(video_id: str, quality: Union[str, ThumbnailQuality] = ThumbnailQuality.MAXRES) -> str:
        return youtube_utils.get_thumbnail_url(video_id, quality)

    def _orchestrator(self, http: HttpClient) -> TranscriptOrchestrator:
        return TranscriptOrchestrator(
            http=http,
            innertube=self.config.innertube,
            retry=self.config.retry,
            network=self.config.network,
            progress_callback=self.progress_callback,
        )

    async def fetch_transcript(
        self,
        url: str,
        lang_code: str = "en",
        cancel_event: Optional[asyncio.Event] = None
    ) -> Transcript:
        """
        Fetch the transcript of a YouTube video.

        Args:
            url: Watch URL, short link or bare video ID
            lang_code: Preferred caption language
            cancel_event: Checked between attempts

        Returns:
            Transcript; ``lines`` is empty when the video has no usable captions

        Raises:
            InvalidUrlError: No video ID in ``url``
            VideoUnavailableError: The video cannot be played
            NetworkFailureError / ParseFailureError: Every attempt failed
        """
        video_ref = youtube_utils.parse_video_id(url)
        http = self._http or HttpClient(self.config.network)
        try:
            return await self._orchestrator(http).acquire(video_ref, lang_code or "en", cancel_event)
        finally:
            if self._http is None:
                await http.close()

    async def fetch_video_metadata(self, url: str) -> VideoMetadata:
        """
        Fetch title, author, description, tags and publish date.

        The watch page is tried first since only it carries the publish date
        and renderer fallbacks. The ANDROID player fills in whatever the page
        could not provide, or replaces it when the page could not be fetched.
        """
        video_ref = youtube_utils.parse_video_id(url)
        http = self._http or HttpClient(self.config.network)
        try:
            fetcher = ClientFetcher(http, self.config.innertube)
            metadata: Optional[VideoMetadata] = None
            last_error: Optional[TranscriptError] = None

            for profile in (ClientProfile.WEB, ClientProfile.ANDROID):
                try:
                    payload = await fetcher.fetch_player_context(video_ref.video_id, profile)
                except (NetworkFailureError, ParseFailureError) as e:
                    logger.warning(f"Metadata fetch via {profile.value} failed for {video_ref.video_id}: {e}")
                    last_error = e
                    continue

                extracted = extract_metadata(payload, video_ref)
                metadata = extracted if metadata is None else _merge_metadata(metadata, extracted)
                if metadata.title != UNKNOWN and metadata.author != UNKNOWN and metadata.description:
                    break

            if metadata is None:
                raise last_error
            logger.info(f"Fetched metadata for {video_ref.video_id}: {metadata.title}")
            return metadata
        finally:
            if self._http is None:
                await http.close()


def _merge_metadata(primary: VideoMetadata, secondary: VideoMetadata) -> VideoMetadata:
    """Fill the gaps of ``primary`` from ``secondary``."""
    return replace(
        primary,
        title=primary.title if primary.title != UNKNOWN else secondary.title,
        author=primary.author if primary.author != UNKNOWN else secondary.author,
        description=primary.description or secondary.description,
        channel_url=primary.channel_url or secondary.channel_url,
        tags=primary.tags or secondary.tags,
        publish_date=primary.publish_date or secondary.publish_date,
    )
