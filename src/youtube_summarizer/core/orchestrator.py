"""
Retry/fallback orchestration for transcript acquisition.

Strategies run strictly in order and the first success wins:

1. ``android_player``   ANDROID player payload, resolved track, timedtext fetch.
                         Refetched when the caption body comes back empty.
2. ``web_watch_page``    the same through the desktop watch page.
3. ``alternate_track``   the other ranked tracks of the last payload.
4. ``get_transcript``    the InnerTube transcript endpoint, one attempt per
                         params variant.

Playability failures abort immediately. Running out of strategies after any
content-level result yields a Transcript with no lines (NoCaptions); if no
attempt ever reached content, the last transport or parse error is raised.
"""

import asyncio
import random
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..exceptions import (
    AcquisitionCancelledError,
    EmptyCaptionsError,
    NetworkFailureError,
    ParseFailureError,
    TranscriptError,
    VideoUnavailableError,
)
from ..models import (
    AcquisitionAttempt,
    AttemptOutcome,
    CaptionTrack,
    ClientProfile,
    RawPlayerPayload,
    Transcript,
    TranscriptLine,
    VideoRef,
)
from ..utils.logging import get_logger
from .caption_resolver import (
    collect_caption_tracks,
    is_language_code_match,
    is_language_match,
    rank_caption_tracks,
    resolve_caption_track,
)
from .client_fetcher import ClientFetcher
from .config import InnerTubeConfig, NetworkConfig, RetryConfig, config
from .http_client import HttpClient
from .metadata_extractor import UNKNOWN, extract_metadata
from .transcript_params import find_page_params, generate_params_variants
from .transcript_parser import TranscriptFetcher

logger = get_logger("orchestrator")


@dataclass
class ProgressEvent:
    """Side-channel notification for a host UI."""
    stage: str
    message: str


ProgressCallback = Callable[[ProgressEvent], None]


@dataclass
class StrategyResult:
    """Lines produced by a successful attempt and where they came from."""
    lines: List[TranscriptLine]
    track: Optional[CaptionTrack] = None
    is_fallback_language: bool = False
    language_code: Optional[str] = None


@dataclass
class AcquisitionState:
    """Everything one acquisition learns along the way. Never shared between requests."""
    video_ref: VideoRef
    language: str
    attempts: List[AcquisitionAttempt] = field(default_factory=list)
    payloads: Dict[ClientProfile, RawPlayerPayload] = field(default_factory=dict)
    tracks: Dict[ClientProfile, List[CaptionTrack]] = field(default_factory=dict)
    last_error: Optional[TranscriptError] = None
    last_parse_error: Optional[ParseFailureError] = None
    reached_content: bool = False
    consecutive_network_errors: int = 0

    @property
    def video_id(self) -> str:
        return self.video_ref.video_id

    def captions_absent(self) -> bool:
        """True when every player payload fetched so far listed zero caption tracks."""
        return bool(self.tracks) and all(not tracks for tracks in self.tracks.values())


class TranscriptOrchestrator:
    """Coordinates acquisition strategies for a single video."""

    def __init__(
        self,
        http: Optional[HttpClient] = None,
        innertube: Optional[InnerTubeConfig] = None,
        retry: Optional[RetryConfig] = None,
        network: Optional[NetworkConfig] = None,
        progress_callback: Optional[ProgressCallback] = None
    ):
        self.innertube = innertube or config.innertube
        self.retry = retry or config.retry
        self.network = network or config.network
        self.progress_callback = progress_callback
        self._http = http

    def _notify(self, stage: str, message: str) -> None:
        logger.debug(f"[{stage}] {message}")
        if self.progress_callback:
            self.progress_callback(ProgressEvent(stage=stage, message=message))

    async def acquire(
        self,
        video_ref: VideoRef,
        language: str = "en",
        cancel_event: Optional[asyncio.Event] = None
    ) -> Transcript:
        """
        Acquire a transcript for a video.

        Returns:
            Transcript, with empty ``lines`` when no captions could be obtained

        Raises:
            VideoUnavailableError: The video cannot be played; nothing is retried
            NetworkFailureError: Every attempt failed at the transport level
            ParseFailureError: Every attempt that reached content failed to parse
            AcquisitionCancelledError: ``cancel_event`` was set between attempts
        """
        http = self._http or HttpClient(self.network)
        try:
            return await self._acquire(http, video_ref, language, cancel_event)
        finally:
            if self._http is None:
                await http.close()

    async def _acquire(
        self,
        http: HttpClient,
        video_ref: VideoRef,
        language: str,
        cancel_event: Optional[asyncio.Event]
    ) -> Transcript:
        state = AcquisitionState(video_ref=video_ref, language=language)
        client_fetcher = ClientFetcher(http, self.innertube)
        transcript_fetcher = TranscriptFetcher(http, self.innertube)

        strategies: List[Callable[[], Awaitable[Optional[StrategyResult]]]] = [
            lambda: self._player_strategy(state, client_fetcher, transcript_fetcher, ClientProfile.ANDROID, cancel_event),
        ]
        if self.retry.enable_web_fallback:
            strategies.append(
                lambda: self._player_strategy(state, client_fetcher, transcript_fetcher, ClientProfile.WEB, cancel_event)
            )
        strategies.append(lambda: self._alternate_track_strategy(state, transcript_fetcher, cancel_event))
        if self.retry.enable_get_transcript:
            strategies.append(lambda: self._get_transcript_strategy(state, transcript_fetcher, cancel_event))

        logger.info(f"Acquiring transcript for {video_ref.video_id} (language={language})")
        self._notify("start", "Fetching video transcript...")

        for index, strategy in enumerate(strategies):
            if index > 0:
                self._notify("retry", "Trying alternate method...")
            result = await strategy()
            if result is not None:
                return self._success(state, result)

        return self._exhausted(state)

    # -------------------------------------------------------------------------
    # Attempt bookkeeping
    # -------------------------------------------------------------------------

    async def _attempt(
        self,
        state: AcquisitionState,
        strategy: str,
        parameters: Dict[str, Any],
        run: Callable[[], Awaitable[Any]],
        cancel_event: Optional[asyncio.Event]
    ) -> Optional[Any]:
        """
        Run one attempt, record it and classify its failure.

        Returns the attempt's result, or None when it failed in a way another
        attempt might recover from. Playability failures are re-raised.
        """
        if cancel_event is not None and cancel_event.is_set():
            raise AcquisitionCancelledError("Transcript acquisition cancelled")

        if state.consecutive_network_errors >= 2 and self.network.network_backoff_seconds > 0:
            delay = self.network.network_backoff_seconds * (0.75 + random.random() * 0.5)
            logger.info(f"Repeated network errors, waiting {delay:.2f}s before next attempt")
            await asyncio.sleep(delay)

        started = time.monotonic()
        record = AcquisitionAttempt(strategy=strategy, parameters=dict(parameters))
        state.attempts.append(record)
        logger.info(f"Attempt {len(state.attempts)}: {strategy} {parameters}")

        try:
            result = await asyncio.wait_for(run(), timeout=self.retry.attempt_timeout)
        except VideoUnavailableError as e:
            self._finish(record, started, AttemptOutcome.HTTP_ERROR, f"{e.status}: {e}")
            raise
        except asyncio.TimeoutError:
            error = NetworkFailureError(f"Attempt timed out after {self.retry.attempt_timeout}s")
            self._record_network_error(state, record, started, error)
            return None
        except NetworkFailureError as e:
            self._record_network_error(state, record, started, e)
            return None
        except EmptyCaptionsError as e:
            self._finish(record, started, AttemptOutcome.EMPTY_RESULT, str(e))
            state.reached_content = True
            state.consecutive_network_errors = 0
            return None
        except ParseFailureError as e:
            self._finish(record, started, AttemptOutcome.PARSE_ERROR, str(e))
            state.last_error = e
            state.last_parse_error = e
            state.consecutive_network_errors = 0
            return None

        self._finish(record, started, AttemptOutcome.SUCCESS, "")
        state.consecutive_network_errors = 0
        return result

    def _record_network_error(
        self,
        state: AcquisitionState,
        record: AcquisitionAttempt,
        started: float,
        error: NetworkFailureError
    ) -> None:
        self._finish(record, started, AttemptOutcome.HTTP_ERROR, str(error))
        state.last_error = error
        state.consecutive_network_errors += 1

    @staticmethod
    def _finish(record: AcquisitionAttempt, started: float, outcome: AttemptOutcome, detail: str) -> None:
        record.outcome = outcome
        record.detail = detail
        record.elapsed_ms = int((time.monotonic() - started) * 1000)
        if outcome == AttemptOutcome.SUCCESS:
            logger.info(f"{record.strategy} succeeded in {record.elapsed_ms}ms")
        else:
            logger.warning(f"{record.strategy} failed ({outcome.value}): {detail}")

    # -------------------------------------------------------------------------
    # Strategies
    # -------------------------------------------------------------------------

    async def _fetch_and_resolve(
        self,
        state: AcquisitionState,
        client_fetcher: ClientFetcher,
        transcript_fetcher: TranscriptFetcher,
        profile: ClientProfile
    ) -> StrategyResult:
        payload = await client_fetcher.fetch_player_context(state.video_id, profile)
        state.payloads[profile] = payload
        tracks = collect_caption_tracks(payload.player_response)
        state.tracks[profile] = tracks

        resolution = resolve_caption_track(tracks, state.language)
        if resolution is None:
            raise EmptyCaptionsError("No captions available for this video")
        if resolution.is_fallback:
            self._notify(
                "fallback_language",
                f"Language '{state.language}' not found, using '{resolution.track.language_code}'"
            )

        lines = await transcript_fetcher.fetch_and_parse(resolution.track)
        return StrategyResult(
            lines=lines,
            track=resolution.track,
            is_fallback_language=resolution.is_fallback,
            language_code=resolution.track.language_code,
        )

    async def _player_strategy(
        self,
        state: AcquisitionState,
        client_fetcher: ClientFetcher,
        transcript_fetcher: TranscriptFetcher,
        profile: ClientProfile,
        cancel_event: Optional[asyncio.Event]
    ) -> Optional[StrategyResult]:
        """Fetch a fresh player payload per round; caption URLs are signed and short-lived."""
        strategy = "android_player" if profile == ClientProfile.ANDROID else "web_watch_page"
        for round_number in range(1, self.retry.page_refetch_attempts + 1):
            result = await self._attempt(
                state,
                strategy,
                {"round": round_number, "language": state.language},
                lambda: self._fetch_and_resolve(state, client_fetcher, transcript_fetcher, profile),
                cancel_event
            )
            if result is not None:
                return result

            last = state.attempts[-1]
            if last.outcome == AttemptOutcome.PARSE_ERROR:
                # Same request shape would fail the same way
                break
            if profile in state.tracks and not state.tracks[profile]:
                # No tracks listed at all; refetching will not create any
                break
            if round_number < self.retry.page_refetch_attempts:
                logger.info(f"{strategy}: refetching (round {round_number + 1}/{self.retry.page_refetch_attempts})")
        return None

    async def _alternate_track_strategy(
        self,
        state: AcquisitionState,
        transcript_fetcher: TranscriptFetcher,
        cancel_event: Optional[asyncio.Event]
    ) -> Optional[StrategyResult]:
        """Try the remaining ranked tracks of the most recent payload that listed any."""
        for profile in (ClientProfile.WEB, ClientProfile.ANDROID):
            tracks = state.tracks.get(profile)
            if tracks:
                break
        else:
            return None

        ranked = rank_caption_tracks(tracks, state.language)
        for track in ranked[1:1 + self.retry.max_alternate_tracks]:
            lines = await self._attempt(
                state,
                "alternate_track",
                {"profile": profile.value, "language": track.language_code, "kind": track.kind},
                lambda track=track: transcript_fetcher.fetch_and_parse(track),
                cancel_event
            )
            if lines is not None:
                is_fallback = not is_language_match(track, state.language)
                if is_fallback:
                    self._notify(
                        "fallback_language",
                        f"Language '{state.language}' not available, using '{track.language_code}'"
                    )
                return StrategyResult(
                    lines=lines,
                    track=track,
                    is_fallback_language=is_fallback,
                    language_code=track.language_code,
                )
        return None

    async def _get_transcript_strategy(
        self,
        state: AcquisitionState,
        transcript_fetcher: TranscriptFetcher,
        cancel_event: Optional[asyncio.Event]
    ) -> Optional[StrategyResult]:
        web_payload = state.payloads.get(ClientProfile.WEB)
        bootstrap = web_payload.innertube if web_payload else {}
        page_params = None
        if web_payload:
            page_params = find_page_params(web_payload.html, web_payload.initial_data)

        if state.captions_absent() and not page_params:
            logger.info(f"No caption tracks and no transcript panel for {state.video_id}; skipping get_transcript")
            return None

        language = state.language
        for profile in (ClientProfile.WEB, ClientProfile.ANDROID):
            resolution = resolve_caption_track(state.tracks.get(profile) or [], state.language)
            if resolution:
                language = resolution.track.language_code
                break

        variants = generate_params_variants(
            state.video_id,
            language,
            page_params=page_params,
            limit=self.retry.max_params_variants
        )
        for index, params in enumerate(variants, start=1):
            lines = await self._attempt(
                state,
                "get_transcript",
                {"variant": index, "of": len(variants), "page_params": bool(page_params and index == 1)},
                lambda params=params: transcript_fetcher.fetch_get_transcript(state.video_id, params, bootstrap),
                cancel_event
            )
            if lines is not None:
                return StrategyResult(
                    lines=lines,
                    language_code=language,
                    is_fallback_language=not is_language_code_match(language, state.language),
                )
        return None

    # -------------------------------------------------------------------------
    # Terminal states
    # -------------------------------------------------------------------------

    def _base_transcript(self, state: AcquisitionState) -> Transcript:
        payload = state.payloads.get(ClientProfile.ANDROID) or state.payloads.get(ClientProfile.WEB)
        if payload is None:
            return Transcript(video_ref=state.video_ref, attempts=state.attempts)

        metadata = extract_metadata(payload, state.video_ref)
        if metadata.title == UNKNOWN and ClientProfile.WEB in state.payloads and payload.profile != ClientProfile.WEB:
            # The ANDROID payload occasionally omits videoDetails
            metadata = extract_metadata(state.payloads[ClientProfile.WEB], state.video_ref)
        return Transcript(
            video_ref=state.video_ref,
            title=metadata.title,
            author=metadata.author,
            channel_url=metadata.channel_url,
            attempts=state.attempts,
        )

    def _success(self, state: AcquisitionState, result: StrategyResult) -> Transcript:
        transcript = self._base_transcript(state)
        transcript.lines = sorted(result.lines, key=lambda line: line.offset_ms)
        transcript.language_code = result.language_code
        transcript.is_fallback_language = result.is_fallback_language
        logger.info(
            f"Transcript for {state.video_id}: {len(transcript.lines)} lines "
            f"(language={result.language_code}, attempts={len(state.attempts)})"
        )
        self._notify("success", "Transcript fetched")
        return transcript

    def _exhausted(self, state: AcquisitionState) -> Transcript:
        if not state.reached_content and state.last_error is not None:
            error = state.last_parse_error or state.last_error
            logger.error(f"All strategies failed for {state.video_id}: {error}")
            raise error

        logger.warning(f"No captions available for {state.video_id} after {len(state.attempts)} attempts")
        self._notify("no_captions", "No captions available for this video")
        return self._base_transcript(state)
