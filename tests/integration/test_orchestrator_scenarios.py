"""End-to-end acquisition scenarios against a scripted YouTube."""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from youtube_summarizer.core.orchestrator import TranscriptOrchestrator
from youtube_summarizer.core.youtube_service import YouTubeService
from youtube_summarizer.exceptions import (
    AcquisitionCancelledError,
    InvalidUrlError,
    NetworkFailureError,
    ParseFailureError,
    VideoUnavailableError,
)
from youtube_summarizer.models import AttemptOutcome, VideoRef

from mocks.mock_http import FakeHttpClient, SlowResponse
from mocks.youtube_payloads import (
    DEFAULT_CAPTIONS,
    VIDEO_ID,
    WATCH_URL,
    get_transcript_response,
    initial_data,
    player_response,
    timedtext_p_xml,
    watch_page,
)

PLAYER = "/youtubei/v1/player"
WATCH = "/watch?v="
CAPTIONS = "/api/timedtext"
GET_TRANSCRIPT = "/youtubei/v1/get_transcript"


def _outcomes(transcript):
    return [(a.strategy, a.outcome) for a in transcript.attempts]


class TestAcquisitionScenarios:
    """The four reference scenarios."""

    @pytest.mark.asyncio
    async def test_english_auto_captions(self, fake_http, test_config):
        fake_http.on_post(PLAYER, player_response(tracks=[("en", "asr")]))
        fake_http.on_get(CAPTIONS, DEFAULT_CAPTIONS)

        transcript = await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript(WATCH_URL)

        assert transcript.video_id == VIDEO_ID
        assert transcript.has_captions
        assert transcript.lines[0].text == "We're no strangers to love"
        assert transcript.title == "Never Gonna Give You Up"
        assert transcript.author == "Rick Astley"
        assert transcript.channel_url.startswith("https://www.youtube.com/channel/")
        assert transcript.language_code == "en"
        assert transcript.is_fallback_language is False
        assert _outcomes(transcript) == [("android_player", AttemptOutcome.SUCCESS)]
        assert len(fake_http.calls) == 2

    @pytest.mark.asyncio
    async def test_only_spanish_captions_falls_back(self, fake_http, test_config, caplog):
        caplog.set_level(logging.WARNING)
        events = []
        fake_http.on_post(PLAYER, player_response(tracks=[("es", "")]))
        fake_http.on_get("lang=es", timedtext_p_xml([(0, 1500, "Hola a todos")]))
        service = YouTubeService(http=fake_http, cfg=test_config, progress_callback=events.append)

        transcript = await service.fetch_transcript(WATCH_URL, "en")

        assert transcript.has_captions
        assert transcript.language_code == "es"
        assert transcript.is_fallback_language is True
        assert "Language 'en' not found, falling back to 'es'" in caplog.text
        assert any(event.stage == "fallback_language" for event in events)

    @pytest.mark.asyncio
    async def test_login_required_fails_immediately(self, fake_http, test_config):
        fake_http.on_post(PLAYER, player_response(status="LOGIN_REQUIRED", reason="Sign in to confirm your age"))
        fake_http.on_get(WATCH, watch_page(player=player_response()))

        with pytest.raises(VideoUnavailableError) as exc_info:
            await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript(WATCH_URL)

        assert exc_info.value.status == "LOGIN_REQUIRED"
        assert len(fake_http.calls) == 1
        assert PLAYER in fake_http.calls[0]["url"]

    @pytest.mark.asyncio
    async def test_transient_empty_body_recovers(self, fake_http, test_config):
        sleep = AsyncMock()
        fake_http.on_post(PLAYER, player_response())
        fake_http.on_get(CAPTIONS, "", DEFAULT_CAPTIONS)

        with pytest.MonkeyPatch.context() as mp:
            mp.setattr(asyncio, "sleep", sleep)
            transcript = await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript(WATCH_URL)

        assert transcript.has_captions
        assert _outcomes(transcript) == [
            ("android_player", AttemptOutcome.EMPTY_RESULT),
            ("android_player", AttemptOutcome.SUCCESS),
        ]
        assert len(fake_http.calls_to(PLAYER)) == 2
        sleep.assert_not_called()


class TestNoCaptions:
    """Zero caption tracks is a result, not an error."""

    @pytest.mark.asyncio
    async def test_zero_tracks_returns_empty_transcript(self, fake_http, test_config):
        fake_http.on_post(PLAYER, player_response(tracks=[]))
        fake_http.on_get(WATCH, watch_page(player=player_response(tracks=[]), data=initial_data()))
        events = []
        service = YouTubeService(http=fake_http, cfg=test_config, progress_callback=events.append)

        transcript = await service.fetch_transcript(WATCH_URL)

        assert transcript.lines == []
        assert transcript.has_captions is False
        assert transcript.title == "Never Gonna Give You Up"
        assert transcript.author == "Rick Astley"
        assert _outcomes(transcript) == [
            ("android_player", AttemptOutcome.EMPTY_RESULT),
            ("web_watch_page", AttemptOutcome.EMPTY_RESULT),
        ]
        assert fake_http.calls_to(GET_TRANSCRIPT) == []
        assert events[-1].stage == "no_captions"

    @pytest.mark.asyncio
    async def test_always_empty_bodies_exhaust_budget(self, fake_http, test_config):
        fake_http.on_post(PLAYER, player_response())
        fake_http.on_get(WATCH, watch_page(player=player_response(), data=initial_data()))
        fake_http.on_get(CAPTIONS, "")
        fake_http.on_post(GET_TRANSCRIPT, get_transcript_response([]))

        transcript = await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript(WATCH_URL)

        assert transcript.lines == []
        assert transcript.title == "Never Gonna Give You Up"
        strategies = [a.strategy for a in transcript.attempts]
        assert strategies.count("android_player") == 3
        assert strategies.count("web_watch_page") == 3
        assert strategies.count("get_transcript") == 4
        assert all(a.outcome == AttemptOutcome.EMPTY_RESULT for a in transcript.attempts)


class TestAlternateStrategies:
    """Later strategies take over when earlier ones come back empty."""

    @pytest.mark.asyncio
    async def test_alternate_track_used_when_preferred_track_empty(self, fake_http, test_config):
        fake_http.on_post(PLAYER, player_response(tracks=[("en", "asr"), ("de", "")]))
        fake_http.on_get(WATCH, watch_page(player=player_response(tracks=[("en", "asr"), ("de", "")])))
        fake_http.on_get("lang=en", "")
        fake_http.on_get("lang=de", timedtext_p_xml([(0, 900, "Hallo")]))

        transcript = await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript(WATCH_URL, "en")

        assert transcript.lines[0].text == "Hallo"
        assert transcript.language_code == "de"
        assert transcript.is_fallback_language is True
        assert transcript.attempts[-1].strategy == "alternate_track"

    @pytest.mark.asyncio
    async def test_get_transcript_with_page_params(self, fake_http, test_config):
        fake_http.on_post(PLAYER, player_response())
        fake_http.on_get(WATCH, watch_page(player=player_response(), data=initial_data(transcript_params="PAGEPARAMS")))
        fake_http.on_get(CAPTIONS, "")
        fake_http.on_post(GET_TRANSCRIPT, get_transcript_response([(0, 2000, "from the panel")]))

        transcript = await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript(WATCH_URL)

        assert transcript.lines[0].text == "from the panel"
        assert transcript.language_code == "en"
        assert transcript.attempts[-1].strategy == "get_transcript"
        call = fake_http.calls_to(GET_TRANSCRIPT)[0]
        assert call["body"]["params"] == "PAGEPARAMS"
        assert call["params"]["key"] == "page-api-key"

    @pytest.mark.parametrize("tracks,requested,expected_fallback", [
        ([("en", "asr")], "en-US", False),
        ([("en-GB", "")], "en", False),
        ([("de", "")], "en", True),
    ])
    @pytest.mark.asyncio
    async def test_get_transcript_language_flag_follows_resolver(
        self, fake_http, test_config, tracks, requested, expected_fallback
    ):
        fake_http.on_post(PLAYER, player_response(tracks=tracks))
        fake_http.on_get(WATCH, watch_page(player=player_response(tracks=tracks), data=initial_data()))
        fake_http.on_get(CAPTIONS, "")
        fake_http.on_post(GET_TRANSCRIPT, get_transcript_response([(0, 1000, "hello")]))

        transcript = await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript(WATCH_URL, requested)

        assert transcript.attempts[-1].strategy == "get_transcript"
        assert transcript.language_code == tracks[0][0]
        assert transcript.is_fallback_language is expected_fallback

    @pytest.mark.asyncio
    async def test_web_fallback_after_android_network_errors(self, fake_http, test_config):
        fake_http.on_post(PLAYER, NetworkFailureError("HTTP 403", status_code=403))
        fake_http.on_get(WATCH, watch_page(player=player_response(), data=initial_data()))
        fake_http.on_get(CAPTIONS, DEFAULT_CAPTIONS)

        transcript = await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript(WATCH_URL)

        assert transcript.has_captions
        assert [a.outcome for a in transcript.attempts] == [AttemptOutcome.HTTP_ERROR] * 3 + [AttemptOutcome.SUCCESS]
        assert transcript.attempts[-1].strategy == "web_watch_page"

    @pytest.mark.asyncio
    async def test_web_fallback_disabled(self, fake_http, test_config):
        test_config.retry.enable_web_fallback = False
        test_config.retry.enable_get_transcript = False
        fake_http.on_post(PLAYER, player_response())
        fake_http.on_get(CAPTIONS, "")

        transcript = await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript(WATCH_URL)

        assert transcript.lines == []
        assert fake_http.calls_to(WATCH) == []
        assert len(transcript.attempts) == 3


class TestFailures:
    """Errors that surface once the budget is spent."""

    @pytest.mark.asyncio
    async def test_invalid_url(self, fake_http, test_config):
        with pytest.raises(InvalidUrlError):
            await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript("https://example.com/")
        assert fake_http.calls == []

    @pytest.mark.asyncio
    async def test_all_network_failures_raise_last_error(self, fake_http, test_config):
        fake_http.on_post(PLAYER, NetworkFailureError("connection reset"))
        fake_http.on_get(WATCH, NetworkFailureError("connection reset"))

        with pytest.raises(NetworkFailureError):
            await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript(WATCH_URL)

        # 3 ANDROID rounds, 3 WEB rounds, 4 get_transcript variants
        assert len(fake_http.calls) == 10

    @pytest.mark.asyncio
    async def test_backoff_only_after_repeated_network_errors(self, fake_http, test_config):
        test_config.network.network_backoff_seconds = 0.5
        sleep = AsyncMock()
        fake_http.on_post(PLAYER, NetworkFailureError("connection reset"))
        fake_http.on_get(WATCH, NetworkFailureError("connection reset"))

        with pytest.MonkeyPatch.context() as mp:
            mp.setattr(asyncio, "sleep", sleep)
            with pytest.raises(NetworkFailureError):
                await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript(WATCH_URL)

        # No delay before the first two attempts
        assert sleep.await_count == len(fake_http.calls) - 2
        for call in sleep.await_args_list:
            assert 0.375 <= call.args[0] <= 0.625

    @pytest.mark.asyncio
    async def test_parse_failures_surface(self, fake_http, test_config):
        fake_http.on_post(PLAYER, player_response())
        fake_http.on_get(CAPTIONS, "<html>Our systems have detected unusual traffic</html>")
        fake_http.on_get(WATCH, "<html>consent page</html>")
        fake_http.on_post(GET_TRANSCRIPT, {"responseContext": {}})

        with pytest.raises(ParseFailureError):
            await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript(WATCH_URL)

        # A parse failure is not retried with the same request shape
        assert len(fake_http.calls_to(PLAYER)) == 1

    @pytest.mark.asyncio
    async def test_attempt_timeout_is_network_failure(self, fake_http, test_config):
        test_config.retry.attempt_timeout = 0.05
        fake_http.on_post(PLAYER, SlowResponse(5, player_response()))
        fake_http.on_get(WATCH, watch_page(player=player_response(), data=initial_data()))
        fake_http.on_get(CAPTIONS, DEFAULT_CAPTIONS)

        transcript = await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript(WATCH_URL)

        assert transcript.has_captions
        assert transcript.attempts[0].outcome == AttemptOutcome.HTTP_ERROR
        assert "timed out" in transcript.attempts[0].detail

    @pytest.mark.asyncio
    async def test_cancelled_before_first_attempt(self, fake_http, test_config):
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(AcquisitionCancelledError):
            await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript(WATCH_URL, cancel_event=cancel)

        assert fake_http.calls == []

    @pytest.mark.asyncio
    async def test_cancelled_between_attempts(self, fake_http, test_config):
        cancel = asyncio.Event()
        fake_http.on_post(PLAYER, player_response())
        fake_http.on_get(CAPTIONS, "")
        orchestrator = TranscriptOrchestrator(
            http=fake_http,
            innertube=test_config.innertube,
            retry=test_config.retry,
            network=test_config.network,
        )
        original = fake_http.get_text

        async def get_text_then_cancel(url, params=None, headers=None):
            cancel.set()
            return await original(url, params=params, headers=headers)

        fake_http.get_text = get_text_then_cancel

        with pytest.raises(AcquisitionCancelledError):
            await orchestrator.acquire(VideoRef(video_id=VIDEO_ID), "en", cancel_event=cancel)

        assert len(fake_http.calls_to(PLAYER)) == 1


class TestServiceLifecycle:

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self, fake_http, test_config):
        fake_http.on_post(PLAYER, player_response())
        fake_http.on_get(CAPTIONS, DEFAULT_CAPTIONS)

        await YouTubeService(http=fake_http, cfg=test_config).fetch_transcript(WATCH_URL)

        assert fake_http.closed is False

    @pytest.mark.asyncio
    async def test_service_is_reentrant(self, test_config):
        def scripted():
            http = FakeHttpClient()
            http.on_post(PLAYER, player_response())
            http.on_get(CAPTIONS, DEFAULT_CAPTIONS)
            return http

        results = await asyncio.gather(
            YouTubeService(http=scripted(), cfg=test_config).fetch_transcript(WATCH_URL),
            YouTubeService(http=scripted(), cfg=test_config).fetch_transcript("https://youtu.be/dQw4w9WgXcQ"),
        )

        assert all(result.has_captions for result in results)
        assert results[1].video_ref.source_url == "https://youtu.be/dQw4w9WgXcQ"

    def test_static_helpers(self):
        assert YouTubeService.is_youtube_url(WATCH_URL) is True
        assert YouTubeService.get_thumbnail_url(VIDEO_ID, "high") == f"https://img.youtube.com/vi/{VIDEO_ID}/hqdefault.jpg"


class TestFetchVideoMetadata:

    @pytest.mark.asyncio
    async def test_from_watch_page(self, fake_http, test_config):
        fake_http.on_get(WATCH, watch_page(player=player_response(), data=initial_data()))

        metadata = await YouTubeService(http=fake_http, cfg=test_config).fetch_video_metadata(WATCH_URL)

        assert metadata.title == "Never Gonna Give You Up"
        assert metadata.publish_date == "2009-10-24"
        assert metadata.tags == frozenset({"rick astley", "music"})
        assert fake_http.calls_to(PLAYER) == []

    @pytest.mark.asyncio
    async def test_android_fallback_when_page_fails(self, fake_http, test_config):
        fake_http.on_get(WATCH, NetworkFailureError("HTTP 429", status_code=429))
        fake_http.on_post(PLAYER, player_response())

        metadata = await YouTubeService(http=fake_http, cfg=test_config).fetch_video_metadata(WATCH_URL)

        assert metadata.title == "Never Gonna Give You Up"
        assert metadata.author == "Rick Astley"

    @pytest.mark.asyncio
    async def test_both_fail(self, fake_http, test_config):
        fake_http.on_get(WATCH, NetworkFailureError("HTTP 429", status_code=429))
        fake_http.on_post(PLAYER, NetworkFailureError("HTTP 429", status_code=429))

        with pytest.raises(NetworkFailureError):
            await YouTubeService(http=fake_http, cfg=test_config).fetch_video_metadata(WATCH_URL)

    @pytest.mark.asyncio
    async def test_unavailable_video(self, fake_http, test_config):
        fake_http.on_get(WATCH, watch_page(player=player_response(status="ERROR", reason="Video unavailable")))

        with pytest.raises(VideoUnavailableError, match="Video unavailable"):
            await YouTubeService(http=fake_http, cfg=test_config).fetch_video_metadata(WATCH_URL)
