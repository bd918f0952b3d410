"""Unit tests for configuration and the client override hook."""

import pytest

from youtube_summarizer.core.config import (
    Config,
    InnerTubeConfig,
    RetryConfig,
    configure_client,
    validate_config,
)


class TestInnerTubeConfig:

    def test_defaults(self, monkeypatch):
        for name in ("INNERTUBE_CLIENT_VERSION", "INNERTUBE_ANDROID_SDK_VERSION", "INNERTUBE_HL", "INNERTUBE_GL"):
            monkeypatch.delenv(name, raising=False)

        innertube = InnerTubeConfig()

        assert innertube.client_version == "19.09.37"
        assert innertube.android_sdk_version == 30
        assert innertube.android_context()["client"]["clientName"] == "ANDROID"
        assert innertube.android_user_agent == "com.google.android.youtube/19.09.37 (Linux; U; Android 11) gzip"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("INNERTUBE_CLIENT_VERSION", "20.01.01")
        monkeypatch.setenv("INNERTUBE_ANDROID_SDK_VERSION", "34")
        monkeypatch.setenv("INNERTUBE_DESKTOP_USER_AGENTS", "UA-1, UA-2")

        innertube = InnerTubeConfig()

        assert innertube.client_version == "20.01.01"
        assert innertube.android_sdk_version == 34
        assert innertube.desktop_user_agents == ["UA-1", "UA-2"]

    def test_web_context(self):
        innertube = InnerTubeConfig(web_client_version="2.2024", desktop_user_agents=["UA"])

        context = innertube.web_context(visitor_data="visitor")

        assert context["client"]["clientName"] == "WEB"
        assert context["client"]["clientVersion"] == "2.2024"
        assert context["client"]["visitorData"] == "visitor"
        assert context["client"]["userAgent"] == "UA"


class TestConfigureClient:

    def test_overrides_applied(self):
        innertube = InnerTubeConfig()

        configure_client(client_version=" 21.0.0 ", android_sdk_version=33, api_key="k", innertube=innertube)

        assert innertube.client_version == "21.0.0"
        assert innertube.android_sdk_version == 33
        assert innertube.api_key == "k"

    @pytest.mark.parametrize("kwargs", [
        {"client_version": ""},
        {"client_version": "   "},
        {"client_version": None},
        {"android_sdk_version": None},
        {"android_sdk_version": True},
        {"android_sdk_version": "30"},
        {"api_key": ""},
    ])
    def test_blank_values_ignored(self, kwargs):
        innertube = InnerTubeConfig(client_version="19.09.37", android_sdk_version=30, api_key="original")

        configure_client(innertube=innertube, **kwargs)

        assert innertube.client_version == "19.09.37"
        assert innertube.android_sdk_version == 30
        assert innertube.api_key == "original"


class TestValidateConfig:

    def test_defaults_are_valid(self):
        is_valid, problems = validate_config(Config())
        assert is_valid is True
        assert problems == []

    def test_problems_reported(self):
        cfg = Config(
            innertube=InnerTubeConfig(api_key=""),
            retry=RetryConfig(page_refetch_attempts=0, attempt_timeout=0),
        )

        is_valid, problems = validate_config(cfg)

        assert is_valid is False
        assert "INNERTUBE_API_KEY" in problems
        assert any("PAGE_REFETCH_ATTEMPTS" in p for p in problems)
        assert any("ATTEMPT_TIMEOUT" in p for p in problems)
