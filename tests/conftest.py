"""Pytest configuration and fixtures for the transcript acquisition tests."""

import os
import sys

import pytest

# Make the package importable without installation, and the shared mocks importable by name
TESTS_DIR = os.path.abspath(os.path.dirname(__file__))
sys.path.insert(0, os.path.join(os.path.dirname(TESTS_DIR), "src"))
sys.path.insert(0, TESTS_DIR)

from youtube_summarizer.core.config import Config, NetworkConfig, RetryConfig
from mocks.mock_http import FakeHttpClient


@pytest.fixture
def fake_http():
    """Scripted HTTP client with no routes."""
    return FakeHttpClient()


@pytest.fixture
def retry_config():
    """Full retry budget with a short per-attempt timeout."""
    return RetryConfig(
        page_refetch_attempts=3,
        max_params_variants=5,
        attempt_timeout=2.0,
        enable_web_fallback=True,
        enable_get_transcript=True,
        max_alternate_tracks=3,
    )


@pytest.fixture
def network_config():
    """No backoff so failure scenarios run instantly."""
    return NetworkConfig(network_backoff_seconds=0)


@pytest.fixture
def test_config(retry_config, network_config):
    return Config(retry=retry_config, network=network_config)
