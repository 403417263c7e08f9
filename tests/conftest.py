"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration, shared application
fixtures, and automatic API test skipping.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os

import pytest

from listbot.application import Application
from listbot.channel import MemoryChannel
from listbot.config import Config
from listbot.handlers import create_registry
from listbot.providers.mock import MockPredictionEngine
from listbot.replies import ReplyPicker
from listbot.store import MemoryStore

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_env(request, monkeypatch):
    """Ensure a clean environment for each test.

    Clears OPENAI_* and LISTBOT_* env vars to prevent test pollution.
    Opt-out: @pytest.mark.allow_env_pollution or @pytest.mark.api
    """
    if request.node.get_closest_marker("allow_env_pollution") or (
        "api" in request.node.keywords
    ):
        return

    for key in list(os.environ.keys()):
        if key.startswith(("OPENAI_", "LISTBOT_")):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


# =============================================================================
# Pytest Hooks
# =============================================================================

API_TESTS_REASON = "API tests require ENABLE_API_TESTS=1"


def _api_tests_enabled() -> bool:
    return bool(os.getenv("ENABLE_API_TESTS"))


def pytest_collection_modifyitems(items):
    """Automatically skip API tests when not explicitly enabled."""
    if _api_tests_enabled():
        return
    skip_api = pytest.mark.skip(reason=API_TESTS_REASON)
    for item in items:
        if "api" in item.keywords:
            item.add_marker(skip_api)


# =============================================================================
# Application Fixtures
# =============================================================================

# Cheap model for opt-in API tests.
_OPENAI_TEST_MODEL = "gpt-4o-mini"


@pytest.fixture
def mock_config() -> Config:
    """Offline configuration using the mock engine."""
    return Config(provider="mock")


@pytest.fixture
def channel() -> MemoryChannel:
    return MemoryChannel()


@pytest.fixture
def engine() -> MockPredictionEngine:
    return MockPredictionEngine()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def app(mock_config, channel, engine, store) -> Application:
    """Application wired to in-memory doubles and deterministic replies."""
    return Application(
        mock_config,
        channel=channel,
        engine=engine,
        store=store,
        registry=create_registry(ReplyPicker.seeded(0)),
    )


@pytest.fixture
def openai_api_key():
    """Return OPENAI_API_KEY or skip the test if unavailable."""
    key = os.getenv("OPENAI_API_KEY")
    if not key:
        pytest.skip("OPENAI_API_KEY not set")
    return key


@pytest.fixture
def openai_test_model():
    """Return the model to use for OpenAI API tests."""
    return _OPENAI_TEST_MODEL
