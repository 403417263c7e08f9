"""Exception hierarchy and provider error mapping tests."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from listbot.errors import (
    ChainDepthExceeded,
    ConfigurationError,
    DeliveryError,
    InvalidActivityError,
    ListBotError,
    PredictionFailure,
    StateConflictError,
    _walk_exception_chain,
)
from listbot.providers._errors import extract_status_code, wrap_provider_error

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "error",
    [
        ConfigurationError("x"),
        InvalidActivityError("x"),
        PredictionFailure("x"),
        ChainDepthExceeded(3),
        DeliveryError("x"),
        StateConflictError("c1", expected=0, actual=1),
    ],
)
def test_all_errors_share_root(error: ListBotError) -> None:
    assert isinstance(error, ListBotError)


def test_chain_depth_exceeded_message_names_limit() -> None:
    err = ChainDepthExceeded(3, hint="lower it")

    assert str(err) == "Prompt chain exceeded the maximum depth of 3 rounds"
    assert err.max_depth == 3
    assert err.hint == "lower it"


def test_walk_exception_chain_handles_cycles() -> None:
    a = ValueError("a")
    b = RuntimeError("b")
    a.__cause__ = b
    b.__context__ = a

    assert list(_walk_exception_chain(a)) == [a, b]


def test_wrap_provider_error_extracts_status_from_response() -> None:
    class _Resp:
        status_code = 429

    class _SdkError(Exception):
        def __init__(self) -> None:
            super().__init__("rate limited")
            self.response = _Resp()

    err = wrap_provider_error(_SdkError(), provider="openai", prompt="chat")

    assert isinstance(err, PredictionFailure)
    assert err.status_code == 429
    assert err.retryable is True
    assert err.provider == "openai"
    assert err.prompt == "chat"
    assert "429" in str(err)


def test_wrap_provider_error_adds_auth_hint() -> None:
    class _SdkError(Exception):
        status_code = 401

    err = wrap_provider_error(_SdkError("denied"), provider="openai", prompt=None)

    assert err.retryable is False
    assert "OPENAI_API_KEY" in (err.hint or "")


def test_wrap_provider_error_treats_transport_errors_as_retryable() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    try:
        try:
            raise httpx.ConnectError("refused", request=request)
        except httpx.ConnectError as inner:
            raise RuntimeError("sdk wrapper") from inner
    except RuntimeError as outer:
        err = wrap_provider_error(outer, provider="openai", prompt="chat")

    assert err.status_code is None
    assert err.retryable is True


def test_wrap_provider_error_enriches_existing_failure() -> None:
    base = PredictionFailure("bad", status_code=400, retryable=False)

    wrapped = wrap_provider_error(base, provider="openai", prompt="chat")

    assert wrapped is base
    assert wrapped.provider == "openai"
    assert wrapped.prompt == "chat"
    assert wrapped.retryable is False


def test_wrap_provider_error_reraises_cancellation() -> None:
    with pytest.raises(asyncio.CancelledError):
        wrap_provider_error(asyncio.CancelledError(), provider="openai", prompt=None)


def test_extract_status_code_ignores_out_of_range_values() -> None:
    class _Weird(Exception):
        status = 42

    assert extract_status_code(_Weird()) is None
