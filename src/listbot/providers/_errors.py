"""Shared provider-side error helpers.

Providers map SDK and transport exceptions into `PredictionFailure` with the
status code and retryability found on the exception chain, so callers can
report failures without brittle substring matching.
"""

from __future__ import annotations

import asyncio

import httpx

from listbot.errors import PredictionFailure, _walk_exception_chain

RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 409, 429, 500, 502, 503, 504})


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def _auth_hint(status_code: int | None) -> str | None:
    if status_code in {401, 403}:
        return "Check credentials/permissions (try setting OPENAI_API_KEY or Config.api_key)."
    return None


def wrap_provider_error(
    exc: BaseException,
    *,
    provider: str,
    prompt: str | None,
    message: str | None = None,
) -> PredictionFailure:
    """Map provider SDK exceptions into PredictionFailure."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    # Already wrapped: fill in missing context only.
    if isinstance(exc, PredictionFailure):
        if exc.provider is None:
            exc.provider = provider
        if exc.prompt is None:
            exc.prompt = prompt
        return exc

    status_code = extract_status_code(exc)
    retryable = isinstance(status_code, int) and status_code in RETRYABLE_STATUS_CODES
    if not retryable:
        for e in _walk_exception_chain(exc):
            if isinstance(e, (httpx.TimeoutException, httpx.RequestError, TimeoutError)):
                retryable = True
                break

    msg = message or f"{provider} prediction failed"
    status_note = f" (status={status_code})" if isinstance(status_code, int) else ""
    cause = str(exc)
    return PredictionFailure(
        f"{msg}{status_note}: {cause}" if cause else f"{msg}{status_note}",
        hint=_auth_hint(status_code),
        prompt=prompt,
        provider=provider,
        status_code=status_code,
        retryable=retryable,
    )
