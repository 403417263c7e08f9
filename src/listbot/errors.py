"""Exception hierarchy for listbot."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class ListBotError(Exception):
    """Base exception for all listbot errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(ListBotError):
    """Configuration or prompt definition validation failed."""


class InvalidActivityError(ListBotError):
    """An inbound activity could not be parsed."""


class PredictionFailure(ListBotError):
    """The prediction engine was unreachable or returned malformed data.

    Carries enough metadata for diagnostics; the executor never retries on
    its own.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        prompt: str | None = None,
        provider: str | None = None,
        status_code: int | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.prompt = prompt
        self.provider = provider
        self.status_code = status_code
        self.retryable = retryable


class ChainDepthExceeded(ListBotError):
    """A turn ran more prediction rounds than the configured maximum."""

    def __init__(self, max_depth: int, *, hint: str | None = None) -> None:
        super().__init__(
            f"Prompt chain exceeded the maximum depth of {max_depth} rounds",
            hint=hint,
        )
        self.max_depth = max_depth


class DeliveryError(ListBotError):
    """The delivery channel failed or timed out."""


class StateConflictError(ListBotError):
    """A store write was based on a stale conversation state version."""

    def __init__(
        self, conversation_id: str, *, expected: int, actual: int
    ) -> None:
        super().__init__(
            f"State conflict for conversation {conversation_id!r}: "
            f"expected version {expected}, found {actual}"
        )
        self.conversation_id = conversation_id
        self.expected = expected
        self.actual = actual


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
