"""Outbound activities and delivery channels."""

from __future__ import annotations

from dataclasses import dataclass, field
import itertools
import sys
from typing import TYPE_CHECKING, Any, Protocol, TextIO, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable

ERROR_TRACE_SCHEMA = "https://www.botframework.com/schemas/error"


@dataclass(frozen=True)
class MessageActivity:
    """A text message for the user."""

    text: str


@dataclass(frozen=True)
class TraceActivity:
    """A diagnostic event; channels may hide it from end users."""

    name: str
    value: Any = None
    value_type: str | None = None
    label: str | None = None


OutboundActivity = MessageActivity | TraceActivity


@dataclass(frozen=True)
class Receipt:
    """Acknowledgement returned by a channel for one delivered activity."""

    id: str


@runtime_checkable
class DeliveryChannel(Protocol):
    """Delivers activities to a conversation."""

    async def send_activity(
        self, conversation_id: str, activity: OutboundActivity
    ) -> Receipt:
        """Deliver *activity* and return its receipt."""
        ...


@dataclass
class MemoryChannel:
    """Channel that records everything it is asked to deliver."""

    sent: list[tuple[str, OutboundActivity]] = field(default_factory=list)
    _ids: itertools.count[int] = field(default_factory=lambda: itertools.count(1))

    async def send_activity(
        self, conversation_id: str, activity: OutboundActivity
    ) -> Receipt:
        """Record *activity*."""
        self.sent.append((conversation_id, activity))
        return Receipt(id=str(next(self._ids)))

    def messages(self, conversation_id: str | None = None) -> list[str]:
        """Text of delivered messages, optionally for one conversation."""
        return [
            a.text
            for cid, a in self.sent
            if isinstance(a, MessageActivity)
            and (conversation_id is None or cid == conversation_id)
        ]

    def traces(self) -> list[TraceActivity]:
        """Delivered trace activities."""
        return [a for _, a in self.sent if isinstance(a, TraceActivity)]


class ConsoleChannel:
    """Prints messages to a stream; traces only when ``show_traces`` is set."""

    def __init__(
        self,
        stream: TextIO | None = None,
        *,
        prefix: str = "bot> ",
        show_traces: bool = False,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._stream = stream or sys.stdout
        self._prefix = prefix
        self._show_traces = show_traces
        counter = itertools.count(1)
        self._next_id = id_factory or (lambda: str(next(counter)))

    async def send_activity(
        self, conversation_id: str, activity: OutboundActivity
    ) -> Receipt:
        """Write *activity* to the stream."""
        del conversation_id
        if isinstance(activity, MessageActivity):
            print(f"{self._prefix}{activity.text}", file=self._stream)
        elif self._show_traces:
            print(
                f"[trace] {activity.name}: {activity.value} ({activity.label})",
                file=self._stream,
            )
        return Receipt(id=self._next_id())
