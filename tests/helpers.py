"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off engines and channels as coverage expands.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from listbot.actions import ChainSignal
from listbot.channel import MemoryChannel, OutboundActivity, Receipt
from listbot.errors import DeliveryError
from listbot.providers.models import PredictionRequest, PredictionResult
from listbot.state import ConversationState
from listbot.turn import Activity, TurnContext


@dataclass
class ChainRecorder:
    """Chain runner double that records chained prompts."""

    calls: list[tuple[str, dict[str, Any] | None]] = field(default_factory=list)
    signal: ChainSignal = ChainSignal.STOP

    async def __call__(
        self, turn: TurnContext, prompt: Any, data: Any, config: Any
    ) -> ChainSignal:
        del turn, config
        name = prompt if isinstance(prompt, str) else prompt.name
        self.calls.append((name, None if data is None else dict(data)))
        return self.signal


def make_turn(
    text: str = "hello",
    *,
    state: ConversationState | None = None,
    channel: Any = None,
    conversation_id: str = "c1",
    chain_runner: Any = None,
    delivery_timeout_s: float | None = None,
) -> TurnContext:
    """Build a TurnContext without an Application."""
    return TurnContext(
        Activity(conversation_id=conversation_id, text=text),
        state if state is not None else ConversationState(),
        channel if channel is not None else MemoryChannel(),
        chain_runner=chain_runner or ChainRecorder(),
        delivery_timeout_s=delivery_timeout_s,
    )


@dataclass
class FailingChannel:
    """Channel whose deliveries always fail."""

    error: BaseException = field(default_factory=lambda: DeliveryError("offline"))
    attempts: int = 0

    async def send_activity(
        self, conversation_id: str, activity: OutboundActivity
    ) -> Receipt:
        del conversation_id, activity
        self.attempts += 1
        raise self.error


@dataclass
class SlowChannel(MemoryChannel):
    """MemoryChannel that sleeps before recording."""

    delay_s: float = 1.0

    async def send_activity(
        self, conversation_id: str, activity: OutboundActivity
    ) -> Receipt:
        await asyncio.sleep(self.delay_s)
        return await super().send_activity(conversation_id, activity)


@dataclass
class GateEngine:
    """Engine with an explicit barrier for same-conversation race tests.

    The first prediction blocks until ``release`` is set; every prediction
    pops the next scripted result.
    """

    script: list[PredictionResult] = field(default_factory=list)
    started: asyncio.Event = field(default_factory=asyncio.Event)
    release: asyncio.Event = field(default_factory=asyncio.Event)
    requests: list[PredictionRequest] = field(default_factory=list)
    in_flight: int = 0
    max_in_flight: int = 0

    async def predict(self, request: PredictionRequest) -> PredictionResult:
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if len(self.requests) == 1:
                self.started.set()
                await self.release.wait()
            return self.script.pop(0)
        finally:
            self.in_flight -= 1
