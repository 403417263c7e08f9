"""Mock prediction engine for testing and offline demos."""

from __future__ import annotations

from typing import TYPE_CHECKING

from listbot.providers.models import PredictionResult

if TYPE_CHECKING:
    from collections.abc import Iterable

    from listbot.providers.models import PredictionRequest


class MockPredictionEngine:
    """Engine that replays a script of results or exceptions.

    Once the script runs out it echoes the user's input as a plain reply.
    Every request is kept in ``requests`` for inspection.
    """

    def __init__(
        self, script: Iterable[PredictionResult | BaseException] = ()
    ) -> None:
        """Initialize with an optional script consumed in order."""
        self.script: list[PredictionResult | BaseException] = list(script)
        self.requests: list[PredictionRequest] = []

    async def predict(self, request: PredictionRequest) -> PredictionResult:
        """Return the next scripted item, or an echo reply."""
        self.requests.append(request)
        if not self.script:
            return PredictionResult.say(f"echo: {request.user_input[:100]}")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def queue(self, *items: PredictionResult | BaseException) -> None:
        """Append items to the script."""
        self.script.extend(items)
