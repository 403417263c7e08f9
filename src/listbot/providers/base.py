"""Prediction engine protocol: the one seam to the language model."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from listbot.providers.models import PredictionRequest, PredictionResult


@runtime_checkable
class PredictionEngine(Protocol):
    """Turns a rendered prompt into an action and entities."""

    async def predict(self, request: PredictionRequest) -> PredictionResult:
        """Predict the next action for *request*."""
        ...
