"""Prediction engine implementations."""

from .base import PredictionEngine
from .mock import MockPredictionEngine
from .models import (
    OFF_TOPIC_ACTION,
    SAY_ACTION,
    UNKNOWN_ACTION,
    PredictionRequest,
    PredictionResult,
)
from .openai import OpenAIPredictionEngine

__all__ = [
    "OFF_TOPIC_ACTION",
    "SAY_ACTION",
    "UNKNOWN_ACTION",
    "MockPredictionEngine",
    "OpenAIPredictionEngine",
    "PredictionEngine",
    "PredictionRequest",
    "PredictionResult",
]
