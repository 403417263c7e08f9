"""listbot: a conversational list keeper driven by a language model.

Public API:
    - Application: per-turn orchestrator (`handle_turn`)
    - Config: configuration dataclass
    - ActionRegistry / ChainSignal: action registration and chaining
    - MemoryStore / JSONStore: conversation state stores
    - MemoryChannel / ConsoleChannel: delivery channels
"""

from __future__ import annotations

import logging

from listbot.actions import ActionRegistry, ChainSignal, Dispatcher
from listbot.application import Application, TurnResult
from listbot.channel import ConsoleChannel, MemoryChannel
from listbot.config import Config
from listbot.errors import (
    ChainDepthExceeded,
    ConfigurationError,
    DeliveryError,
    InvalidActivityError,
    ListBotError,
    PredictionFailure,
    StateConflictError,
)
from listbot.handlers import create_registry
from listbot.prompts import Prompt, PromptConfig, PromptRegistry
from listbot.providers import (
    MockPredictionEngine,
    OpenAIPredictionEngine,
    PredictionResult,
)
from listbot.replies import ReplyPicker
from listbot.state import ConversationState
from listbot.store import JSONStore, MemoryStore
from listbot.turn import Activity, TurnContext

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("listbot")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("listbot").addHandler(logging.NullHandler())

__all__ = [
    "ActionRegistry",
    "Activity",
    "Application",
    "ChainDepthExceeded",
    "ChainSignal",
    "ConfigurationError",
    "Config",
    "ConsoleChannel",
    "ConversationState",
    "DeliveryError",
    "Dispatcher",
    "InvalidActivityError",
    "JSONStore",
    "ListBotError",
    "MemoryChannel",
    "MemoryStore",
    "MockPredictionEngine",
    "OpenAIPredictionEngine",
    "PredictionFailure",
    "PredictionResult",
    "Prompt",
    "PromptConfig",
    "PromptRegistry",
    "ReplyPicker",
    "StateConflictError",
    "TurnContext",
    "TurnResult",
    "create_registry",
]
