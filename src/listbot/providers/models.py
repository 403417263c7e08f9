"""Domain models for the prediction layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from listbot.prompts import PromptConfig

#: Reserved action: the model produced nothing the bot recognises.
UNKNOWN_ACTION = "___UnknownAction___"
#: Reserved action: the request is outside the bot's topic.
OFF_TOPIC_ACTION = "___OffTopic___"
#: Reserved action: a plain reply carried in ``entities["text"]``.
SAY_ACTION = "___SAY___"


@dataclass(frozen=True)
class PredictionRequest:
    """A rendered prompt ready for the prediction engine."""

    prompt_name: str
    text: str
    model: str
    config: PromptConfig
    #: The turn's first prompt; engines apply topic filtering only here.
    is_primary: bool = False
    user_input: str = ""


@dataclass
class PredictionResult:
    """An action predicted from free text plus its extracted entities."""

    action: str
    entities: dict[str, Any] = field(default_factory=dict)
    usage: dict[str, int] = field(default_factory=dict)

    @classmethod
    def say(cls, text: str) -> PredictionResult:
        """Build a plain-reply result."""
        return cls(SAY_ACTION, {"text": text})

    @classmethod
    def off_topic(cls) -> PredictionResult:
        """Build an off-topic result."""
        return cls(OFF_TOPIC_ACTION)
