"""Inbound activities and the per-turn context handed to action handlers."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from listbot.channel import MessageActivity, TraceActivity
from listbot.errors import DeliveryError, InvalidActivityError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

    from listbot.actions import ChainSignal
    from listbot.channel import DeliveryChannel, OutboundActivity, Receipt
    from listbot.prompts import Prompt, PromptConfig
    from listbot.state import ConversationState

    ChainRunner = Callable[
        ["TurnContext", "str | Prompt", "dict[str, Any] | None", "PromptConfig | None"],
        Awaitable[ChainSignal],
    ]

logger = logging.getLogger(__name__)

MESSAGE_ACTIVITY = "message"


class Activity(BaseModel):
    """One inbound conversational activity.

    Accepts flat snake_case fields or Bot Framework shaped payloads
    (``conversation.id``, ``from.id``, ``channelId``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str = MESSAGE_ACTIVITY
    conversation_id: str = Field(min_length=1, alias="conversationId")
    text: str = ""
    channel_id: str | None = Field(default=None, alias="channelId")
    from_id: str | None = Field(default=None, alias="fromId")
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _flatten_envelope(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        conversation = data.pop("conversation", None)
        if isinstance(conversation, dict) and "conversation_id" not in data:
            data.setdefault("conversationId", conversation.get("id"))
        sender = data.pop("from", None)
        if isinstance(sender, dict) and "from_id" not in data:
            data.setdefault("fromId", sender.get("id"))
        if data.get("text") is None:
            data["text"] = ""
        return data

    @property
    def is_message(self) -> bool:
        """Whether this activity carries user text."""
        return self.type == MESSAGE_ACTIVITY


def parse_activity(raw: Activity | Mapping[str, Any]) -> Activity:
    """Validate *raw* into an `Activity`."""
    if isinstance(raw, Activity):
        return raw
    try:
        return Activity.model_validate(raw)
    except ValidationError as e:
        raise InvalidActivityError(
            f"Invalid activity: {e.error_count()} validation error(s)",
            hint=str(e),
        ) from e


class TurnContext:
    """Handle scoped to one turn.

    Holds the turn's private copy of the conversation state, tracks the
    prediction rounds run so far and the actions executed, which later
    prompts in the same turn can see.
    """

    def __init__(
        self,
        activity: Activity,
        state: ConversationState,
        channel: DeliveryChannel,
        *,
        chain_runner: ChainRunner,
        delivery_timeout_s: float | None = None,
    ) -> None:
        self.activity = activity
        self.state = state
        self._channel = channel
        self._chain_runner = chain_runner
        self._delivery_timeout_s = delivery_timeout_s
        self.depth = 0
        self.history: list[str] = []
        self.receipts: list[Receipt] = []

    @property
    def conversation_id(self) -> str:
        """Id of the conversation this turn belongs to."""
        return self.activity.conversation_id

    @property
    def text(self) -> str:
        """The user's message text."""
        return self.activity.text

    async def send_activity(self, message: str | OutboundActivity) -> Receipt:
        """Deliver a message (or prepared activity) to this conversation."""
        activity = MessageActivity(message) if isinstance(message, str) else message
        try:
            receipt = await asyncio.wait_for(
                self._channel.send_activity(self.conversation_id, activity),
                timeout=self._delivery_timeout_s,
            )
        except asyncio.CancelledError:
            raise
        except TimeoutError as e:
            raise DeliveryError(
                f"Delivery timed out after {self._delivery_timeout_s}s"
            ) from e
        except DeliveryError:
            raise
        except Exception as e:
            raise DeliveryError(f"Delivery failed: {e}") from e
        self.receipts.append(receipt)
        return receipt

    async def send_trace_activity(
        self,
        name: str,
        value: Any = None,
        value_type: str | None = None,
        label: str | None = None,
    ) -> Receipt:
        """Deliver a diagnostic trace event."""
        return await self.send_activity(TraceActivity(name, value, value_type, label))

    async def chain(
        self,
        prompt: str | Prompt,
        data: dict[str, Any] | None = None,
        config: PromptConfig | None = None,
    ) -> ChainSignal:
        """Run another prompt within this turn and dispatch its result.

        Counts against the turn's chain depth.
        """
        return await self._chain_runner(self, prompt, data, config)

    def record_action(self, action: str, entities: Mapping[str, Any]) -> None:
        """Note an executed action for later prompts in this turn."""
        args = " ".join(
            f"{k}={v!r}" for k, v in entities.items() if isinstance(v, str)
        )
        self.history.append(f"DO {action} {args}".rstrip())
        logger.debug("Recorded action %s for %s", action, self.conversation_id)
