"""Action registry and dispatcher.

Predicted action names map to handlers registered once at start-up. The
dispatcher invokes exactly one handler per prediction and turns its return
value into a `ChainSignal`:

    Dispatching -> HandlerExecuted -> CONTINUE | STOP

Names with no handler go to the unknown-action fallback; off-topic
predictions go to the off-topic handler. Both always stop the chain.
"""

from __future__ import annotations

from enum import Enum
import inspect
import logging
from typing import TYPE_CHECKING, Any, Protocol

from listbot.errors import ConfigurationError
from listbot.providers.models import OFF_TOPIC_ACTION, SAY_ACTION, UNKNOWN_ACTION

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from listbot.providers.models import PredictionResult
    from listbot.state import ConversationState
    from listbot.turn import TurnContext

logger = logging.getLogger(__name__)


class ChainSignal(Enum):
    """What the turn should do after a handler ran."""

    CONTINUE = "continue"
    STOP = "stop"

    @classmethod
    def coerce(cls, value: ChainSignal | bool | None) -> ChainSignal:
        """Normalize a handler return value; ``True`` means continue."""
        if isinstance(value, ChainSignal):
            return value
        return cls.CONTINUE if value is True else cls.STOP


class ActionHandler(Protocol):
    """Handler signature: ``(turn, state, entities) -> ChainSignal | bool``.

    The unknown-action fallback also receives the requested action name as a
    fourth argument.
    """

    async def __call__(
        self,
        turn: TurnContext,
        state: ConversationState,
        entities: dict[str, Any],
        /,
    ) -> ChainSignal | bool: ...


class ActionRegistry:
    """Name -> handler mapping, read-only once frozen."""

    def __init__(self) -> None:
        self._handlers: dict[str, ActionHandler] = {}
        self._frozen = False

    def register(self, name: str, handler: ActionHandler) -> None:
        """Register *handler* under *name*; duplicates are rejected."""
        if self._frozen:
            raise ConfigurationError(
                f"Cannot register {name!r}: action registry is frozen",
                hint="Register all actions before the application starts.",
            )
        if not name:
            raise ConfigurationError("Action name must be non-empty")
        if not inspect.iscoroutinefunction(handler) and not inspect.iscoroutinefunction(
            getattr(handler, "__call__", None)
        ):
            raise ConfigurationError(
                f"Handler for {name!r} must be an async callable",
            )
        if name in self._handlers:
            raise ConfigurationError(f"Action {name!r} is already registered")
        self._handlers[name] = handler

    def action(self, name: str) -> Callable[[ActionHandler], ActionHandler]:
        """Decorator form of `register`."""

        def decorator(handler: ActionHandler) -> ActionHandler:
            self.register(name, handler)
            return handler

        return decorator

    def freeze(self) -> ActionRegistry:
        """Forbid further registration and return self."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        """Whether registration is closed."""
        return self._frozen

    def get(self, name: str) -> ActionHandler | None:
        """Return the handler registered under *name*, if any."""
        return self._handlers.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)


class Dispatcher:
    """Invokes the handler matching a prediction."""

    def __init__(self, registry: ActionRegistry) -> None:
        off_topic = registry.get(OFF_TOPIC_ACTION)
        fallback = registry.get(UNKNOWN_ACTION)
        for reserved, handler in (
            (UNKNOWN_ACTION, fallback),
            (OFF_TOPIC_ACTION, off_topic),
        ):
            if handler is None:
                raise ConfigurationError(
                    f"Action registry is missing the reserved {reserved!r} handler",
                    hint="Use create_registry() or register_fallback_actions().",
                )
        self._registry = registry
        self._off_topic: Any = off_topic
        self._fallback: Any = fallback

    @property
    def registry(self) -> ActionRegistry:
        """The registry this dispatcher routes into."""
        return self._registry

    async def dispatch(
        self,
        turn: TurnContext,
        state: ConversationState,
        prediction: PredictionResult,
    ) -> ChainSignal:
        """Run the handler for *prediction* and return the chain signal.

        Plain replies are not recorded in the turn's action history.
        """
        action = prediction.action
        entities = dict(prediction.entities or {})

        if action == OFF_TOPIC_ACTION:
            logger.info("Off-topic request in %s", turn.conversation_id)
            await self._off_topic(turn, state, entities)
            return ChainSignal.STOP

        handler = self._registry.get(action)
        if handler is None or action == UNKNOWN_ACTION:
            logger.warning(
                "No handler for action %r in %s", action, turn.conversation_id
            )
            await self._fallback(turn, state, entities, action)
            return ChainSignal.STOP

        logger.debug("Dispatching %s for %s", action, turn.conversation_id)
        result = await handler(turn, state, entities)
        if action != SAY_ACTION:
            turn.record_action(action, entities)
        signal = ChainSignal.coerce(result)
        logger.debug("Action %s returned %s", action, signal.name)
        return signal
