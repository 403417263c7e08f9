"""Turn orchestration.

`Application.handle_turn` is the single entry point for inbound activities:

1. serialize on the conversation id,
2. load the conversation state,
3. run the primary prompt and dispatch its prediction,
4. keep running rounds while handlers signal CONTINUE (bounded by
   ``Config.max_chain_depth``),
5. save the state.

Any failure in steps 2-5 is reported to the user and the state is left as it
was before the turn.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any

from listbot._locks import ConversationLocks
from listbot.actions import ChainSignal, Dispatcher
from listbot.channel import ERROR_TRACE_SCHEMA
from listbot.errors import (
    ChainDepthExceeded,
    ConfigurationError,
    InvalidActivityError,
)
from listbot.executor import PromptChainExecutor
from listbot.handlers import create_registry
from listbot.prompts import CHAT_PROMPT, TOPIC_FILTER_PROMPT, PromptRegistry
from listbot.providers.mock import MockPredictionEngine
from listbot.providers.openai import OpenAIPredictionEngine
from listbot.state import ConversationState
from listbot.store import MemoryStore
from listbot.turn import TurnContext, parse_activity

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from listbot.actions import ActionRegistry
    from listbot.channel import DeliveryChannel
    from listbot.config import Config
    from listbot.prompts import Prompt, PromptConfig
    from listbot.providers.base import PredictionEngine
    from listbot.replies import ReplyPicker
    from listbot.store import StateStore
    from listbot.turn import Activity

logger = logging.getLogger(__name__)

TURN_ERROR_MESSAGES: tuple[str, ...] = (
    "The bot encountered an error or bug.",
    "To continue to run this bot, please fix the bot source code.",
)


@dataclass(frozen=True)
class TurnResult:
    """Outcome of one successfully processed turn."""

    conversation_id: str
    handled: bool
    rounds: int = 0
    actions: tuple[str, ...] = ()
    state: ConversationState | None = None


def load_prompts(config: Config) -> PromptRegistry:
    """Built-in prompts, overlaid with ``config.prompts_dir`` when set."""
    prompts = PromptRegistry.builtin()
    if config.prompts_dir is not None:
        prompts = PromptRegistry.from_directory(config.prompts_dir, base=prompts)
    return prompts


def create_engine(config: Config, prompts: PromptRegistry) -> PredictionEngine:
    """Instantiate the prediction engine named by ``config.provider``."""
    if config.provider == "mock":
        return MockPredictionEngine()
    if config.api_key is None:
        raise ConfigurationError(
            "API key required for openai",
            hint="Set OPENAI_API_KEY or pass Config(api_key=...).",
        )
    topic_filter = (
        prompts.get(TOPIC_FILTER_PROMPT)
        if config.topic_filter and TOPIC_FILTER_PROMPT in prompts
        else None
    )
    return OpenAIPredictionEngine(config.api_key, topic_filter=topic_filter)


class Application:
    """List bot turn orchestrator."""

    def __init__(
        self,
        config: Config,
        *,
        channel: DeliveryChannel,
        engine: PredictionEngine | None = None,
        store: StateStore | None = None,
        registry: ActionRegistry | None = None,
        prompts: PromptRegistry | None = None,
        replies: ReplyPicker | None = None,
    ) -> None:
        self.config = config
        self.channel = channel
        self.prompts = prompts if prompts is not None else load_prompts(config)
        self.engine = engine if engine is not None else create_engine(config, self.prompts)
        self.store: StateStore = store if store is not None else MemoryStore()
        registry = registry if registry is not None else create_registry(replies)
        self.dispatcher = Dispatcher(registry.freeze())
        self.executor = PromptChainExecutor(
            self.engine,
            self.prompts,
            model=config.model,
            timeout_s=config.prediction_timeout_s,
            log_requests=config.log_requests,
        )
        self._locks = ConversationLocks()

    async def __aenter__(self) -> Application:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Release engine resources."""
        aclose = getattr(self.engine, "aclose", None)
        if callable(aclose):
            try:
                await aclose()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Prediction engine cleanup failed: %s", exc)

    async def handle_turn(self, raw: Activity | Mapping[str, Any]) -> TurnResult | None:
        """Process one inbound activity, reporting failures instead of raising.

        The failure report is delivered while the conversation is still
        locked, so it never interleaves with the next queued turn.

        Returns the `TurnResult`, or None when the turn failed.
        """
        try:
            activity = parse_activity(raw)
        except InvalidActivityError as e:
            logger.warning("Dropping invalid activity: %s", e)
            return None
        if not activity.is_message:
            return self._ignore(activity)

        async with self._locks.hold(activity.conversation_id):
            try:
                return await self._process(activity)
            except Exception as error:  # noqa: BLE001
                await self.on_turn_error(activity, error)
                return None

    async def run_turn(self, raw: Activity | Mapping[str, Any]) -> TurnResult:
        """Process one inbound activity, letting failures propagate."""
        activity = parse_activity(raw)
        if not activity.is_message:
            return self._ignore(activity)
        async with self._locks.hold(activity.conversation_id):
            return await self._process(activity)

    def _ignore(self, activity: Activity) -> TurnResult:
        logger.debug(
            "Ignoring %s activity for %s", activity.type, activity.conversation_id
        )
        return TurnResult(activity.conversation_id, handled=False)

    async def _process(self, activity: Activity) -> TurnResult:
        # Caller holds the conversation lock.
        conversation_id = activity.conversation_id
        state = await self.store.load(conversation_id)
        turn = TurnContext(
            activity,
            state,
            self.channel,
            chain_runner=self._chain,
            delivery_timeout_s=self.config.delivery_timeout_s,
        )
        signal = await self._round(turn, CHAT_PROMPT, is_primary=True)
        while signal is ChainSignal.CONTINUE:
            signal = await self._round(turn, CHAT_PROMPT)
        saved = await self.store.save(
            conversation_id, turn.state, expected_version=state.version
        )

        logger.debug(
            "Turn for %s finished after %d round(s)", conversation_id, turn.depth
        )
        return TurnResult(
            conversation_id,
            handled=True,
            rounds=turn.depth,
            actions=tuple(turn.history),
            state=saved,
        )

    async def _round(
        self,
        turn: TurnContext,
        prompt: str | Prompt,
        data: dict[str, Any] | None = None,
        config: PromptConfig | None = None,
        *,
        is_primary: bool = False,
    ) -> ChainSignal:
        max_depth = self.config.max_chain_depth
        if turn.depth >= max_depth:
            raise ChainDepthExceeded(
                max_depth,
                hint="Raise Config.max_chain_depth or stop returning CONTINUE.",
            )
        turn.depth += 1
        prediction = await self.executor.run_prompt(
            turn, turn.state, prompt, data, config, is_primary=is_primary
        )
        return await self.dispatcher.dispatch(turn, turn.state, prediction)

    async def _chain(
        self,
        turn: TurnContext,
        prompt: str | Prompt,
        data: dict[str, Any] | None,
        config: PromptConfig | None,
    ) -> ChainSignal:
        return await self._round(turn, prompt, data, config)

    async def on_turn_error(self, activity: Activity, error: Exception) -> None:
        """Report an unhandled turn failure to the user.

        Delivery problems while reporting are logged and swallowed.
        """
        logger.error(
            "[on_turn_error] unhandled error in %s: %s",
            activity.conversation_id,
            error,
            exc_info=error,
        )
        turn = TurnContext(
            activity,
            ConversationState(),
            self.channel,
            chain_runner=self._chain,
            delivery_timeout_s=self.config.delivery_timeout_s,
        )
        try:
            await turn.send_trace_activity(
                "OnTurnError Trace",
                f"{type(error).__name__}: {error}",
                ERROR_TRACE_SCHEMA,
                "TurnError",
            )
            for message in TURN_ERROR_MESSAGES:
                await turn.send_activity(message)
        except Exception as report_error:  # noqa: BLE001
            logger.warning(
                "Could not report turn error to %s: %s",
                activity.conversation_id,
                report_error,
            )
