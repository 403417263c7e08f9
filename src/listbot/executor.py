"""Prompt execution against the prediction engine.

Each call renders one named prompt and makes one prediction. The executor
keeps no chaining state: whether another prompt runs is decided by the
dispatcher's signal, and the turn context counts the rounds.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from listbot.errors import ListBotError, PredictionFailure
from listbot.prompts import Prompt, render_prompt
from listbot.providers.models import PredictionRequest, PredictionResult

if TYPE_CHECKING:
    from listbot.prompts import PromptConfig, PromptRegistry
    from listbot.providers.base import PredictionEngine
    from listbot.state import ConversationState
    from listbot.turn import TurnContext

logger = logging.getLogger(__name__)


class PromptChainExecutor:
    """Runs named prompts through a `PredictionEngine`."""

    def __init__(
        self,
        engine: PredictionEngine,
        prompts: PromptRegistry,
        *,
        model: str,
        timeout_s: float | None = None,
        log_requests: bool = False,
    ) -> None:
        self._engine = engine
        self._prompts = prompts
        self._model = model
        self._timeout_s = timeout_s
        self._log_requests = log_requests

    @property
    def prompts(self) -> PromptRegistry:
        """Registry used to resolve prompt names."""
        return self._prompts

    def resolve(self, prompt_ref: str | Prompt, config: PromptConfig | None = None) -> Prompt:
        """Look up *prompt_ref* and apply an optional config override."""
        prompt = prompt_ref if isinstance(prompt_ref, Prompt) else self._prompts.get(prompt_ref)
        return prompt.with_config(config)

    async def run_prompt(
        self,
        turn: TurnContext,
        state: ConversationState,
        prompt_ref: str | Prompt,
        data: dict[str, Any] | None = None,
        config: PromptConfig | None = None,
        *,
        is_primary: bool = False,
    ) -> PredictionResult:
        """Render *prompt_ref* for this turn and return the engine's prediction.

        Raises:
            PredictionFailure: The engine failed, timed out, or returned
                something that is not a `PredictionResult`.
        """
        prompt = self.resolve(prompt_ref, config)
        text = render_prompt(
            prompt.template,
            user_input=turn.text,
            history=turn.history,
            conversation=state.to_dict(),
            data=data,
        )
        request = PredictionRequest(
            prompt_name=prompt.name,
            text=text,
            model=self._model,
            config=prompt.config,
            is_primary=is_primary,
            user_input=turn.text,
        )
        if self._log_requests:
            self._log_request(turn, request)

        try:
            result = await asyncio.wait_for(
                self._engine.predict(request), timeout=self._timeout_s
            )
        except asyncio.CancelledError:
            raise
        except TimeoutError as e:
            raise PredictionFailure(
                f"Prediction timed out after {self._timeout_s}s",
                prompt=prompt.name,
                retryable=True,
            ) from e
        except PredictionFailure as e:
            if e.prompt is None:
                e.prompt = prompt.name
            raise
        except ListBotError:
            raise
        except Exception as e:
            raise PredictionFailure(
                f"Prediction engine failed: {e}", prompt=prompt.name
            ) from e

        result = _validate(result, prompt.name)
        if result.usage:
            logger.debug(
                "Prediction usage conversation=%s prompt=%s tokens=%s",
                turn.conversation_id,
                prompt.name,
                result.usage,
            )
        return result

    def _log_request(self, turn: TurnContext, request: PredictionRequest) -> None:
        try:
            logger.debug(
                "Prediction request conversation=%s prompt=%s round=%d model=%s\n%s",
                turn.conversation_id,
                request.prompt_name,
                turn.depth,
                request.config.model or request.model,
                request.text,
            )
        except Exception:  # noqa: BLE001
            logger.debug("Failed to log prediction request", exc_info=True)


def _validate(result: object, prompt_name: str) -> PredictionResult:
    if not isinstance(result, PredictionResult):
        raise PredictionFailure(
            f"Prediction engine returned {type(result).__name__}, expected PredictionResult",
            prompt=prompt_name,
        )
    if not isinstance(result.action, str) or not result.action:
        raise PredictionFailure(
            "Prediction has no action name", prompt=prompt_name
        )
    if result.entities is None:
        result.entities = {}
    elif not isinstance(result.entities, dict):
        raise PredictionFailure(
            f"Prediction entities must be a mapping, got {type(result.entities).__name__}",
            prompt=prompt_name,
        )
    return result
