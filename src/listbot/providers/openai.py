"""OpenAI prediction engine."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import TYPE_CHECKING, Any

from listbot.errors import PredictionFailure
from listbot.prompts import render_prompt
from listbot.providers._errors import wrap_provider_error
from listbot.providers.models import PredictionRequest, PredictionResult

if TYPE_CHECKING:
    from listbot.prompts import Prompt

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)
# A topic filter answer of "no" (whole word) means off topic.
_REJECTION = re.compile(r"no\b", re.IGNORECASE)


class OpenAIPredictionEngine:
    """Chat-completions backed prediction engine.

    When a topic filter prompt is given, primary requests are screened with
    it first and answered with an off-topic result when the model says no.
    """

    def __init__(self, api_key: str, *, topic_filter: Prompt | None = None) -> None:
        """Initialize with an API key and an optional topic filter prompt."""
        self.api_key = api_key
        self.topic_filter = topic_filter
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the OpenAI client."""
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self.api_key, max_retries=0)
        return self._client

    async def predict(self, request: PredictionRequest) -> PredictionResult:
        """Predict an action for a rendered prompt."""
        if request.is_primary and self.topic_filter is not None:
            on_topic = await self._passes_topic_filter(self.topic_filter, request)
            if not on_topic:
                logger.debug("Topic filter rejected input for %s", request.prompt_name)
                return PredictionResult.off_topic()

        text, usage = await self._complete(
            request.text,
            model=request.config.model or request.model,
            request=request,
        )
        result = parse_prediction(text, prompt=request.prompt_name)
        result.usage = usage
        return result

    async def _passes_topic_filter(
        self, prompt: Prompt, request: PredictionRequest
    ) -> bool:
        text = render_prompt(prompt.template, user_input=request.user_input)
        filter_request = PredictionRequest(
            prompt_name=prompt.name,
            text=text,
            model=request.model,
            config=prompt.config,
        )
        answer, _ = await self._complete(
            text, model=prompt.config.model or request.model, request=filter_request
        )
        return _REJECTION.match(answer.strip()) is None

    async def _complete(
        self, text: str, *, model: str, request: PredictionRequest
    ) -> tuple[str, dict[str, int]]:
        client = self._get_client()
        config = request.config
        create_kwargs: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": text}],
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
            "top_p": config.top_p,
            "frequency_penalty": config.frequency_penalty,
            "presence_penalty": config.presence_penalty,
        }
        if config.stop:
            create_kwargs["stop"] = list(config.stop)

        try:
            response = await client.chat.completions.create(**create_kwargs)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e, provider="openai", prompt=request.prompt_name
            ) from e

        choices = getattr(response, "choices", None) or []
        if not choices:
            raise PredictionFailure(
                "OpenAI returned no choices",
                prompt=request.prompt_name,
                provider="openai",
            )
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None) or ""

        usage_raw = getattr(response, "usage", None)
        usage: dict[str, int] = {}
        if usage_raw is not None:
            usage = {
                "input_tokens": int(getattr(usage_raw, "prompt_tokens", 0) or 0),
                "output_tokens": int(getattr(usage_raw, "completion_tokens", 0) or 0),
                "total_tokens": int(getattr(usage_raw, "total_tokens", 0) or 0),
            }
        return str(content), usage

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.close()


def parse_prediction(text: str, *, prompt: str | None = None) -> PredictionResult:
    """Parse model output into a `PredictionResult`.

    A JSON object ``{"action": ..., "entities": {...}}`` selects an action;
    any other non-empty text is a plain reply.
    """
    stripped = text.strip()
    fenced = _FENCE.match(stripped)
    if fenced:
        stripped = fenced.group(1).strip()
    if not stripped:
        raise PredictionFailure("Model returned an empty response", prompt=prompt)

    if not stripped.startswith("{"):
        return PredictionResult.say(stripped)

    try:
        payload = json.loads(stripped)
    except ValueError as e:
        raise PredictionFailure(
            f"Model returned malformed JSON: {e}", prompt=prompt
        ) from e

    action = payload.get("action") if isinstance(payload, dict) else None
    if not isinstance(action, str) or not action.strip():
        raise PredictionFailure(
            "Model response has no action name",
            prompt=prompt,
            hint='Expected {"action": "<name>", "entities": {...}}.',
        )
    entities = payload.get("entities") or {}
    if not isinstance(entities, dict):
        raise PredictionFailure(
            f"Entities for {action!r} must be an object, got {type(entities).__name__}",
            prompt=prompt,
        )
    return PredictionResult(action.strip(), dict(entities))
