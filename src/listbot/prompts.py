"""Named prompt configurations and template rendering.

A `Prompt` bundles template text with the model parameters it runs under.
The `PromptRegistry` resolves prompt names for the executor; the built-in
registry ships the four prompts the list bot needs.

Templates use ``{{...}}`` placeholders:

- ``{{$input}}``: the user's message for this turn
- ``{{$history}}``: actions already executed this turn, one per line
- ``{{conversation.<key>}}``: a field of the persisted conversation state
- ``{{data.<key>}}``: an entity or handler-provided value

Lists and mappings render as JSON. Unknown placeholders render empty.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from importlib import resources
import json
from pathlib import Path
import re
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from listbot.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

_PLACEHOLDER = re.compile(r"\{\{\s*(\$?[A-Za-z_][\w.]*)\s*\}\}")

CHAT_PROMPT = "chat"
TOPIC_FILTER_PROMPT = "topicFilter"
SUMMARIZE_LIST_PROMPT = "summarizeList"
SUMMARIZE_ALL_LISTS_PROMPT = "summarizeAllLists"


class PromptConfig(BaseModel):
    """Model parameters for one prompt.

    ``model`` is optional; when unset the application's configured model is
    used.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    model: str | None = None
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    max_tokens: int = Field(default=256, gt=0)
    top_p: float = Field(default=1.0, gt=0.0, le=1.0)
    frequency_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)
    presence_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)
    stop: tuple[str, ...] = ()


# Deterministic settings for action prediction and topic filtering.
PREDICTION_CONFIG = PromptConfig(
    temperature=0.0,
    max_tokens=256,
    top_p=1.0,
    frequency_penalty=0.0,
    presence_penalty=0.6,
    stop=(" Human:", " AI:"),
)

# Looser settings for free-text summaries.
SUMMARY_CONFIG = PromptConfig(
    temperature=0.7,
    max_tokens=256,
    top_p=1.0,
    frequency_penalty=0.0,
    presence_penalty=0.0,
)

_BUILTIN_CONFIGS: dict[str, PromptConfig] = {
    CHAT_PROMPT: PREDICTION_CONFIG,
    TOPIC_FILTER_PROMPT: PREDICTION_CONFIG,
    SUMMARIZE_LIST_PROMPT: SUMMARY_CONFIG,
    SUMMARIZE_ALL_LISTS_PROMPT: SUMMARY_CONFIG,
}


@dataclass(frozen=True)
class Prompt:
    """A named template plus the parameters it runs under."""

    name: str
    template: str
    config: PromptConfig = field(default_factory=PromptConfig)

    def with_config(self, config: PromptConfig | None) -> Prompt:
        """Return a copy running under *config* (or self when None)."""
        if config is None:
            return self
        return Prompt(self.name, self.template, config)


class PromptRegistry:
    """Name -> `Prompt` lookup used by the executor."""

    def __init__(self, prompts: Iterable[Prompt] = ()) -> None:
        self._prompts: dict[str, Prompt] = {}
        for prompt in prompts:
            self.add(prompt)

    @classmethod
    def builtin(cls) -> PromptRegistry:
        """Registry holding the packaged list bot prompts."""
        root = resources.files("listbot").joinpath("prompt_templates")
        registry = cls()
        for name, config in _BUILTIN_CONFIGS.items():
            template = root.joinpath(f"{name}.txt").read_text(encoding="utf-8")
            registry.add(Prompt(name, template, config))
        return registry

    @classmethod
    def from_directory(
        cls, path: str | Path, *, base: PromptRegistry | None = None
    ) -> PromptRegistry:
        """Load ``<name>.txt`` templates with optional ``<name>.json`` configs.

        Prompts found in *path* replace same-named prompts from *base*. A JSON
        file without a matching template overrides only the config of the
        base prompt.
        """
        directory = Path(path)
        if not directory.is_dir():
            raise ConfigurationError(
                f"Prompt directory not found: {directory}",
                hint="Set prompts_dir to an existing directory or leave it unset.",
            )
        registry = cls(base or ())
        for txt in sorted(directory.glob("*.txt")):
            name = txt.stem
            fallback = base.get(name).config if base and name in base else PromptConfig()
            config = _load_config(txt.with_suffix(".json")) or fallback
            registry.add(Prompt(name, txt.read_text(encoding="utf-8"), config))
        for cfg_path in sorted(directory.glob("*.json")):
            name = cfg_path.stem
            if cfg_path.with_suffix(".txt").exists() or name not in registry:
                continue
            config = _load_config(cfg_path)
            registry.add(registry.get(name).with_config(config))
        return registry

    def add(self, prompt: Prompt) -> None:
        """Register or replace a prompt."""
        if not prompt.name:
            raise ConfigurationError("Prompt name must be non-empty")
        self._prompts[prompt.name] = prompt

    def get(self, name: str) -> Prompt:
        """Return the prompt called *name*."""
        try:
            return self._prompts[name]
        except KeyError:
            raise ConfigurationError(
                f"Unknown prompt: {name!r}",
                hint=f"Registered prompts: {', '.join(sorted(self._prompts)) or 'none'}",
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._prompts

    def __iter__(self) -> Iterator[Prompt]:
        return iter(self._prompts.values())

    def __len__(self) -> int:
        return len(self._prompts)


def _load_config(path: Path) -> PromptConfig | None:
    if not path.exists():
        return None
    try:
        return PromptConfig.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid prompt config {path.name}: {e.error_count()} error(s)",
            hint=str(e),
        ) from e


def render_prompt(
    template: str,
    *,
    user_input: str,
    history: Iterable[str] = (),
    conversation: Mapping[str, Any] | None = None,
    data: Mapping[str, Any] | None = None,
) -> str:
    """Substitute placeholders in *template*."""
    history_text = "\n".join(history)
    conversation = conversation or {}
    data = data or {}

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key == "$input":
            return user_input
        if key == "$history":
            return history_text
        scope, _, path = key.partition(".")
        if scope == "conversation":
            return _format_value(_lookup(conversation, path))
        if scope == "data":
            return _format_value(_lookup(data, path))
        return ""

    return _PLACEHOLDER.sub(_replace, template)


def _lookup(root: Mapping[str, Any], path: str) -> Any:
    value: Any = root
    for part in path.split("."):
        if not part or not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)
