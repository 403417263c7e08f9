"""Configuration: frozen Config with explicit provider/model requirements."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv

from listbot.errors import ConfigurationError

load_dotenv()

ProviderName = Literal["openai", "mock"]

_API_KEY_ENV_VAR = "OPENAI_API_KEY"
_ENV_PREFIX = "LISTBOT_"
_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class Config:
    """Immutable configuration for a listbot application.

    The API key is auto-resolved from ``OPENAI_API_KEY`` for the openai
    provider; the mock provider never needs one.

    Example:
        config = Config(provider="openai", model="gpt-4o-mini")
    """

    provider: ProviderName = "openai"
    model: str = "gpt-4o-mini"
    api_key: str | None = None
    #: Upper bound on prediction rounds in one turn, handler chains included.
    max_chain_depth: int = 3
    prediction_timeout_s: float | None = 30.0
    delivery_timeout_s: float | None = 10.0
    log_requests: bool = False
    #: Directory of ``<name>.txt`` / ``<name>.json`` prompt overrides.
    prompts_dir: Path | None = None
    topic_filter: bool = True

    def __post_init__(self) -> None:
        """Auto-resolve API key and validate configuration."""
        if self.provider not in ("openai", "mock"):
            raise ConfigurationError(
                f"Unknown provider: {self.provider!r}",
                hint="Supported providers: 'openai', 'mock'",
            )
        if not self.model or not self.model.strip():
            raise ConfigurationError(
                "model must be a non-empty string",
                hint="Pass model='gpt-4o-mini' or set LISTBOT_MODEL.",
            )
        if self.max_chain_depth < 1:
            raise ConfigurationError(
                f"max_chain_depth must be ≥ 1, got {self.max_chain_depth}",
                hint="This bounds how many prompts one turn may run.",
            )
        for name in ("prediction_timeout_s", "delivery_timeout_s"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ConfigurationError(
                    f"{name} must be > 0 or None, got {value}",
                    hint="Use None to wait indefinitely.",
                )
        if self.prompts_dir is not None and not isinstance(self.prompts_dir, Path):
            object.__setattr__(self, "prompts_dir", Path(self.prompts_dir))

        if self.provider == "mock":
            return

        if self.api_key is None:
            object.__setattr__(self, "api_key", os.environ.get(_API_KEY_ENV_VAR))
        if not self.api_key:
            raise ConfigurationError(
                f"API key required for {self.provider}",
                hint=f"Set {_API_KEY_ENV_VAR} environment variable or pass api_key=...",
            )

    @classmethod
    def from_env(cls, **overrides: Any) -> Config:
        """Build a Config from ``LISTBOT_*`` environment variables.

        Explicit keyword overrides win over the environment.
        """
        values: dict[str, Any] = {}
        env_fields: dict[str, type] = {
            "provider": str,
            "model": str,
            "max_chain_depth": int,
            "prediction_timeout_s": float,
            "delivery_timeout_s": float,
            "log_requests": bool,
            "prompts_dir": Path,
            "topic_filter": bool,
        }
        for field_name, target in env_fields.items():
            env_var = f"{_ENV_PREFIX}{field_name.upper()}"
            raw = os.environ.get(env_var)
            if raw is None or not raw.strip():
                continue
            values[field_name] = _coerce_env_value(env_var, raw.strip(), target)
        values.update(overrides)
        return cls(**values)

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(provider={self.provider!r}, model={self.model!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, "
            f"max_chain_depth={self.max_chain_depth})"
        )

    __repr__ = __str__


def _coerce_env_value(env_var: str, value: str, target: type) -> Any:
    if target is bool:
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ConfigurationError(
            f"{env_var} must be a boolean, got {value!r}",
            hint="Use one of: 1, 0, true, false, yes, no, on, off.",
        )
    if target is str:
        return value
    try:
        return target(value)
    except ValueError as e:
        raise ConfigurationError(
            f"{env_var} must be a {target.__name__}, got {value!r}"
        ) from e
