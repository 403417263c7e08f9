"""Versioned conversation state stores.

Defines the `StateStore` protocol plus a volatile `MemoryStore` and a
`JSONStore` that persists every conversation in a single file. Both enforce
optimistic concurrency on ``save`` when an expected version is given.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from .errors import StateConflictError
from .state import ConversationState

if TYPE_CHECKING:
    import os

logger = logging.getLogger(__name__)


class StateStore(Protocol):
    """Protocol for loading and saving conversation state."""

    async def load(self, conversation_id: str) -> ConversationState:
        """Load state for a conversation, or an empty default state."""
        ...

    async def save(
        self,
        conversation_id: str,
        state: ConversationState,
        *,
        expected_version: int | None = None,
    ) -> ConversationState:
        """Persist state and return it with its new version."""
        ...


class MemoryStore:
    """In-process store; contents vanish with the process."""

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, object]] = {}

    async def load(self, conversation_id: str) -> ConversationState:
        """Return a private copy of the stored state."""
        entry = self._entries.get(conversation_id)
        if entry is None:
            return ConversationState()
        return ConversationState.from_dict(
            entry.get("state"), version=_version_of(entry)
        )

    async def save(
        self,
        conversation_id: str,
        state: ConversationState,
        *,
        expected_version: int | None = None,
    ) -> ConversationState:
        """Store a copy of *state*, bumping its version."""
        entry = self._entries.get(conversation_id, {})
        current = _version_of(entry)
        if expected_version is not None and current != expected_version:
            raise StateConflictError(
                conversation_id, expected=expected_version, actual=current
            )
        self._entries[conversation_id] = {
            "state": state.to_dict(),
            "version": current + 1,
        }
        return await self.load(conversation_id)

    async def delete(self, conversation_id: str) -> None:
        """Forget a conversation."""
        self._entries.pop(conversation_id, None)


class JSONStore:
    """Versioned JSON store (single file mapping id -> state).

    Uses copy-on-write: write to a temp file and rename for atomicity.
    Version checks cover a single process only; there is no file lock, so
    one state file must not be shared by several processes.
    Shape saved per conversation id:
      {
        "state": {"listNames": [...], "lists": {...}},
        "version": int
      }
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        """Initialize the store pointing at a JSON file path."""
        self._path = Path(path)

    async def load(self, conversation_id: str) -> ConversationState:
        """Load conversation state or return an empty default state."""
        data = self._read_all()
        entry = data.get(conversation_id)
        if not isinstance(entry, dict):
            return ConversationState()
        return ConversationState.from_dict(
            entry.get("state"), version=_version_of(entry)
        )

    async def save(
        self,
        conversation_id: str,
        state: ConversationState,
        *,
        expected_version: int | None = None,
    ) -> ConversationState:
        """Persist *state* with optimistic concurrency enforcement."""
        data = self._read_all()
        entry = data.get(conversation_id)
        current = _version_of(entry) if isinstance(entry, dict) else 0
        if expected_version is not None and current != expected_version:
            raise StateConflictError(
                conversation_id, expected=expected_version, actual=current
            )
        data[conversation_id] = {"state": state.to_dict(), "version": current + 1}
        self._write_all(data)
        return await self.load(conversation_id)

    async def delete(self, conversation_id: str) -> None:
        """Forget a conversation."""
        data = self._read_all()
        if data.pop(conversation_id, None) is not None:
            self._write_all(data)

    def _read_all(self) -> dict[str, dict[str, object]]:
        """Read and deserialize the entire JSON file into a mapping."""
        if not self._path.exists():
            return {}
        try:
            result = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable state file %s: %s", self._path, exc)
            return {}
        return result if isinstance(result, dict) else {}

    def _write_all(self, data: dict[str, dict[str, object]]) -> None:
        """Persist data atomically via temp file rename."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self._path)


def _version_of(entry: dict[str, object]) -> int:
    raw = entry.get("version", 0)
    return raw if isinstance(raw, int) and not isinstance(raw, bool) else 0
