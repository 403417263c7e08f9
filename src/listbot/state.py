"""Per-conversation state: named lists in creation order."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any


@dataclass
class ConversationState:
    """Named lists owned by one conversation.

    ``list_names`` keeps creation order and mirrors the keys of ``lists``.
    Instances handed to a turn are private copies; the store only sees
    mutations once the turn saves.
    """

    list_names: list[str] = field(default_factory=list)
    lists: dict[str, list[str]] = field(default_factory=dict)
    version: int = 0

    @classmethod
    def from_dict(cls, raw: object, *, version: int = 0) -> ConversationState:
        """Build state from a stored mapping, resetting anything malformed."""
        if not isinstance(raw, dict):
            return cls(version=version)
        names_raw = raw.get("listNames")
        lists_raw = raw.get("lists")
        if not isinstance(names_raw, list) or not isinstance(lists_raw, dict):
            return cls(version=version)

        names = [n for n in names_raw if isinstance(n, str)]
        if len(names) != len(names_raw) or len(set(names)) != len(names):
            return cls(version=version)
        if set(names) != set(lists_raw):
            return cls(version=version)

        lists: dict[str, list[str]] = {}
        for name in names:
            items = lists_raw[name]
            if not isinstance(items, list):
                return cls(version=version)
            lists[name] = [str(i) for i in items]
        return cls(list_names=names, lists=lists, version=version)

    def to_dict(self) -> dict[str, Any]:
        """Return the persisted shape (``listNames`` / ``lists``)."""
        return {
            "listNames": list(self.list_names),
            "lists": {k: list(v) for k, v in self.lists.items()},
        }

    def copy(self) -> ConversationState:
        """Return a deep, independent copy."""
        return copy.deepcopy(self)

    def is_consistent(self) -> bool:
        """Whether ``list_names`` and ``lists`` describe the same lists."""
        if not isinstance(self.lists, dict) or not isinstance(self.list_names, list):
            return False
        if len(set(self.list_names)) != len(self.list_names):
            return False
        return set(self.list_names) == set(self.lists)
