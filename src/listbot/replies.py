"""Canned replies with randomized phrasing."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

ITEM_NOT_FOUND_REPLIES: tuple[str, ...] = (
    "I couldn't find that item in the list.",
    "Hmm... Can't find it. Sure you spelled it right?",
)

ITEM_NOT_IN_LIST_REPLIES: tuple[str, ...] = (
    "I couldn't find {item} in your {list} list.",
    "Hmm... I don't see {item} in your {list} list.",
)

NO_LISTS_REPLIES: tuple[str, ...] = (
    "I couldn't find any lists.",
    "Hmm... You don't seem to have any lists yet.",
)


class ReplyPicker:
    """Picks one phrasing uniformly at random.

    Pass a seeded ``random.Random`` (or any object with ``choice``) for
    deterministic output.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()  # noqa: S311

    @classmethod
    def seeded(cls, seed: int) -> ReplyPicker:
        """Deterministic picker."""
        return cls(random.Random(seed))  # noqa: S311

    def pick(self, candidates: Sequence[str], **values: str) -> str:
        """Choose a candidate and fill its ``{placeholders}`` from *values*."""
        if not candidates:
            raise ValueError("ReplyPicker.pick needs at least one candidate")
        return self._rng.choice(candidates).format(**values)
