"""List operations over a `ConversationState`.

None of these raise. A state whose names and lists disagree is repaired by
resetting both before the operation proceeds.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .state import ConversationState


def ensure_list_exists(state: ConversationState, list_name: str) -> None:
    """Create an empty list named *list_name* unless it already exists."""
    if not state.is_consistent():
        state.lists = {}
        state.list_names = []

    if list_name not in state.lists:
        state.lists[list_name] = []
        state.list_names.append(list_name)


def get_items(state: ConversationState, list_name: str) -> list[str]:
    """Return the live item list for *list_name*, creating it if needed."""
    ensure_list_exists(state, list_name)
    return state.lists[list_name]


def set_items(
    state: ConversationState, list_name: str, items: Iterable[str] | None
) -> None:
    """Replace the contents of *list_name*; ``None`` means empty."""
    ensure_list_exists(state, list_name)
    state.lists[list_name] = list(items) if items is not None else []


def remove_item(state: ConversationState, list_name: str, item: str) -> bool:
    """Remove the first occurrence of *item*; return whether one was removed."""
    items = get_items(state, list_name)
    try:
        index = items.index(item)
    except ValueError:
        return False
    del items[index]
    set_items(state, list_name, items)
    return True


def has_item(state: ConversationState, list_name: str, item: str) -> bool:
    """Read-only membership check; does not create the list."""
    if not state.is_consistent():
        return False
    return item in state.lists.get(list_name, ())
