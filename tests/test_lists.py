"""List operation and conversation state tests."""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st
import pytest

from listbot import lists
from listbot.state import ConversationState

pytestmark = pytest.mark.unit

_names = st.text(min_size=1, max_size=8)


def test_ensure_list_exists_appends_name_once() -> None:
    state = ConversationState()

    lists.ensure_list_exists(state, "groceries")
    lists.ensure_list_exists(state, "groceries")

    assert state.list_names == ["groceries"]
    assert state.lists == {"groceries": []}


def test_ensure_list_exists_resets_inconsistent_state() -> None:
    """Names without a matching list wipe both before creating the new list."""
    state = ConversationState(list_names=["a", "b"], lists={"a": ["x"]})

    lists.ensure_list_exists(state, "c")

    assert state.list_names == ["c"]
    assert state.lists == {"c": []}


def test_get_items_creates_missing_list() -> None:
    state = ConversationState()

    assert lists.get_items(state, "chores") == []
    assert state.list_names == ["chores"]


def test_set_items_none_means_empty() -> None:
    state = ConversationState(list_names=["a"], lists={"a": ["x", "y"]})

    lists.set_items(state, "a", None)

    assert state.lists["a"] == []


def test_remove_item_eggs_and_bread() -> None:
    state = ConversationState(["groceries"], {"groceries": ["milk", "eggs"]})

    assert lists.remove_item(state, "groceries", "bread") is False
    assert state.lists["groceries"] == ["milk", "eggs"]
    assert lists.remove_item(state, "groceries", "eggs") is True
    assert state.lists["groceries"] == ["milk"]


def test_remove_item_removes_first_match_only() -> None:
    state = ConversationState(list_names=["a"], lists={"a": ["x", "y", "x"]})

    assert lists.remove_item(state, "a", "x") is True
    assert state.lists["a"] == ["y", "x"]


def test_remove_item_missing_leaves_list_unchanged() -> None:
    state = ConversationState(list_names=["a"], lists={"a": ["x"]})

    assert lists.remove_item(state, "a", "z") is False
    assert state.lists["a"] == ["x"]


def test_has_item_is_read_only() -> None:
    state = ConversationState()

    assert lists.has_item(state, "missing", "x") is False
    assert state.list_names == []
    assert state.lists == {}


@given(
    names=st.lists(_names, max_size=5),
    items=st.lists(st.text(max_size=5), max_size=5),
    target=_names,
)
@settings(max_examples=25, deadline=None, derandomize=True)
def test_ensure_list_exists_is_idempotent(
    names: list[str], items: list[str], target: str
) -> None:
    """Property: a second call leaves the state exactly as after the first."""
    state = ConversationState()
    for name in names:
        lists.set_items(state, name, items)

    lists.ensure_list_exists(state, target)
    once = state.copy()
    lists.ensure_list_exists(state, target)

    assert state == once


@given(names=st.lists(_names, max_size=10))
@settings(max_examples=25, deadline=None, derandomize=True)
def test_list_names_mirror_lists_in_creation_order(names: list[str]) -> None:
    """Property: names stay unique, ordered by first creation, and match keys."""
    state = ConversationState()
    for name in names:
        lists.ensure_list_exists(state, name)

    assert state.list_names == list(dict.fromkeys(names))
    assert set(state.list_names) == set(state.lists)
    assert state.is_consistent()


@given(
    items=st.lists(st.sampled_from(["a", "b", "c"]), max_size=8),
    target=st.sampled_from(["a", "b", "c"]),
)
@settings(max_examples=25, deadline=None, derandomize=True)
def test_remove_item_drops_exactly_one_occurrence(
    items: list[str], target: str
) -> None:
    """Property: removal shrinks the list by one iff the item was present."""
    state = ConversationState(list_names=["l"], lists={"l": list(items)})

    removed = lists.remove_item(state, "l", target)

    assert removed is (target in items)
    assert len(state.lists["l"]) == len(items) - int(removed)
    assert state.lists["l"].count(target) == max(items.count(target) - 1, 0)


# =============================================================================
# ConversationState
# =============================================================================


def test_state_round_trips_persisted_shape() -> None:
    state = ConversationState(list_names=["a", "b"], lists={"a": ["x"], "b": []})

    restored = ConversationState.from_dict(state.to_dict(), version=4)

    assert restored.list_names == ["a", "b"]
    assert restored.lists == {"a": ["x"], "b": []}
    assert restored.version == 4


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "nope",
        {"listNames": ["a"]},
        {"listNames": ["a"], "lists": {}},
        {"listNames": ["a", "a"], "lists": {"a": []}},
        {"listNames": [1], "lists": {"1": []}},
        {"listNames": ["a"], "lists": {"a": "x"}},
    ],
)
def test_from_dict_resets_malformed_state(raw: object) -> None:
    state = ConversationState.from_dict(raw, version=2)

    assert state.list_names == []
    assert state.lists == {}
    assert state.version == 2


def test_copy_is_independent() -> None:
    state = ConversationState(list_names=["a"], lists={"a": ["x"]})
    clone = state.copy()

    clone.lists["a"].append("y")

    assert state.lists["a"] == ["x"]
