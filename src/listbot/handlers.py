"""List bot action handlers.

`create_registry` builds the frozen registry the application dispatches
against. Handlers read ``list`` and ``item`` from the predicted entities and
tolerate either being absent.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from listbot import lists
from listbot.actions import ActionRegistry, ChainSignal
from listbot.prompts import SUMMARIZE_ALL_LISTS_PROMPT, SUMMARIZE_LIST_PROMPT
from listbot.providers.models import OFF_TOPIC_ACTION, SAY_ACTION, UNKNOWN_ACTION
from listbot.replies import (
    ITEM_NOT_FOUND_REPLIES,
    ITEM_NOT_IN_LIST_REPLIES,
    NO_LISTS_REPLIES,
    ReplyPicker,
)

if TYPE_CHECKING:
    from listbot.state import ConversationState
    from listbot.turn import TurnContext

logger = logging.getLogger(__name__)

OFF_TOPIC_REPLY = "I'm sorry, I'm not allowed to talk about such things..."
UNKNOWN_REPLY = "I'm not sure how to help with that."


def _entity(entities: dict[str, Any], key: str) -> str | None:
    value = entities.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


async def _missing(turn: TurnContext, action: str, *names: str) -> ChainSignal:
    logger.info("Action %s is missing entities: %s", action, ", ".join(names))
    await turn.send_activity(f"I need a {' and '.join(names)} to do that.")
    return ChainSignal.STOP


def register_list_actions(
    registry: ActionRegistry, replies: ReplyPicker | None = None
) -> ActionRegistry:
    """Register the list actions and the plain-reply action."""
    picker = replies or ReplyPicker()

    @registry.action("addItem")
    async def add_item(
        turn: TurnContext, state: ConversationState, entities: dict[str, Any]
    ) -> ChainSignal:
        list_name, item = _entity(entities, "list"), _entity(entities, "item")
        if list_name is None or item is None:
            return await _missing(turn, "addItem", "list", "item")
        items = lists.get_items(state, list_name)
        items.append(item)
        lists.set_items(state, list_name, items)
        return ChainSignal.CONTINUE

    @registry.action("removeItem")
    async def remove_item(
        turn: TurnContext, state: ConversationState, entities: dict[str, Any]
    ) -> ChainSignal:
        list_name, item = _entity(entities, "list"), _entity(entities, "item")
        if list_name is None or item is None:
            return await _missing(turn, "removeItem", "list", "item")
        if lists.remove_item(state, list_name, item):
            return ChainSignal.CONTINUE
        await turn.send_activity(picker.pick(ITEM_NOT_FOUND_REPLIES))
        return ChainSignal.STOP

    @registry.action("findItem")
    async def find_item(
        turn: TurnContext, state: ConversationState, entities: dict[str, Any]
    ) -> ChainSignal:
        list_name, item = _entity(entities, "list"), _entity(entities, "item")
        if list_name is None or item is None:
            return await _missing(turn, "findItem", "list", "item")
        if lists.has_item(state, list_name, item):
            await turn.send_activity(f"I found {item} in your {list_name} list.")
        else:
            await turn.send_activity(
                picker.pick(ITEM_NOT_IN_LIST_REPLIES, item=item, list=list_name)
            )
        return ChainSignal.STOP

    @registry.action("summarizeList")
    async def summarize_list(
        turn: TurnContext, state: ConversationState, entities: dict[str, Any]
    ) -> ChainSignal:
        list_name = _entity(entities, "list")
        if list_name is None:
            return await _missing(turn, "summarizeList", "list")
        entities["items"] = list(lists.get_items(state, list_name))
        await turn.chain(SUMMARIZE_LIST_PROMPT, entities)
        return ChainSignal.STOP

    @registry.action("summarizeAllLists")
    async def summarize_all_lists(
        turn: TurnContext, state: ConversationState, entities: dict[str, Any]
    ) -> ChainSignal:
        if state.list_names:
            entities["lists"] = {k: list(v) for k, v in state.lists.items()}
            await turn.chain(SUMMARIZE_ALL_LISTS_PROMPT, entities)
        else:
            await turn.send_activity(picker.pick(NO_LISTS_REPLIES))
        return ChainSignal.STOP

    @registry.action(SAY_ACTION)
    async def say(
        turn: TurnContext, state: ConversationState, entities: dict[str, Any]
    ) -> ChainSignal:
        del state
        text = _entity(entities, "text")
        if text is not None:
            await turn.send_activity(text)
        return ChainSignal.STOP

    return registry


def register_fallback_actions(registry: ActionRegistry) -> ActionRegistry:
    """Register the reserved unknown-action and off-topic handlers."""

    @registry.action(UNKNOWN_ACTION)
    async def unknown_action(
        turn: TurnContext,
        state: ConversationState,
        entities: dict[str, Any],
        action: str = UNKNOWN_ACTION,
    ) -> ChainSignal:
        del state, entities
        if action == UNKNOWN_ACTION:
            await turn.send_activity(UNKNOWN_REPLY)
        else:
            await turn.send_activity(f"I don't know how to do '{action}'.")
        return ChainSignal.STOP

    @registry.action(OFF_TOPIC_ACTION)
    async def off_topic(
        turn: TurnContext, state: ConversationState, entities: dict[str, Any]
    ) -> ChainSignal:
        del state, entities
        await turn.send_activity(OFF_TOPIC_REPLY)
        return ChainSignal.STOP

    return registry


def create_registry(replies: ReplyPicker | None = None) -> ActionRegistry:
    """Build the frozen registry holding every list bot action."""
    registry = ActionRegistry()
    register_list_actions(registry, replies)
    register_fallback_actions(registry)
    return registry.freeze()
