"""Per-conversation turn serialization.

Turns for the same conversation acquire the same `asyncio.Lock`; turns for
different conversations never wait on each other. Locks are dropped once no
turn holds or waits on them.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class ConversationLocks:
    """Keyed async locks with reference counting."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, conversation_id: str) -> AsyncIterator[None]:
        """Hold the lock for *conversation_id* for the duration of the block."""
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        self._waiters[conversation_id] = self._waiters.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._waiters[conversation_id] - 1
            if remaining:
                self._waiters[conversation_id] = remaining
            else:
                del self._waiters[conversation_id]
                del self._locks[conversation_id]

    def __len__(self) -> int:
        return len(self._locks)

    def is_locked(self, conversation_id: str) -> bool:
        """Whether a turn currently holds the lock for *conversation_id*."""
        lock = self._locks.get(conversation_id)
        return lock is not None and lock.locked()
