"""Per-key critical sections for account, game and item mutations."""

from __future__ import annotations

import asyncio
from collections import Counter
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Hashable


def account_key(guild_id: str, user_id: str) -> tuple[str, str, str]:
    return ("account", guild_id, user_id)


def game_key(guild_id: str, user_id: str) -> tuple[str, str, str]:
    return ("game", guild_id, user_id)


def item_key(guild_id: str, item_id: str) -> tuple[str, str, str]:
    return ("item", guild_id, item_id)


class KeyedLocks:
    """Hand out one asyncio.Lock per key.

    ``hold`` accepts several keys and always acquires them in sorted order, so
    two coroutines locking the same pair of accounts cannot deadlock. A lock is
    dropped once nobody holds or waits for it.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: Counter[Hashable] = Counter()

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, *keys: Hashable) -> AsyncIterator[None]:
        ordered = sorted(set(keys))
        # Registered before the first await so a waiter always pins its lock.
        for key in ordered:
            self._users[key] += 1
            self._locks.setdefault(key, asyncio.Lock())
        try:
            async with AsyncExitStack() as stack:
                for key in ordered:
                    await stack.enter_async_context(self._locks[key])
                yield
        finally:
            for key in ordered:
                self._users[key] -= 1
                if self._users[key] <= 0:
                    del self._users[key]
                    del self._locks[key]

    def is_locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return bool(lock and lock.locked())
