"""Per-key ``asyncio.Lock`` for serializing turns of one session.

Only serializes within one process.  Locks are reference counted and
dropped as soon as nobody holds or waits on them, so the map never grows
beyond the number of sessions currently in flight.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class KeyedLock:
    """Acquire an exclusive lock per string key."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]


class NullLock:
    """Same interface as ``KeyedLock`` without any exclusion."""

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        yield
