"""Single-process state backend backed by a plain ``dict``."""

from __future__ import annotations

import copy
import logging
import time
from collections.abc import Callable
from datetime import timedelta
from typing import Any

from .base import StateBackend

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class LocalStateBackend(StateBackend):
    """In-process key-value store with lazy expiry and a size bound.

    Memory bound: at most ``max_entries`` live keys.  When a new key would
    exceed it the oldest inserted key is evicted, whether or not it has
    expired.  Values are deep-copied on the way in and out so callers can
    never mutate stored state in place.
    """

    def __init__(self, max_entries: int, clock: Clock = time.time) -> None:
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, tuple[dict[str, Any], float | None]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> dict[str, Any] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at < self._clock():
            del self._entries[key]
            return None
        return copy.deepcopy(value)

    async def put(
        self, key: str, value: dict[str, Any], ttl: timedelta | None = None
    ) -> None:
        expires_at = (
            self._clock() + ttl.total_seconds() if ttl is not None else None
        )
        # Re-inserting moves the key to the end, so eviction order follows
        # the most recent write.
        self._entries.pop(key, None)
        self._entries[key] = (copy.deepcopy(value), expires_at)
        while len(self._entries) > self._max_entries > 0:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug("State backend full, evicted %s", oldest)

    async def evict(self, key: str) -> None:
        self._entries.pop(key, None)

    async def sweep(self) -> int:
        now = self._clock()
        expired = [
            key
            for key, (_, expires_at) in self._entries.items()
            if expires_at is not None and expires_at < now
        ]
        for key in expired:
            del self._entries[key]
        return len(expired)

    async def aclose(self) -> None:
        self._entries.clear()
