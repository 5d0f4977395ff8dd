"""Distributed state backend storing JSON values in Redis."""

from __future__ import annotations

import json
import logging
import math
from datetime import timedelta
from typing import Any

from redis.asyncio import Redis

from .base import StateBackend

logger = logging.getLogger(__name__)


class RedisStateBackend(StateBackend):
    """JSON-encoded values with native Redis expiry.

    Redis reclaims expired keys on its own, so ``sweep`` has nothing to do.
    Writes are plain ``SET`` calls: two processes updating the same key
    race exactly like two tasks on the local backend.
    """

    def __init__(self, redis: Redis) -> None:
        self._redis = redis

    async def get(self, key: str) -> dict[str, Any] | None:
        raw = await self._redis.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable state at %s", key)
            await self._redis.delete(key)
            return None

    async def put(
        self, key: str, value: dict[str, Any], ttl: timedelta | None = None
    ) -> None:
        payload = json.dumps(value)
        if ttl is not None:
            seconds = max(1, math.ceil(ttl.total_seconds()))
            await self._redis.set(key, payload, ex=seconds)
        else:
            await self._redis.set(key, payload)

    async def evict(self, key: str) -> None:
        await self._redis.delete(key)

    async def sweep(self) -> int:
        return 0

    async def aclose(self) -> None:
        pass
