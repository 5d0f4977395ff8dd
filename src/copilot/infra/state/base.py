"""Key-value state backend interface.

Sessions and guard counters are stored as small JSON-able dicts under
namespaced keys.  Expiry is optional per key; readers must still check
their own timestamps because the local backend only expires lazily.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any


class StateBackend(ABC):
    """Interface for session / rate-bucket storage backends."""

    @abstractmethod
    async def get(self, key: str) -> dict[str, Any] | None:
        """Return the value stored under *key*, or ``None``."""

    @abstractmethod
    async def put(
        self, key: str, value: dict[str, Any], ttl: timedelta | None = None
    ) -> None:
        """Store *value* under *key*, replacing any previous value.

        ``ttl`` is a hint to reclaim memory; ``None`` keeps the key until
        evicted.
        """

    @abstractmethod
    async def evict(self, key: str) -> None:
        """Delete *key* if present."""

    @abstractmethod
    async def sweep(self) -> int:
        """Drop every expired key.  Returns the number removed."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release any resources held by the backend."""
