"""Request throttling: a per-IP fixed window and a per-session message cap.

The two guards are deliberately asymmetric.  ``RateGuard`` forgets a
client once its window closes; ``SessionMessageGuard`` never resets and
only releases a session when the counter expires together with the
session itself.

The IP window lives under its own ``StateBackend`` key; the session count
is a field of the session record, so the backend can never drop one
without the other.  Both work the same with the in-process and the Redis
backend.  A limit of ``0`` disables a guard.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import timedelta

from copilot.configs.system import GuardConfig
from copilot.infra.state import StateBackend

from .session import SessionStore

logger = logging.getLogger(__name__)

_RATELIMIT_KEY = "{prefix}:ratelimit:ip:{identity}"


class RateGuard:
    """Fixed window of ``window`` starting at the first request seen."""

    def __init__(
        self,
        backend: StateBackend,
        *,
        max_requests: int = 10,
        window: timedelta = timedelta(seconds=60),
        key_prefix: str = "copilot",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._backend = backend
        self._max_requests = max_requests
        self._window = window
        self._key_prefix = key_prefix
        self._clock = clock

    @classmethod
    def from_config(
        cls, backend: StateBackend, config: GuardConfig, key_prefix: str
    ) -> RateGuard:
        return cls(
            backend,
            max_requests=config.max_requests_per_window,
            window=config.window,
            key_prefix=key_prefix,
        )

    @property
    def window(self) -> timedelta:
        return self._window

    async def check_and_consume(self, identity: str) -> bool:
        """Count one request for *identity*; ``False`` when over the limit.

        A denied request does not consume a slot.
        """
        if self._max_requests <= 0:
            return True

        now = self._clock()
        key = _RATELIMIT_KEY.format(prefix=self._key_prefix, identity=identity)
        bucket = await self._backend.get(key)

        if bucket is None or now > bucket["reset_at"]:
            bucket = {"count": 0, "reset_at": now + self._window.total_seconds()}

        if bucket["count"] >= self._max_requests:
            logger.info("Rate limit reached for %s", identity)
            return False

        bucket["count"] += 1
        remaining = max(bucket["reset_at"] - now, 1.0)
        await self._backend.put(key, bucket, ttl=timedelta(seconds=remaining))
        return True


class SessionMessageGuard:
    """Monotonic message counter stored in the session record.

    The count lives and dies with the session's memory: it expires with the
    session TTL (refreshed on every write) and is evicted together with it.
    """

    def __init__(self, sessions: SessionStore, *, max_messages: int = 30) -> None:
        self._sessions = sessions
        self._max_messages = max_messages

    @classmethod
    def from_config(
        cls, sessions: SessionStore, config: GuardConfig
    ) -> SessionMessageGuard:
        return cls(sessions, max_messages=config.max_messages_per_session)

    async def check_and_consume(self, session_id: str) -> bool:
        if self._max_messages <= 0:
            return True

        if await self._sessions.message_count(session_id) >= self._max_messages:
            logger.info("Session %s reached its message cap", session_id)
            return False

        await self._sessions.count_message(session_id)
        return True
