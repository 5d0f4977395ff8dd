"""Ephemeral per-session conversation memory.

A session keeps the last ``max_messages`` user utterances and the most
recently retrieved grounding text, plus the count of messages accepted
so far (read by ``SessionMessageGuard``).  Expiry is checked lazily on
read: a session idle for longer than ``ttl`` is deleted the moment
anyone looks at it and behaves exactly like a session that never
existed.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import timedelta

from pydantic import BaseModel, Field

from copilot.configs.system import SessionConfig
from copilot.infra.state import StateBackend

logger = logging.getLogger(__name__)

_SESSION_KEY = "{prefix}:session:{session_id}"


class SessionRecord(BaseModel):
    messages: list[str] = Field(default_factory=list)
    last_context: str | None = None
    message_count: int = 0
    updated_at: float = 0.0


class SessionStore:
    """Bounded, time-expiring message history keyed by session id."""

    def __init__(
        self,
        backend: StateBackend,
        *,
        max_messages: int = 6,
        ttl: timedelta = timedelta(minutes=30),
        key_prefix: str = "copilot",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._backend = backend
        self._max_messages = max_messages
        self._ttl = ttl
        self._key_prefix = key_prefix
        self._clock = clock

    @classmethod
    def from_config(
        cls, backend: StateBackend, config: SessionConfig, key_prefix: str
    ) -> SessionStore:
        return cls(
            backend,
            max_messages=config.max_messages,
            ttl=config.ttl,
            key_prefix=key_prefix,
        )

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get(self, session_id: str) -> list[str]:
        """Prior user messages, oldest first; empty if absent or expired."""
        record = await self._load(session_id)
        return list(record.messages) if record else []

    async def append(self, session_id: str, message: str) -> None:
        """Append *message*, keeping only the newest ``max_messages``."""
        if not message:
            return
        record = await self._load(session_id) or SessionRecord()
        record.messages.append(message)
        record.messages = record.messages[-self._max_messages :]
        await self._save(session_id, record)

    async def get_last_context(self, session_id: str) -> str | None:
        record = await self._load(session_id)
        return record.last_context if record else None

    async def set_last_context(self, session_id: str, text: str) -> None:
        if not text:
            return
        record = await self._load(session_id) or SessionRecord()
        record.last_context = text
        await self._save(session_id, record)

    async def message_count(self, session_id: str) -> int:
        """Messages accepted for *session_id* since the session began."""
        record = await self._load(session_id)
        return record.message_count if record else 0

    async def count_message(self, session_id: str) -> int:
        record = await self._load(session_id) or SessionRecord()
        record.message_count += 1
        await self._save(session_id, record)
        return record.message_count

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _key(self, session_id: str) -> str:
        return _SESSION_KEY.format(prefix=self._key_prefix, session_id=session_id)

    def _is_expired(self, record: SessionRecord) -> bool:
        return self._clock() - record.updated_at > self._ttl.total_seconds()

    async def _load(self, session_id: str) -> SessionRecord | None:
        key = self._key(session_id)
        raw = await self._backend.get(key)
        if raw is None:
            return None
        record = SessionRecord.model_validate(raw)
        if self._is_expired(record):
            logger.debug("Session %s expired, evicting", session_id)
            await self._backend.evict(key)
            return None
        return record

    async def _save(self, session_id: str, record: SessionRecord) -> None:
        record.updated_at = self._clock()
        await self._backend.put(
            self._key(session_id), record.model_dump(), ttl=self._ttl
        )
