"""Periodic background sweep of expired state.

Lazy expiry only runs when a key is read again, so abandoned sessions
would otherwise sit in memory until the size bound pushes them out.
"""

import asyncio
import logging

from .base import StateBackend

logger = logging.getLogger(__name__)


class StateSweeper:
    """Owns an ``asyncio.Task`` calling ``backend.sweep()`` every *interval*."""

    def __init__(self, backend: StateBackend, interval: float) -> None:
        self._backend = backend
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        self._task = asyncio.create_task(self._loop(), name="state-sweeper")
        logger.info("State sweeper started (interval=%.0fs)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("State sweeper stopped.")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                removed = await self._backend.sweep()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("State sweep failed")
                continue
            if removed:
                logger.info("State sweep removed %d expired key(s)", removed)
