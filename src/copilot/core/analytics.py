"""Fire-and-forget analytics.

``AnalyticsEmitter.track`` never raises and never blocks the turn: events
go into a bounded in-memory queue (oldest dropped on overflow) and are
drained in batches by ``flush``.  Delivery is at-most-once: a batch that
fails to reach the sink is logged and discarded, not re-queued.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import AsyncGenerator, Callable
from typing import Annotated, Any

import httpx
from fastapi import Depends, FastAPI, Request

from copilot.configs.config import AppConfig, get_app_config
from copilot.configs.system import AnalyticsConfig
from copilot.infra.http import build_http_client
from copilot.infra.lifespan import get_app
from copilot.infra.telemetry import (
    ATTR_ANALYTICS_BATCH_SIZE,
    SPAN_ANALYTICS_FLUSH,
    tracer,
)

from .metrics import (
    ANALYTICS_EVENTS_DROPPED_TOTAL,
    ANALYTICS_EVENTS_TOTAL,
    UPSTREAM_FAILURES_TOTAL,
)
from .models import AnalyticsEvent

logger = logging.getLogger(__name__)

EVENT_ANALYTICS_FLUSH_FAILED = "ANALYTICS_FLUSH_FAILED"
UPSTREAM_ANALYTICS = "analytics"

DROP_OVERFLOW = "overflow"
DROP_FLUSH_FAILED = "flush_failed"


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


class AnalyticsSink(ABC):
    """Receives drained batches of event payloads."""

    @abstractmethod
    async def send(self, batch: list[dict[str, Any]]) -> None: ...


class HttpAnalyticsSink(AnalyticsSink):
    """POSTs ``{"events": [...]}`` to a collector endpoint."""

    def __init__(
        self, client: httpx.AsyncClient, url: str, timeout: float
    ) -> None:
        self._client = client
        self._url = url
        self._timeout = timeout

    async def send(self, batch: list[dict[str, Any]]) -> None:
        response = await self._client.post(
            self._url, json={"events": batch}, timeout=self._timeout
        )
        response.raise_for_status()


# ---------------------------------------------------------------------------
# Emitter
# ---------------------------------------------------------------------------


class AnalyticsEmitter:
    """Bounded queue of analytics events."""

    def __init__(
        self,
        queue_size: int = 50,
        *,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._queue: deque[dict[str, Any]] = deque(maxlen=max(queue_size, 1))
        self._enabled = enabled
        self._clock = clock

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def capacity(self) -> int:
        return self._queue.maxlen or 0

    def pending(self) -> list[dict[str, Any]]:
        """Snapshot of queued events, oldest first."""
        return list(self._queue)

    def track(self, event: AnalyticsEvent | dict[str, Any]) -> None:
        """Enqueue *event* with a timestamp.  Never raises."""
        if not self._enabled:
            return
        try:
            if isinstance(event, dict):
                event = AnalyticsEvent.model_validate(event)
            payload = event.as_payload()
            payload["timestamp"] = self._clock()

            if len(self._queue) == self._queue.maxlen:
                ANALYTICS_EVENTS_DROPPED_TOTAL.labels(reason=DROP_OVERFLOW).inc()
            self._queue.append(payload)
            ANALYTICS_EVENTS_TOTAL.inc()
            logger.info(
                "Analytics event: %s", payload.get("type"), extra={"event": payload}
            )
        except Exception:
            logger.warning("Dropping analytics event", exc_info=True)

    async def flush(self, sink: AnalyticsSink) -> int:
        """Drain the queue into *sink*.  Returns the number delivered.

        Failures are logged and swallowed; the drained batch is lost.
        """
        if not self._queue:
            return 0

        batch = list(self._queue)
        self._queue.clear()

        with tracer.start_as_current_span(SPAN_ANALYTICS_FLUSH) as span:
            span.set_attribute(ATTR_ANALYTICS_BATCH_SIZE, len(batch))
            try:
                await sink.send(batch)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                UPSTREAM_FAILURES_TOTAL.labels(upstream=UPSTREAM_ANALYTICS).inc()
                ANALYTICS_EVENTS_DROPPED_TOTAL.labels(
                    reason=DROP_FLUSH_FAILED
                ).inc(len(batch))
                logger.warning(
                    "%s: %d event(s) discarded: %s",
                    EVENT_ANALYTICS_FLUSH_FAILED,
                    len(batch),
                    exc,
                )
                return 0

        logger.debug("Flushed %d analytics event(s)", len(batch))
        return len(batch)


# ---------------------------------------------------------------------------
# Background flusher
# ---------------------------------------------------------------------------


class AnalyticsFlusher:
    """Owns an ``asyncio.Task`` calling ``emitter.flush(sink)`` periodically."""

    def __init__(
        self, emitter: AnalyticsEmitter, sink: AnalyticsSink, interval: float
    ) -> None:
        self._emitter = emitter
        self._sink = sink
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        self._task = asyncio.create_task(self._loop(), name="analytics-flusher")
        logger.info("Analytics flusher started (interval=%.0fs)", self._interval)

    async def stop(self) -> None:
        """Cancel the loop, then deliver whatever is still queued."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        await self._emitter.flush(self._sink)
        logger.info("Analytics flusher stopped.")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self._emitter.flush(self._sink)


# ---------------------------------------------------------------------------
# Lifespan dependency
# ---------------------------------------------------------------------------


def _make_emitter(config: AnalyticsConfig) -> AnalyticsEmitter:
    return AnalyticsEmitter(config.queue_size, enabled=config.enabled)


async def build_analytics(
    app: Annotated[FastAPI, Depends(get_app)],
    http_client: Annotated[httpx.AsyncClient, Depends(build_http_client)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[AnalyticsEmitter, None]:
    """Create the emitter (and flusher when a sink is configured)."""
    analytics = config.analytics
    emitter = _make_emitter(analytics)
    app.state.analytics = emitter

    interval = analytics.flush_interval.total_seconds()
    if not analytics.enabled or not analytics.sink_url or interval <= 0:
        logger.info("Analytics: log only (no sink configured)")
        yield emitter
        return

    sink = HttpAnalyticsSink(
        http_client, analytics.sink_url, analytics.timeout.total_seconds()
    )
    flusher = AnalyticsFlusher(emitter, sink, interval)
    await flusher.start()
    yield emitter
    await flusher.stop()


def get_analytics(request: Request) -> AnalyticsEmitter:
    """Return the emitter stored on ``app.state`` by the lifespan."""
    return request.app.state.analytics
