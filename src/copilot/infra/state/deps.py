"""Lifespan and per-request dependencies for the state backend."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from redis.asyncio import Redis

from copilot.configs.config import AppConfig, get_app_config
from copilot.infra.lifespan import get_app
from copilot.infra.redis import build_redis

from .base import StateBackend
from .local_backend import LocalStateBackend
from .redis_backend import RedisStateBackend
from .sweeper import StateSweeper

logger = logging.getLogger(__name__)


async def build_state_backend(
    app: Annotated[FastAPI, Depends(get_app)],
    redis_client: Annotated[Redis | None, Depends(build_redis)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[StateBackend, None]:
    """Create the state backend, attach to ``app.state``; close on shutdown."""
    if redis_client is not None:
        backend: StateBackend = RedisStateBackend(redis_client)
        logger.info("State backend: Redis")
    else:
        backend = LocalStateBackend(max_entries=config.state.max_entries)
        logger.info(
            "State backend: local (max_entries=%d)", config.state.max_entries
        )
    app.state.state_backend = backend
    yield backend
    await backend.aclose()


async def build_sweeper(
    backend: Annotated[StateBackend, Depends(build_state_backend)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[None, None]:
    """Run the periodic sweep for the lifetime of the app (if enabled)."""
    interval = config.session.sweep_interval.total_seconds()
    if interval <= 0 or isinstance(backend, RedisStateBackend):
        yield
        return
    sweeper = StateSweeper(backend, interval)
    await sweeper.start()
    yield
    await sweeper.stop()


def get_state_backend(request: Request) -> StateBackend:
    """Return the ``StateBackend`` stored on ``app.state`` by the lifespan."""
    return request.app.state.state_backend
