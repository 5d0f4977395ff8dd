"""Async Redis client lifespan dependency.

``build_redis`` yields a verified client, or ``None`` when no URI is
configured or the server is unreachable.  Downstream deps (the state
backend) declare ``Depends(build_redis)`` and fall back to in-process
storage on ``None``.
"""

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from redis.asyncio import Redis

from copilot.configs.config import AppConfig, get_app_config

logger = logging.getLogger(__name__)


async def build_redis(
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[Redis | None, None]:
    """Create a Redis client; yield ``None`` if disabled or unreachable."""
    uri = config.third_party.redis_uri
    if not uri:
        logger.info("Redis not configured -- keeping state in-process.")
        yield None
        return

    client = Redis.from_url(uri, decode_responses=True)
    verified: Redis | None = None
    try:
        await client.ping()
        verified = client
    except Exception:
        logger.warning(
            "Redis unavailable at startup -- falling back to in-process state."
        )

    yield verified

    await client.aclose()
