"""Shared outbound HTTP client.

Pure infra: no domain imports.  One ``httpx.AsyncClient`` is opened for
the lifetime of the app so the similarity search and the analytics sink
reuse pooled connections.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

import httpx
from fastapi import Depends, FastAPI, Request

from copilot.infra.lifespan import get_app

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


async def build_http_client(
    app: Annotated[FastAPI, Depends(get_app)],
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Open the shared client, attach to ``app.state``; close on shutdown."""
    client = httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)
    app.state.http_client = client
    yield client
    await client.aclose()
    logger.info("Shared HTTP client closed.")


def get_http_client(request: Request) -> httpx.AsyncClient:
    """Return the client stored on ``app.state`` by the lifespan."""
    return request.app.state.http_client
