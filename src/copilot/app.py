"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

import httpx
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from copilot.api.copilot import router as copilot_router
from copilot.api.exceptions import install_exception_handlers
from copilot.configs.config import AppConfig, get_app_config
from copilot.core.analytics import AnalyticsEmitter, build_analytics
from copilot.core.deps import build_embedding_cache, build_session_locks
from copilot.core.embedding import EmbeddingCache
from copilot.core.metrics import install_metrics
from copilot.infra.http import build_http_client
from copilot.infra.lifespan import inject
from copilot.infra.logging import setup_logging
from copilot.infra.state import StateBackend, build_state_backend, build_sweeper
from copilot.infra.telemetry import build_telemetry, init_telemetry

logger = logging.getLogger(__name__)

CORS_ALLOWED_METHODS = ["POST", "OPTIONS"]
CORS_ALLOWED_HEADERS = ["Content-Type"]


@inject
async def lifespan(
    app: FastAPI,
    _state: Annotated[StateBackend, Depends(build_state_backend)],
    _sweeper: Annotated[None, Depends(build_sweeper)],
    _http: Annotated[httpx.AsyncClient, Depends(build_http_client)],
    _analytics: Annotated[AnalyticsEmitter, Depends(build_analytics)],
    _cache: Annotated[EmbeddingCache, Depends(build_embedding_cache)],
    _locks: Annotated[None, Depends(build_session_locks)],
    _telemetry: Annotated[None, Depends(build_telemetry)],
) -> AsyncGenerator[None, None]:
    """Every process-wide object is owned by one of the dependencies above."""
    logger.info("Copilot started.")
    yield
    logger.info("Copilot shutting down.")


def create_app(config: AppConfig | None = None, *, instrument: bool = True) -> FastAPI:
    """Create and configure the FastAPI application.

    An explicit *config* pins ``get_app_config`` for the lifetime of the
    app instead of re-reading it per request.  ``instrument=False`` skips
    the Prometheus and OpenTelemetry middleware.
    """
    pinned = config is not None
    config = config or get_app_config()

    app = FastAPI(
        title="Sensihi Copilot",
        description="Grounded website copilot with lead qualification",
        version="0.1.0",
        lifespan=lifespan,
    )
    if pinned:
        app.dependency_overrides[get_app_config] = lambda: config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.allowed_origins,
        allow_methods=CORS_ALLOWED_METHODS,
        allow_headers=CORS_ALLOWED_HEADERS,
        max_age=config.api.cors_max_age,
    )
    install_exception_handlers(app, config.content)

    if instrument:
        install_metrics(app, config)
        init_telemetry(app, config.tracing)

    app.include_router(copilot_router)
    return app


def get_app() -> FastAPI:
    """Production entry: configure logging, then build the app."""
    config = get_app_config()
    setup_logging(config.logging)
    return create_app()


app = get_app()
