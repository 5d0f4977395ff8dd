"""FastAPI dependency factories for the copilot pipeline.

Process-wide objects (state backend, embedding cache, session locks,
analytics emitter, HTTP client) are created by lifespan dependencies and
read from ``app.state``.  ``get_orchestrator`` is a per-request factory
with an explicit parameter chain.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

import httpx
from fastapi import Depends, FastAPI, Request

from copilot.configs.config import AppConfig, get_app_config
from copilot.core.embedding import EmbeddingCache, EmbeddingModel
from copilot.core.llm import get_generator
from copilot.infra.http import get_http_client
from copilot.infra.keyed_lock import KeyedLock, NullLock
from copilot.infra.lifespan import get_app
from copilot.infra.state import StateBackend, get_state_backend

from .analytics import AnalyticsEmitter, get_analytics
from .context import ContextResolver
from .exceptions import ConfigurationError
from .guards import RateGuard, SessionMessageGuard
from .orchestrator import Orchestrator
from .retrieval import SupabaseDocumentSearch
from .session import SessionStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan dependencies
# ---------------------------------------------------------------------------


async def build_embedding_cache(
    app: Annotated[FastAPI, Depends(get_app)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[EmbeddingCache, None]:
    cache = EmbeddingCache(config.embedding.cache_max_entries)
    app.state.embedding_cache = cache
    yield cache
    cache.clear()


async def build_session_locks(
    app: Annotated[FastAPI, Depends(get_app)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[None, None]:
    app.state.session_locks = (
        KeyedLock() if config.chat.serialize_sessions else NullLock()
    )
    yield


def get_embedding_cache(request: Request) -> EmbeddingCache:
    return request.app.state.embedding_cache


def get_session_locks(request: Request) -> KeyedLock | NullLock:
    return request.app.state.session_locks


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


def validate_credentials(config: AppConfig) -> None:
    """Raise ``ConfigurationError`` naming every missing credential.

    The OpenAI key is needed whenever embeddings or completions are
    requested from the provider; Supabase only when retrieval is on.
    """
    third_party = config.third_party
    missing: list[str] = []

    needs_openai = config.rag.enabled or config.llm.provider == "openai"
    if needs_openai and not third_party.openai_api_key:
        missing.append("OPENAI_API_KEY")
    if config.rag.enabled:
        if not third_party.supabase_url:
            missing.append("SUPABASE_URL")
        if not third_party.supabase_service_key:
            missing.append("SUPABASE_SERVICE_KEY")

    if missing:
        logger.error("Missing credentials: %s", ", ".join(missing))
        raise ConfigurationError(f"Missing credentials: {', '.join(missing)}")


# ---------------------------------------------------------------------------
# Orchestrator -- per-request, fully explicit Depends chain
# ---------------------------------------------------------------------------


def build_orchestrator(
    config: AppConfig,
    *,
    backend: StateBackend,
    analytics: AnalyticsEmitter,
    http_client: httpx.AsyncClient,
    embedding_cache: EmbeddingCache,
    locks: KeyedLock | NullLock | None = None,
) -> Orchestrator:
    """Assemble an orchestrator from process-wide parts and *config*."""
    validate_credentials(config)

    key_prefix = config.state.key_prefix
    sessions = SessionStore.from_config(backend, config.session, key_prefix)

    embedder = None
    search = None
    if config.rag.enabled:
        embedder = EmbeddingModel(
            config.embedding,
            embedding_cache,
            api_key=config.third_party.openai_api_key,
            base_url=config.third_party.openai_base_url,
            http_client=http_client,
        )
        search = SupabaseDocumentSearch(
            config.rag,
            http_client,
            supabase_url=config.third_party.supabase_url,
            service_key=config.third_party.supabase_service_key,
        )

    return Orchestrator(
        sessions=sessions,
        rate_guard=RateGuard.from_config(backend, config.guard, key_prefix),
        session_guard=SessionMessageGuard.from_config(sessions, config.guard),
        resolver=ContextResolver(
            sessions,
            config.rag,
            config.content,
            embedder=embedder,
            search=search,
        ),
        generator=get_generator(config, http_client=http_client),
        analytics=analytics,
        content=config.content,
        locks=locks,
    )


def get_orchestrator(
    config: Annotated[AppConfig, Depends(get_app_config)],
    backend: Annotated[StateBackend, Depends(get_state_backend)],
    analytics: Annotated[AnalyticsEmitter, Depends(get_analytics)],
    http_client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    embedding_cache: Annotated[EmbeddingCache, Depends(get_embedding_cache)],
    locks: Annotated[KeyedLock | NullLock, Depends(get_session_locks)],
) -> Orchestrator:
    """Create a configured orchestrator per request.

    All dependencies are injected explicitly via ``Depends()``.
    """
    return build_orchestrator(
        config,
        backend=backend,
        analytics=analytics,
        http_client=http_client,
        embedding_cache=embedding_cache,
        locks=locks,
    )
