"""Shared fixtures: a fake clock driving an in-process state backend."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from fakes import FakeClock, FakeGenerator

from copilot.configs.content import ContentConfig
from copilot.configs.system import RagConfig
from copilot.core.analytics import AnalyticsEmitter
from copilot.core.context import ContextResolver
from copilot.core.guards import RateGuard, SessionMessageGuard
from copilot.core.orchestrator import Orchestrator
from copilot.core.session import SessionStore
from copilot.infra.keyed_lock import KeyedLock
from copilot.infra.state import LocalStateBackend


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend(clock: FakeClock) -> LocalStateBackend:
    return LocalStateBackend(max_entries=1000, clock=clock)


@pytest.fixture
def sessions(backend: LocalStateBackend, clock: FakeClock) -> SessionStore:
    return SessionStore(backend, clock=clock)


@pytest.fixture
def content() -> ContentConfig:
    return ContentConfig()


@pytest.fixture
def make_orchestrator(
    backend: LocalStateBackend,
    sessions: SessionStore,
    clock: FakeClock,
    content: ContentConfig,
) -> Callable[..., Orchestrator]:
    """Factory wiring an orchestrator around fakes; kwargs override parts."""

    def _make(
        *,
        generator=None,
        embedder=None,
        search=None,
        rag: RagConfig | None = None,
        analytics: AnalyticsEmitter | None = None,
        max_requests: int = 10,
        max_session_messages: int = 30,
    ) -> Orchestrator:
        resolver = ContextResolver(
            sessions,
            rag if rag is not None else RagConfig(),
            content,
            embedder=embedder,
            search=search,
        )
        return Orchestrator(
            sessions=sessions,
            rate_guard=RateGuard(backend, max_requests=max_requests, clock=clock),
            session_guard=SessionMessageGuard(
                sessions, max_messages=max_session_messages
            ),
            resolver=resolver,
            generator=generator if generator is not None else FakeGenerator(),
            analytics=(
                analytics if analytics is not None else AnalyticsEmitter(clock=clock)
            ),
            content=content,
            locks=KeyedLock(),
        )

    return _make
