"""Context resolver -- LangGraph StateGraph over the grounding fallbacks.

Pipeline nodes:
    reuse ─┬─ (found) → END
           └─ (empty) → retrieve ─┬─ (found) → END
                                  └─ (empty) → static_fallback ─┬─ (found) → END
                                                                └─ (empty) → hardcoded_default → END

Each node either produces grounding text or hands over to the next one.
The last node always produces text, so a resolved context is never
empty.  Upstream failures inside ``retrieve`` are logged, counted and
treated as "no result"; they never leave the resolver.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import TypedDict

from langgraph.graph import END, START, StateGraph

from copilot.configs.content import ContentConfig
from copilot.configs.system import RagConfig
from copilot.core.embedding import EmbeddingModel
from copilot.core.exceptions import UpstreamRetrievalFailure
from copilot.infra.telemetry import (
    ATTR_CONTEXT_QUERY_LEN,
    ATTR_CONTEXT_SOURCE,
    SPAN_CONTEXT_RESOLVE,
    tracer,
)

from .metrics import (
    CONTEXT_RESOLUTIONS_TOTAL,
    REFERENCES_RETURNED,
    UPSTREAM_FAILURES_TOTAL,
)
from .models import ContextSource, Reference, ResolvedContext
from .retrieval import DocumentSearch, extract_references, usable_matches
from .session import SessionStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Node / route constants
# ---------------------------------------------------------------------------

NODE_REUSE = "reuse"
NODE_RETRIEVE = "retrieve"
NODE_STATIC_FALLBACK = "static_fallback"
NODE_HARDCODED_DEFAULT = "hardcoded_default"

ROUTE_FOUND = "found"
ROUTE_EMPTY = "empty"

# State field keys
KEY_MESSAGE = "message"
KEY_SESSION_ID = "session_id"
KEY_HISTORY = "history"
KEY_TEXT = "text"
KEY_REFERENCES = "references"
KEY_SOURCE = "source"

# Log event names for upstream failures
EVENT_EMBEDDING_FAILED = "EMBEDDING_FAILED"
EVENT_VECTOR_SEARCH_FAILED = "VECTOR_SEARCH_FAILED"

UPSTREAM_EMBEDDING = "embedding"
UPSTREAM_VECTOR_SEARCH = "vector_search"


# ---------------------------------------------------------------------------
# Graph state
# ---------------------------------------------------------------------------


class ContextState(TypedDict, total=False):
    """Typed state threaded through every node in the resolver graph."""

    message: str
    session_id: str
    history: list[str]

    text: str
    references: list[Reference]
    source: ContextSource


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(keyword.lower())}\b")


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class ContextResolver:
    """Picks the grounding text for one turn.

    The graph is compiled once at construction.  Node functions are bound
    methods so they have access to the session store, the embedding
    model and the search backend.  ``embedder`` / ``search`` may be
    ``None`` when retrieval is disabled; the retrieve node is then a
    pass-through.
    """

    def __init__(
        self,
        sessions: SessionStore,
        rag_config: RagConfig,
        content: ContentConfig,
        *,
        embedder: EmbeddingModel | None = None,
        search: DocumentSearch | None = None,
    ) -> None:
        self._sessions = sessions
        self._rag = rag_config
        self._content = content
        self._embedder = embedder
        self._search = search
        self._fallbacks = [
            ([_keyword_pattern(k) for k in paragraph.keywords], paragraph.text)
            for paragraph in content.fallback_paragraphs
        ]

        self._graph = self._build_graph()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve(
        self,
        message: str,
        session_id: str,
        history: Sequence[str] = (),
    ) -> ResolvedContext:
        with tracer.start_as_current_span(SPAN_CONTEXT_RESOLVE) as span:
            span.set_attribute(ATTR_CONTEXT_QUERY_LEN, len(message))

            final = await self._graph.ainvoke(
                {
                    KEY_MESSAGE: message,
                    KEY_SESSION_ID: session_id,
                    KEY_HISTORY: list(history),
                }
            )

            source = final[KEY_SOURCE]
            span.set_attribute(ATTR_CONTEXT_SOURCE, str(source))
            CONTEXT_RESOLUTIONS_TOTAL.labels(source=str(source)).inc()
            logger.info("Context resolved from %s", source)

            return ResolvedContext(
                text=final[KEY_TEXT],
                references=final.get(KEY_REFERENCES, []),
                source=source,
            )

    # ------------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------------

    def _build_graph(self):
        builder: StateGraph = StateGraph(ContextState)

        builder.add_node(NODE_REUSE, self._reuse_node)
        builder.add_node(NODE_RETRIEVE, self._retrieve_node)
        builder.add_node(NODE_STATIC_FALLBACK, self._static_fallback_node)
        builder.add_node(NODE_HARDCODED_DEFAULT, self._hardcoded_default_node)

        builder.add_edge(START, NODE_REUSE)
        builder.add_conditional_edges(
            NODE_REUSE,
            self._route,
            {ROUTE_FOUND: END, ROUTE_EMPTY: NODE_RETRIEVE},
        )
        builder.add_conditional_edges(
            NODE_RETRIEVE,
            self._route,
            {ROUTE_FOUND: END, ROUTE_EMPTY: NODE_STATIC_FALLBACK},
        )
        builder.add_conditional_edges(
            NODE_STATIC_FALLBACK,
            self._route,
            {ROUTE_FOUND: END, ROUTE_EMPTY: NODE_HARDCODED_DEFAULT},
        )
        builder.add_edge(NODE_HARDCODED_DEFAULT, END)

        return builder.compile()

    @staticmethod
    def _route(state: ContextState) -> str:
        return ROUTE_FOUND if state.get(KEY_TEXT) else ROUTE_EMPTY

    # ------------------------------------------------------------------
    # Node: reuse
    # ------------------------------------------------------------------

    def _is_follow_up(self, state: ContextState) -> bool:
        return (
            len(state[KEY_MESSAGE].strip()) < self._rag.min_query_chars
            or bool(state.get(KEY_HISTORY))
        )

    async def _reuse_node(self, state: ContextState) -> dict:
        if not self._is_follow_up(state):
            return {}
        last = await self._sessions.get_last_context(state[KEY_SESSION_ID])
        if not last:
            return {}
        return {
            KEY_TEXT: last,
            KEY_REFERENCES: [],
            KEY_SOURCE: ContextSource.REUSE,
        }

    # ------------------------------------------------------------------
    # Node: retrieve
    # ------------------------------------------------------------------

    async def _retrieve_node(self, state: ContextState) -> dict:
        if not self._rag.enabled or self._embedder is None or self._search is None:
            return {}

        query = state[KEY_MESSAGE].strip()
        if len(query) < self._rag.min_query_chars:
            logger.debug("Query too short for retrieval (%d chars)", len(query))
            return {}

        try:
            embedding = await self._embedder.embed(query)
        except UpstreamRetrievalFailure as exc:
            UPSTREAM_FAILURES_TOTAL.labels(upstream=UPSTREAM_EMBEDDING).inc()
            logger.error("%s: %s", EVENT_EMBEDDING_FAILED, exc)
            return {}

        try:
            matches = await self._search.search(
                embedding, self._rag.similarity_threshold, self._rag.top_k
            )
        except UpstreamRetrievalFailure as exc:
            UPSTREAM_FAILURES_TOTAL.labels(upstream=UPSTREAM_VECTOR_SEARCH).inc()
            logger.error("%s: %s", EVENT_VECTOR_SEARCH_FAILED, exc)
            return {}

        matches = usable_matches(matches, self._rag.min_content_chars)
        if not matches:
            logger.info("Retrieval returned no usable matches")
            return {}

        text = "\n".join(match.content for match in matches)
        references = extract_references(matches, self._rag)
        REFERENCES_RETURNED.observe(len(references))

        await self._sessions.set_last_context(state[KEY_SESSION_ID], text)
        logger.info(
            "Retrieved %d matches, %d references", len(matches), len(references)
        )
        return {
            KEY_TEXT: text,
            KEY_REFERENCES: references,
            KEY_SOURCE: ContextSource.RETRIEVE,
        }

    # ------------------------------------------------------------------
    # Node: static_fallback
    # ------------------------------------------------------------------

    def _static_fallback_node(self, state: ContextState) -> dict:
        text = state[KEY_MESSAGE].lower()
        paragraphs = [
            paragraph
            for patterns, paragraph in self._fallbacks
            if any(pattern.search(text) for pattern in patterns)
        ]
        if not paragraphs:
            return {}
        return {
            KEY_TEXT: "\n".join(paragraphs),
            KEY_REFERENCES: [],
            KEY_SOURCE: ContextSource.STATIC_FALLBACK,
        }

    # ------------------------------------------------------------------
    # Node: hardcoded_default
    # ------------------------------------------------------------------

    def _hardcoded_default_node(self, state: ContextState) -> dict:
        return {
            KEY_TEXT: self._content.default_context,
            KEY_REFERENCES: [],
            KEY_SOURCE: ContextSource.HARDCODED_DEFAULT,
        }
