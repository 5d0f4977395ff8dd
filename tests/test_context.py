"""Tests for the context resolver state machine."""

from __future__ import annotations

import logging

import pytest
from fakes import LONG_CONTENT, FakeEmbedder, FakeSearch, make_match

from copilot.configs.system import RagConfig
from copilot.core.context import ContextResolver
from copilot.core.exceptions import UpstreamRetrievalFailure
from copilot.core.models import ContextSource

LONG_QUESTION = "How do you approach data platform modernisation?"
OTHER_CONTENT = (
    "Our delivery model pairs a senior engineer with your domain experts so "
    "that every prototype is grounded in a workflow that already exists."
)


def _resolver(sessions, content, *, embedder=None, search=None, rag=None):
    return ContextResolver(
        sessions, rag or RagConfig(), content, embedder=embedder, search=search
    )


class TestRetrieve:
    @pytest.mark.asyncio
    async def test_joins_matches_and_stores_context(self, sessions, content):
        search = FakeSearch(
            [
                make_match(LONG_CONTENT, url="/insights/a", title="A"),
                make_match(OTHER_CONTENT, url="/solutions/b", title="B"),
            ]
        )
        resolver = _resolver(
            sessions, content, embedder=FakeEmbedder(), search=search
        )

        ctx = await resolver.resolve(LONG_QUESTION, "s1")

        assert ctx.source == ContextSource.RETRIEVE
        assert ctx.text == f"{LONG_CONTENT}\n{OTHER_CONTENT}"
        assert [r.url for r in ctx.references] == [
            "https://sensihi.com/insights/a",
            "https://sensihi.com/solutions/b",
        ]
        assert await sessions.get_last_context("s1") == ctx.text

    @pytest.mark.asyncio
    async def test_passes_threshold_and_top_k(self, sessions, content):
        search = FakeSearch([make_match()])
        rag = RagConfig(similarity_threshold=0.6, top_k=3)
        resolver = _resolver(
            sessions,
            content,
            embedder=FakeEmbedder(vector=[1.0]),
            search=search,
            rag=rag,
        )
        await resolver.resolve(LONG_QUESTION, "s1")
        assert search.calls == [([1.0], 0.6, 3)]

    @pytest.mark.asyncio
    async def test_short_query_skips_retrieval(self, sessions, content):
        embedder = FakeEmbedder()
        resolver = _resolver(
            sessions, content, embedder=embedder, search=FakeSearch([make_match()])
        )
        ctx = await resolver.resolve("hi there", "s1")
        assert embedder.calls == []
        assert ctx.source == ContextSource.HARDCODED_DEFAULT

    @pytest.mark.asyncio
    async def test_unusable_matches_fall_through(self, sessions, content):
        resolver = _resolver(
            sessions,
            content,
            embedder=FakeEmbedder(),
            search=FakeSearch([make_match("tiny"), make_match(" " * 90)]),
        )
        ctx = await resolver.resolve(LONG_QUESTION, "s1")
        assert ctx.source == ContextSource.HARDCODED_DEFAULT
        assert await sessions.get_last_context("s1") is None

    @pytest.mark.asyncio
    async def test_disabled_rag_skips_retrieval(self, sessions, content):
        embedder = FakeEmbedder()
        resolver = _resolver(
            sessions,
            content,
            embedder=embedder,
            search=FakeSearch([make_match()]),
            rag=RagConfig(enabled=False),
        )
        await resolver.resolve(LONG_QUESTION, "s1")
        assert embedder.calls == []


class TestUpstreamFailures:
    @pytest.mark.asyncio
    async def test_embedding_failure_falls_to_static(self, sessions, content, caplog):
        search = FakeSearch([make_match()])
        resolver = _resolver(
            sessions,
            content,
            embedder=FakeEmbedder(error=UpstreamRetrievalFailure("boom")),
            search=search,
        )
        with caplog.at_level(logging.ERROR, logger="copilot.core.context"):
            ctx = await resolver.resolve("Tell me about Sensihi please", "s1")

        assert ctx.source == ContextSource.STATIC_FALLBACK
        assert search.calls == []
        assert "EMBEDDING_FAILED" in caplog.text

    @pytest.mark.asyncio
    async def test_search_failure_falls_to_default(self, sessions, content, caplog):
        resolver = _resolver(
            sessions,
            content,
            embedder=FakeEmbedder(),
            search=FakeSearch(error=UpstreamRetrievalFailure("timeout")),
        )
        with caplog.at_level(logging.ERROR, logger="copilot.core.context"):
            ctx = await resolver.resolve(LONG_QUESTION, "s1")

        assert ctx.source == ContextSource.HARDCODED_DEFAULT
        assert ctx.text == content.default_context
        assert "VECTOR_SEARCH_FAILED" in caplog.text


class TestReuse:
    @pytest.mark.asyncio
    async def test_short_follow_up_reuses_last_context(self, sessions, content):
        embedder = FakeEmbedder()
        search = FakeSearch([make_match(url="/insights/a", title="A")])
        resolver = _resolver(sessions, content, embedder=embedder, search=search)

        first = await resolver.resolve(LONG_QUESTION, "s1")
        second = await resolver.resolve("and pricing?", "s1")

        assert first.source == ContextSource.RETRIEVE
        assert second.source == ContextSource.REUSE
        assert second.text == first.text
        assert second.references == []
        assert len(embedder.calls) == 1

    @pytest.mark.asyncio
    async def test_history_makes_long_message_a_follow_up(self, sessions, content):
        embedder = FakeEmbedder()
        resolver = _resolver(
            sessions, content, embedder=embedder, search=FakeSearch([make_match()])
        )
        await sessions.set_last_context("s1", "earlier grounding")

        ctx = await resolver.resolve(LONG_QUESTION, "s1", history=["earlier"])

        assert ctx.source == ContextSource.REUSE
        assert ctx.text == "earlier grounding"
        assert embedder.calls == []

    @pytest.mark.asyncio
    async def test_fresh_long_question_retrieves_again(self, sessions, content):
        embedder = FakeEmbedder()
        resolver = _resolver(
            sessions, content, embedder=embedder, search=FakeSearch([make_match()])
        )
        await sessions.set_last_context("s1", "earlier grounding")

        ctx = await resolver.resolve(LONG_QUESTION, "s1")

        assert ctx.source == ContextSource.RETRIEVE
        assert embedder.calls == [LONG_QUESTION]

    @pytest.mark.asyncio
    async def test_no_last_context_means_no_reuse(self, sessions, content):
        resolver = _resolver(sessions, content)
        ctx = await resolver.resolve("ok", "s1", history=["earlier"])
        assert ctx.source == ContextSource.HARDCODED_DEFAULT


class TestStaticFallback:
    @pytest.mark.asyncio
    async def test_concatenates_matching_paragraphs(self, sessions, content):
        resolver = _resolver(sessions, content)
        ctx = await resolver.resolve("What is Sensihi's take on AI prototyping?", "s1")

        assert ctx.source == ContextSource.STATIC_FALLBACK
        paragraphs = ctx.text.split("\n")
        assert len(paragraphs) == 3
        assert paragraphs[0].startswith("Sensihi is an AI consultancy")
        assert paragraphs[1].startswith("Prototyping is the process")
        assert paragraphs[2].startswith("Sensihi focuses on practical AI")
        assert ctx.references == []

    @pytest.mark.asyncio
    async def test_keywords_match_whole_words_only(self, sessions, content):
        resolver = _resolver(sessions, content)
        ctx = await resolver.resolve("Please explain your approach", "s1")
        assert ctx.source == ContextSource.HARDCODED_DEFAULT

    @pytest.mark.asyncio
    async def test_default_is_never_empty(self, sessions, content):
        resolver = _resolver(sessions, content)
        ctx = await resolver.resolve("Hello", "s1")
        assert ctx.source == ContextSource.HARDCODED_DEFAULT
        assert ctx.text == content.default_context
        assert ctx.text
