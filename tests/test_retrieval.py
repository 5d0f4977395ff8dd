"""Tests for similarity search plumbing and reference extraction."""

from __future__ import annotations

import asyncio
import json
from datetime import timedelta

import httpx
import pytest
from fakes import LONG_CONTENT, make_match

from copilot.configs.system import RagConfig
from copilot.core.exceptions import UpstreamRetrievalFailure
from copilot.core.retrieval import (
    SupabaseDocumentSearch,
    extract_references,
    normalize_url,
    parse_matches,
    usable_matches,
)


@pytest.fixture
def rag() -> RagConfig:
    return RagConfig()


class TestNormalizeUrl:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("/insights/ai-roadmap/", "https://sensihi.com/insights/ai-roadmap"),
            ("https://sensihi.com/blog/agents", "https://sensihi.com/blog/agents"),
            (
                "https://www.sensihi.com/solutions/retail?utm_source=x#top",
                "https://sensihi.com/solutions/retail",
            ),
            ("/insights", "https://sensihi.com/insights"),
        ],
    )
    def test_citable(self, rag, raw, expected):
        assert normalize_url(raw, rag) == expected

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            "",
            "/",
            "https://example.com/insights/ai",
            "//example.com/insights/ai",
            "mailto:hello@sensihi.com",
            "/contact",
            "/careers/engineer",
            "/privacy",
            "/pricing",
            "/insightsextra",
        ],
    )
    def test_rejected(self, rag, raw):
        assert normalize_url(raw, rag) is None

    def test_deny_list_wins_over_allow_list(self):
        config = RagConfig(
            reference_allow_paths=["/insights"],
            reference_deny_paths=["/insights/drafts"],
        )
        assert normalize_url("/insights/drafts/x", config) is None
        assert normalize_url("/insights/final", config) is not None


class TestExtractReferences:
    def test_dedupes_in_match_order(self, rag):
        matches = [
            make_match(url="/insights/a", title="A"),
            make_match(url="https://sensihi.com/insights/a/", title="A again"),
            make_match(url="/blog/b", title="B"),
        ]
        refs = extract_references(matches, rag)
        assert [(r.title, r.url) for r in refs] == [
            ("A", "https://sensihi.com/insights/a"),
            ("B", "https://sensihi.com/blog/b"),
        ]

    def test_capped(self):
        config = RagConfig(max_references=2)
        matches = [make_match(url=f"/insights/{i}", title=str(i)) for i in range(5)]
        assert len(extract_references(matches, config)) == 2

    def test_title_falls_back_to_heading_then_default(self, rag):
        matches = [
            make_match(url="/insights/a", heading="Heading A"),
            make_match(url="/insights/b", title="  "),
        ]
        refs = extract_references(matches, rag)
        assert refs[0].title == "Heading A"
        assert refs[1].title == "Related Sensihi insight"

    def test_href_used_when_url_missing(self, rag):
        match = make_match()
        match.metadata.href = "/case-studies/logistics"
        [ref] = extract_references([match], rag)
        assert ref.url == "https://sensihi.com/case-studies/logistics"

    def test_matches_without_links_skipped(self, rag):
        matches = [make_match(), make_match(url="/contact", title="Contact")]
        assert extract_references(matches, rag) == []


class TestParseMatches:
    def test_parses_rows(self):
        rows = [
            {
                "content": LONG_CONTENT,
                "metadata": {"url": "/insights/a", "title": "A", "lang": "en"},
                "similarity": 0.82,
                "id": 7,
            }
        ]
        [match] = parse_matches(rows)
        assert match.metadata.url == "/insights/a"
        assert match.similarity == 0.82

    def test_skips_malformed_rows(self):
        rows = ["garbage", {"content": LONG_CONTENT}]
        assert len(parse_matches(rows)) == 1

    def test_non_list_body_raises(self):
        with pytest.raises(UpstreamRetrievalFailure):
            parse_matches({"error": "nope"})


class TestUsableMatches:
    def test_short_content_dropped(self):
        matches = [make_match("too short"), make_match(), make_match(" " * 100)]
        assert usable_matches(matches, 80) == [matches[1]]

    def test_threshold_is_inclusive(self):
        match = make_match("x" * 80)
        assert usable_matches([match], 80) == [match]


class TestSupabaseDocumentSearch:
    @pytest.mark.asyncio
    async def test_calls_match_rpc(self, rag):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json=[{"content": LONG_CONTENT, "metadata": {"url": "/blog/x"}}],
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            search = SupabaseDocumentSearch(
                rag,
                client,
                supabase_url="https://proj.supabase.co/",
                service_key="service-key",
            )
            matches = await search.search([0.1, 0.2], 0.75, 5)

        assert len(matches) == 1
        request = seen[0]
        assert str(request.url) == (
            "https://proj.supabase.co/rest/v1/rpc/match_sensihi_documents"
        )
        assert request.headers["apikey"] == "service-key"
        assert request.headers["authorization"] == "Bearer service-key"
        assert json.loads(request.content) == {
            "query_embedding": [0.1, 0.2],
            "match_threshold": 0.75,
            "match_count": 5,
        }

    @pytest.mark.asyncio
    async def test_http_error_becomes_upstream_failure(self, rag):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))
        async with httpx.AsyncClient(transport=transport) as client:
            search = SupabaseDocumentSearch(
                rag, client, supabase_url="https://proj.supabase.co", service_key="k"
            )
            with pytest.raises(UpstreamRetrievalFailure):
                await search.search([0.1], 0.75, 5)

    @pytest.mark.asyncio
    async def test_invalid_json_becomes_upstream_failure(self, rag):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, content=b"<html>")
        )
        async with httpx.AsyncClient(transport=transport) as client:
            search = SupabaseDocumentSearch(
                rag, client, supabase_url="https://proj.supabase.co", service_key="k"
            )
            with pytest.raises(UpstreamRetrievalFailure):
                await search.search([0.1], 0.75, 5)

    @pytest.mark.asyncio
    async def test_timeout_becomes_upstream_failure(self):
        config = RagConfig(timeout=timedelta(milliseconds=20))

        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200, json=[])

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            search = SupabaseDocumentSearch(
                config, client, supabase_url="https://proj.supabase.co", service_key="k"
            )
            with pytest.raises(UpstreamRetrievalFailure, match="timed out"):
                await search.search([0.1], 0.75, 5)
