"""Similarity search over the indexed site content, and reference links.

The search itself runs inside the document store: ``SupabaseDocumentSearch``
calls a PostgREST RPC that takes the query embedding and returns the best
matches first.  This module only shapes the request and the response, and
turns match metadata into the citation links shown under an answer.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable
from urllib.parse import urlsplit, urlunsplit

import httpx
from pydantic import ValidationError

from copilot.configs.system import RagConfig
from copilot.core.exceptions import UpstreamRetrievalFailure
from copilot.core.metrics import UPSTREAM_LATENCY_SECONDS
from copilot.infra.telemetry import (
    ATTR_SEARCH_RESULT_COUNT,
    ATTR_SEARCH_THRESHOLD,
    ATTR_SEARCH_TOP_K,
    SPAN_VECTOR_SEARCH,
    tracer,
)

from .models import DocumentMatch, Reference

logger = logging.getLogger(__name__)

UPSTREAM_VECTOR_SEARCH = "vector_search"

_RPC_PATH = "/rest/v1/rpc/{function}"


class DocumentSearch(ABC):
    """Boundary to the similarity search backend."""

    @abstractmethod
    async def search(
        self, embedding: list[float], threshold: float, top_k: int
    ) -> list[DocumentMatch]:
        """Return at most *top_k* matches above *threshold*, best first.

        Raises ``UpstreamRetrievalFailure`` on any transport or decoding
        error.
        """


class SupabaseDocumentSearch(DocumentSearch):
    """Calls ``POST {supabase_url}/rest/v1/rpc/{match_function}``."""

    def __init__(
        self,
        config: RagConfig,
        client: httpx.AsyncClient,
        *,
        supabase_url: str,
        service_key: str,
    ) -> None:
        self._config = config
        self._client = client
        self._endpoint = supabase_url.rstrip("/") + _RPC_PATH.format(
            function=config.match_function
        )
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }

    async def search(
        self, embedding: list[float], threshold: float, top_k: int
    ) -> list[DocumentMatch]:
        with tracer.start_as_current_span(SPAN_VECTOR_SEARCH) as span:
            span.set_attribute(ATTR_SEARCH_THRESHOLD, threshold)
            span.set_attribute(ATTR_SEARCH_TOP_K, top_k)

            payload = {
                "query_embedding": embedding,
                "match_threshold": threshold,
                "match_count": top_k,
            }
            start = time.monotonic()
            try:
                async with asyncio.timeout(self._config.timeout.total_seconds()):
                    response = await self._client.post(
                        self._endpoint, json=payload, headers=self._headers
                    )
                response.raise_for_status()
                rows = response.json()
            except TimeoutError as exc:
                raise UpstreamRetrievalFailure("Vector search timed out") from exc
            except (httpx.HTTPError, ValueError) as exc:
                raise UpstreamRetrievalFailure(
                    f"Vector search failed: {exc}"
                ) from exc
            finally:
                UPSTREAM_LATENCY_SECONDS.labels(
                    upstream=UPSTREAM_VECTOR_SEARCH
                ).observe(time.monotonic() - start)

            matches = parse_matches(rows)
            span.set_attribute(ATTR_SEARCH_RESULT_COUNT, len(matches))
            return matches


def parse_matches(rows: object) -> list[DocumentMatch]:
    """Validate RPC rows, skipping any that do not look like a match."""
    if not isinstance(rows, list):
        raise UpstreamRetrievalFailure("Vector search returned a non-list body")

    matches: list[DocumentMatch] = []
    for row in rows:
        try:
            matches.append(DocumentMatch.model_validate(row))
        except ValidationError:
            logger.debug("Skipping malformed match row: %r", row)
    return matches


def usable_matches(
    matches: Iterable[DocumentMatch], min_content_chars: int
) -> list[DocumentMatch]:
    """Drop matches whose content is too short to ground an answer."""
    return [
        match
        for match in matches
        if match.content and len(match.content.strip()) >= min_content_chars
    ]


# ---------------------------------------------------------------------------
# References
# ---------------------------------------------------------------------------


def _path_matches(path: str, prefixes: Iterable[str]) -> bool:
    for prefix in prefixes:
        prefix = prefix.rstrip("/")
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return False


def normalize_url(raw: str | None, config: RagConfig) -> str | None:
    """Canonical absolute url for *raw*, or ``None`` if it is not citable.

    Relative paths are resolved against ``site_origin``; other hosts are
    rejected.  Query, fragment and trailing slash are stripped so one page
    never shows up twice.
    """
    if not raw:
        return None
    raw = raw.strip()
    origin = urlsplit(config.site_origin)

    if raw.startswith("/") and not raw.startswith("//"):
        parts = urlsplit(f"{origin.scheme}://{origin.netloc}{raw}")
    else:
        parts = urlsplit(raw)
        if parts.scheme not in ("http", "https"):
            return None
        host = parts.netloc.lower().removeprefix("www.")
        if host != origin.netloc.lower().removeprefix("www."):
            return None

    path = parts.path.rstrip("/")
    if not path:
        return None
    if _path_matches(path, config.reference_deny_paths):
        return None
    if not _path_matches(path, config.reference_allow_paths):
        return None

    return urlunsplit((origin.scheme, origin.netloc, path, "", ""))


def extract_references(
    matches: Iterable[DocumentMatch], config: RagConfig
) -> list[Reference]:
    """Citable, de-duplicated links in match order, capped."""
    references: list[Reference] = []
    seen: set[str] = set()

    for match in matches:
        if len(references) >= config.max_references:
            break
        meta = match.metadata
        url = normalize_url(meta.url or meta.href, config)
        if url is None or url in seen:
            continue
        seen.add(url)
        title = (meta.title or meta.heading or "").strip()
        references.append(
            Reference(title=title or config.default_reference_title, url=url)
        )

    return references
