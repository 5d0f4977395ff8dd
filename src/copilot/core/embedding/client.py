"""EmbeddingModel -- cached, time-bounded OpenAI embeddings."""

import asyncio
import logging
import time

import httpx
import openai

from copilot.configs.system import EmbeddingConfig
from copilot.core.exceptions import UpstreamRetrievalFailure
from copilot.core.metrics import UPSTREAM_LATENCY_SECONDS
from copilot.infra.telemetry import (
    ATTR_EMBEDDING_CACHE_HIT,
    ATTR_EMBEDDING_MODEL,
    ATTR_EMBEDDING_TEXT_LEN,
    SPAN_EMBEDDING_EMBED,
    tracer,
)

from .cache import EmbeddingCache

logger = logging.getLogger(__name__)

UPSTREAM_EMBEDDING = "embedding"


class EmbeddingModel:
    """OpenAI-compatible embedding client with an in-memory query cache.

    Public API
    ----------
    ``embed(text)``
        Returns the cached vector for *text* or calls the provider on a
        miss and stores the result.  Any provider error or a timeout
        surfaces as ``UpstreamRetrievalFailure``.
    """

    def __init__(
        self,
        config: EmbeddingConfig,
        cache: EmbeddingCache,
        *,
        api_key: str,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        client: openai.AsyncOpenAI | None = None,
    ) -> None:
        self._config = config
        self._cache = cache
        self._openai = client or openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            max_retries=0,
            http_client=http_client,
        )

    @property
    def model_name(self) -> str:
        return self._config.model_name

    @property
    def cache(self) -> EmbeddingCache:
        return self._cache

    async def embed(self, text: str) -> list[float]:
        with tracer.start_as_current_span(SPAN_EMBEDDING_EMBED) as span:
            span.set_attribute(ATTR_EMBEDDING_MODEL, self._config.model_name)
            span.set_attribute(ATTR_EMBEDDING_TEXT_LEN, len(text))

            cached = self._cache.get(text)
            span.set_attribute(ATTR_EMBEDDING_CACHE_HIT, cached is not None)
            if cached is not None:
                return cached

            vector = await self._call(text)
            self._cache.put(text, vector)
            return vector

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _call(self, text: str) -> list[float]:
        start = time.monotonic()
        try:
            async with asyncio.timeout(self._config.timeout.total_seconds()):
                response = await self._openai.embeddings.create(
                    input=text,
                    model=self._config.model_name,
                )
        except TimeoutError as exc:
            raise UpstreamRetrievalFailure("Embedding request timed out") from exc
        except openai.OpenAIError as exc:
            raise UpstreamRetrievalFailure(f"Embedding request failed: {exc}") from exc
        finally:
            UPSTREAM_LATENCY_SECONDS.labels(upstream=UPSTREAM_EMBEDDING).observe(
                time.monotonic() - start
            )

        if not response.data or not response.data[0].embedding:
            raise UpstreamRetrievalFailure("Embedding response carried no vector")
        return list(response.data[0].embedding)
