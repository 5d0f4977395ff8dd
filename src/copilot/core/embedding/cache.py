"""Process-wide cache of query embeddings."""

from __future__ import annotations

import logging

from copilot.core.metrics import EMBEDDING_CACHE_LOOKUPS_TOTAL

logger = logging.getLogger(__name__)

CACHE_RESULT_HIT = "hit"
CACHE_RESULT_MISS = "miss"


class EmbeddingCache:
    """Raw query text -> embedding vector, bounded by ``max_entries``.

    Eviction is by insertion order: once full, storing a new query drops
    the oldest stored one.  Reads do not refresh an entry.  Keys are the
    raw query, so two spellings of the same question are two entries.
    """

    def __init__(self, max_entries: int = 500) -> None:
        self._max_entries = max_entries
        self._vectors: dict[str, list[float]] = {}

    def __len__(self) -> int:
        return len(self._vectors)

    def __contains__(self, query: object) -> bool:
        return query in self._vectors

    def get(self, query: str) -> list[float] | None:
        vector = self._vectors.get(query)
        EMBEDDING_CACHE_LOOKUPS_TOTAL.labels(
            result=CACHE_RESULT_HIT if vector is not None else CACHE_RESULT_MISS
        ).inc()
        return vector

    def put(self, query: str, vector: list[float]) -> None:
        if self._max_entries <= 0:
            return
        if query in self._vectors:
            self._vectors[query] = vector
            return
        while len(self._vectors) >= self._max_entries:
            oldest = next(iter(self._vectors))
            del self._vectors[oldest]
        self._vectors[query] = vector

    def clear(self) -> None:
        self._vectors.clear()
