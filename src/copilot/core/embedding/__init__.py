"""Query embeddings -- provider client and in-memory cache."""

from .cache import EmbeddingCache
from .client import EmbeddingModel

__all__ = [
    "EmbeddingCache",
    "EmbeddingModel",
]
