"""In-memory stand-ins for the copilot's upstream boundaries."""

from __future__ import annotations

from collections.abc import Sequence

from copilot.core.llm import Generator
from copilot.core.models import DocumentMatch, DocumentMetadata
from copilot.core.retrieval import DocumentSearch

LONG_CONTENT = (
    "Sensihi helps mid-sized companies design, prototype and ship AI "
    "features that plug into the tools their teams already use every day."
)


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeEmbedder:
    def __init__(
        self,
        vector: list[float] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.vector = vector or [0.1, 0.2, 0.3]
        self.error = error
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.vector


class FakeSearch(DocumentSearch):
    def __init__(
        self,
        matches: list[DocumentMatch] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.matches = matches or []
        self.error = error
        self.calls: list[tuple[list[float], float, int]] = []

    async def search(
        self, embedding: list[float], threshold: float, top_k: int
    ) -> list[DocumentMatch]:
        self.calls.append((embedding, threshold, top_k))
        if self.error is not None:
            raise self.error
        return list(self.matches)


class FakeGenerator(Generator):
    generator_name = "fake"

    def __init__(
        self,
        answer: str = "Sensihi builds practical AI for real workflows.",
        error: Exception | None = None,
    ) -> None:
        self.answer = answer
        self.error = error
        self.calls: list[tuple[str, list[str], str]] = []

    async def generate(
        self,
        system_prompt: str,
        prior_messages: Sequence[str],
        user_prompt: str,
    ) -> str:
        self.calls.append((system_prompt, list(prior_messages), user_prompt))
        if self.error is not None:
            raise self.error
        return self.answer


def make_match(
    content: str = LONG_CONTENT,
    *,
    url: str | None = None,
    title: str | None = None,
    heading: str | None = None,
    similarity: float = 0.9,
) -> DocumentMatch:
    return DocumentMatch(
        content=content,
        metadata=DocumentMetadata(url=url, title=title, heading=heading),
        similarity=similarity,
    )
