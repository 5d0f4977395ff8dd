"""Text generation interface."""

from abc import ABC, abstractmethod
from collections.abc import Sequence


class Generator(ABC):
    """Produces one answer from a system prompt, prior turns and a prompt.

    Implementations raise ``UpstreamGenerationFailure`` for every kind of
    failure (transport error, timeout, empty completion) so the
    orchestrator only has one thing to catch.
    """

    generator_name: str = ""

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        prior_messages: Sequence[str],
        user_prompt: str,
    ) -> str:
        """Return the completion text."""
