"""Copilot error taxonomy.

Only ``InvalidRequest``, ``RateLimited`` and ``ConfigurationError`` ever
leave the orchestrator; the upstream failures are absorbed and turned
into a fallback answer.
"""


class CopilotError(Exception):
    """Base class for all copilot errors."""


class InvalidRequest(CopilotError):
    """Malformed or missing request fields (HTTP 400)."""


class RateLimited(CopilotError):
    """Raised when a guard rejects the request (HTTP 429)."""

    def __init__(
        self, message: str, *, scope: str = "ip", retry_after: int = 60
    ) -> None:
        super().__init__(message)
        self.scope = scope
        self.retry_after = retry_after


class ConfigurationError(CopilotError):
    """Required provider credentials are missing (HTTP 500)."""


class UpstreamRetrievalFailure(CopilotError):
    """Embedding or similarity search failed or timed out."""


class UpstreamGenerationFailure(CopilotError):
    """The completion call failed, timed out or returned nothing."""
