import os
from datetime import timedelta

from pydantic import BaseModel, Field


def _env(name: str) -> str:
    return os.environ.get(name, "").strip()


class ThirdPartyConfig(BaseModel):
    """Credentials and endpoints of external providers.

    The bare ``OPENAI_API_KEY`` / ``SUPABASE_URL`` / ``SUPABASE_SERVICE_KEY``
    variables are used as defaults so existing deployments keep working
    without the ``COPILOT_`` prefix.
    """

    openai_api_key: str = Field(
        default_factory=lambda: _env("OPENAI_API_KEY"),
        description="API key for the embedding / generation provider",
    )
    openai_base_url: str | None = Field(
        default=None,
        description="Override for OpenAI-compatible endpoints",
    )
    supabase_url: str = Field(
        default_factory=lambda: _env("SUPABASE_URL"),
        description="Supabase project URL hosting the document store",
    )
    supabase_service_key: str = Field(
        default_factory=lambda: _env("SUPABASE_SERVICE_KEY"),
        description="Supabase service-role key",
    )
    redis_uri: str = Field(
        default="",
        description="Redis connection URI; empty keeps all state in-process",
    )


class APIConfig(BaseModel):
    """HTTP surface settings."""

    allowed_origins: list[str] = Field(
        default_factory=lambda: [
            "https://sensihi.com",
            "https://www.sensihi.com",
        ],
        description="Origins allowed by the CORS preflight",
    )
    cors_max_age: int = Field(default=86400, description="Preflight cache (s)")


class SessionConfig(BaseModel):
    """Ephemeral conversation memory."""

    max_messages: int = Field(
        default=6, description="User messages retained per session"
    )
    ttl: timedelta = Field(
        default_factory=lambda: timedelta(minutes=30),
        description="Idle time after which a session is considered expired",
    )
    sweep_interval: timedelta = Field(
        default_factory=lambda: timedelta(minutes=5),
        description="Background sweep period; 0 disables the sweeper",
    )


class StateConfig(BaseModel):
    """Backend holding sessions and guard counters."""

    key_prefix: str = Field(default="copilot", description="Key namespace")
    max_entries: int = Field(
        default=10_000,
        description="Upper bound of live keys in the in-process backend",
    )


class GuardConfig(BaseModel):
    """Request throttling."""

    max_requests_per_window: int = Field(
        default=10, description="Requests per client IP per window (0 = off)"
    )
    window: timedelta = Field(
        default_factory=lambda: timedelta(seconds=60),
        description="Fixed window length for the per-IP guard",
    )
    max_messages_per_session: int = Field(
        default=30,
        description="Messages allowed over a session lifetime (0 = off)",
    )


class RagConfig(BaseModel):
    """Retrieval settings."""

    enabled: bool = Field(default=True, description="Run live retrieval")
    match_function: str = Field(
        default="match_sensihi_documents",
        description="Supabase RPC performing the similarity search",
    )
    similarity_threshold: float = Field(
        default=0.75, description="Minimum cosine similarity of a match"
    )
    top_k: int = Field(default=5, description="Maximum matches per query")
    min_query_chars: int = Field(
        default=15,
        description="Messages shorter than this carry no retrieval signal",
    )
    min_content_chars: int = Field(
        default=80, description="Matches with shorter content are ignored"
    )
    timeout: timedelta = Field(
        default_factory=lambda: timedelta(seconds=8),
        description="Similarity search timeout",
    )
    site_origin: str = Field(
        default="https://sensihi.com",
        description="Origin used to absolutize and validate reference urls",
    )
    max_references: int = Field(default=5, description="References per answer")
    reference_allow_paths: list[str] = Field(
        default_factory=lambda: [
            "/insights",
            "/solutions",
            "/case-studies",
            "/blog",
            "/services",
        ],
        description="Path prefixes of content pages eligible as references",
    )
    reference_deny_paths: list[str] = Field(
        default_factory=lambda: [
            "/contact",
            "/careers",
            "/privacy",
            "/terms",
            "/login",
            "/404",
        ],
        description="Navigational / boilerplate path prefixes never cited",
    )
    default_reference_title: str = Field(default="Related Sensihi insight")


class EmbeddingConfig(BaseModel):
    """Embedding endpoint settings."""

    model_name: str = Field(default="text-embedding-3-small")
    timeout: timedelta = Field(
        default_factory=lambda: timedelta(seconds=8),
        description="Embedding request timeout",
    )
    cache_max_entries: int = Field(
        default=500, description="Query embeddings kept in memory"
    )


class LLMConfig(BaseModel):
    """Generation provider settings."""

    provider: str = Field(
        default="openai",
        description="Generator variant: 'openai' or 'disabled'",
    )
    model_name: str = Field(default="gpt-4o-mini")
    temperature: float = Field(default=0.3)
    max_tokens: int = Field(default=600)
    timeout: timedelta = Field(
        default_factory=lambda: timedelta(seconds=25),
        description="Completion request timeout",
    )


class ChatConfig(BaseModel):
    """Per-turn behaviour."""

    serialize_sessions: bool = Field(
        default=True,
        description="Run turns of one session one at a time",
    )


class AnalyticsConfig(BaseModel):
    """Fire-and-forget analytics queue."""

    enabled: bool = Field(default=True)
    queue_size: int = Field(default=50, description="Events buffered in memory")
    sink_url: str = Field(
        default="", description="HTTP endpoint receiving flushed batches"
    )
    flush_interval: timedelta = Field(
        default_factory=lambda: timedelta(seconds=30),
    )
    timeout: timedelta = Field(default_factory=lambda: timedelta(seconds=5))


class LoggingConfig(BaseModel):
    """Root logger settings."""

    level: str = Field(default="INFO")
    json_output: bool = Field(default=True, description="Emit JSON lines")


class TracingConfig(BaseModel):
    """OpenTelemetry export settings."""

    enabled: bool = Field(default=False)
    service_name: str = Field(default="sensihi-copilot")
    endpoint: str = Field(default="", description="OTLP/HTTP traces endpoint")
    username: str = Field(default="")
    password: str = Field(default="")
    sample_rate: float = Field(default=1.0)
    excluded_urls: list[str] = Field(
        default_factory=lambda: ["/health", "/metrics"]
    )
