"""OpenTelemetry bootstrap: tracer provider, exporter and span names.

When ``TracingConfig.enabled`` is false the module stays a no-op and
``tracer`` hands out non-recording spans, so the core can wrap every
upstream call in a span unconditionally.

Auto-instrumentations wired here:

- **FastAPI** (inbound HTTP spans)
- **httpx** (outbound HTTP spans: the similarity search, the analytics
  sink and the ``openai`` SDK all go through httpx)

Usage::

    from copilot.infra.telemetry import SPAN_CONTEXT_RESOLVE, tracer

    with tracer.start_as_current_span(SPAN_CONTEXT_RESOLVE) as span:
        ...
"""

from __future__ import annotations

import base64
import logging
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.trace import format_trace_id

from copilot.configs.system import TracingConfig

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import TracerProvider

logger = logging.getLogger(__name__)

_provider: TracerProvider | None = None

tracer = trace.get_tracer("copilot")

# ---------------------------------------------------------------------------
# Span names
# ---------------------------------------------------------------------------

SPAN_COPILOT_TURN = "copilot.turn"
SPAN_CONTEXT_RESOLVE = "context.resolve"
SPAN_EMBEDDING_EMBED = "embedding.embed"
SPAN_VECTOR_SEARCH = "vector.search"
SPAN_LLM_GENERATE = "llm.generate"
SPAN_ANALYTICS_FLUSH = "analytics.flush"

# ---------------------------------------------------------------------------
# Span attribute keys
# ---------------------------------------------------------------------------

ATTR_TURN_INTENT = "turn.intent"
ATTR_TURN_OUTCOME = "turn.outcome"
ATTR_TURN_PERSONA = "turn.persona"

ATTR_CONTEXT_SOURCE = "context.source"
ATTR_CONTEXT_QUERY_LEN = "context.query_len"

ATTR_EMBEDDING_MODEL = "embedding.model"
ATTR_EMBEDDING_TEXT_LEN = "embedding.text_len"
ATTR_EMBEDDING_CACHE_HIT = "embedding.cache_hit"

ATTR_SEARCH_THRESHOLD = "vector.threshold"
ATTR_SEARCH_TOP_K = "vector.top_k"
ATTR_SEARCH_RESULT_COUNT = "vector.result_count"

ATTR_LLM_MODEL = "llm.model"
ATTR_LLM_PRIOR_MESSAGES = "llm.prior_messages"

ATTR_ANALYTICS_BATCH_SIZE = "analytics.batch_size"


def init_telemetry(
    app: object | None = None,
    settings: TracingConfig | None = None,
) -> None:
    """Initialise the OTEL ``TracerProvider`` and auto-instrumentations.

    Parameters
    ----------
    app:
        The FastAPI application instance, for the ASGI instrumentor.
    settings:
        Tracing configuration.  ``None`` or ``enabled=False`` is a no-op.
    """
    global _provider  # noqa: PLW0603

    if settings is None or not settings.enabled:
        logger.info("OpenTelemetry tracing disabled.")
        return

    if not settings.endpoint:
        logger.warning(
            "Tracing enabled but no OTLP endpoint configured; "
            "skipping OpenTelemetry setup."
        )
        return

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
        OTLPSpanExporter,
    )
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor
    from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

    resource = Resource.create({"service.name": settings.service_name})

    sampler = ParentBased(root=TraceIdRatioBased(settings.sample_rate))
    provider = TracerProvider(resource=resource, sampler=sampler)

    headers: dict[str, str] = {}
    if settings.username and settings.password:
        credentials = f"{settings.username}:{settings.password}"
        encoded = base64.b64encode(credentials.encode()).decode()
        headers["Authorization"] = f"Basic {encoded}"

    exporter = OTLPSpanExporter(endpoint=settings.endpoint, headers=headers)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    if app is not None:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        excluded = ",".join(settings.excluded_urls) if settings.excluded_urls else ""
        FastAPIInstrumentor.instrument_app(app, excluded_urls=excluded)

    from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

    HTTPXClientInstrumentor().instrument()

    _provider = provider
    logger.info(
        "OpenTelemetry tracing initialised (service=%s).", settings.service_name
    )


def get_current_trace_id() -> str | None:
    """Active trace id as 32-char hex, or ``None`` outside a valid span."""
    span = trace.get_current_span()
    ctx = span.get_span_context()
    if ctx is None or not ctx.is_valid:
        return None
    return format_trace_id(ctx.trace_id)


# ---------------------------------------------------------------------------
# Lifespan dependency
# ---------------------------------------------------------------------------


async def build_telemetry() -> AsyncGenerator[None, None]:
    """Flush and shut down the tracer provider when the app stops.

    ``init_telemetry`` itself runs in the app factory because the FastAPI
    instrumentor adds middleware, which is only allowed before startup.
    """
    yield
    if _provider is not None:
        _provider.shutdown()
        logger.info("OpenTelemetry tracer provider shut down.")
