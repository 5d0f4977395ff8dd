"""Prometheus metrics for the copilot.

Business metrics that complement the auto-instrumented HTTP metrics
provided by ``prometheus-fastapi-instrumentator``.

All metrics use the ``copilot_`` prefix.
"""

import logging

from fastapi import FastAPI
from prometheus_client import Counter, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

from copilot.configs.config import AppConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Turn metrics
# ---------------------------------------------------------------------------

TURNS_TOTAL = Counter(
    "copilot_turns_total",
    "Total copilot turns, by intent and outcome",
    ["intent", "outcome"],  # outcome: answered | static_answer | fallback
)

TURN_DURATION_SECONDS = Histogram(
    "copilot_turn_duration_seconds",
    "End-to-end duration of a copilot turn",
    buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10, 20, 30),
)

LEAD_TIERS_TOTAL = Counter(
    "copilot_lead_tiers_total",
    "Lead tiers assigned to answered turns",
    ["tier"],  # cold | warm | hot
)

# ---------------------------------------------------------------------------
# Context resolution metrics
# ---------------------------------------------------------------------------

CONTEXT_RESOLUTIONS_TOTAL = Counter(
    "copilot_context_resolutions_total",
    "Context resolutions by terminal state",
    ["source"],  # reuse | retrieve | static_fallback | hardcoded_default
)

EMBEDDING_CACHE_LOOKUPS_TOTAL = Counter(
    "copilot_embedding_cache_lookups_total",
    "Query embedding cache lookups by outcome",
    ["result"],  # hit | miss
)

REFERENCES_RETURNED = Histogram(
    "copilot_references_returned",
    "Number of references attached to a retrieved context",
    buckets=(0, 1, 2, 3, 4, 5),
)

# ---------------------------------------------------------------------------
# Upstream metrics
# ---------------------------------------------------------------------------

UPSTREAM_FAILURES_TOTAL = Counter(
    "copilot_upstream_failures_total",
    "Upstream call failures absorbed by a fallback",
    ["upstream"],  # embedding | vector_search | generation | analytics
)

UPSTREAM_LATENCY_SECONDS = Histogram(
    "copilot_upstream_latency_seconds",
    "Latency of upstream provider calls",
    ["upstream"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 25),
)

# ---------------------------------------------------------------------------
# Guard metrics
# ---------------------------------------------------------------------------

RATE_LIMIT_REJECTIONS_TOTAL = Counter(
    "copilot_rate_limit_rejections_total",
    "Total guard rejections (429 responses)",
    ["scope"],  # ip | session
)

# ---------------------------------------------------------------------------
# Analytics metrics
# ---------------------------------------------------------------------------

ANALYTICS_EVENTS_TOTAL = Counter(
    "copilot_analytics_events_total",
    "Analytics events accepted into the queue",
)

ANALYTICS_EVENTS_DROPPED_TOTAL = Counter(
    "copilot_analytics_events_dropped_total",
    "Analytics events lost to queue overflow or failed flushes",
    ["reason"],  # overflow | flush_failed
)


# ---------------------------------------------------------------------------
# Installation
# ---------------------------------------------------------------------------


def install_metrics(app: FastAPI, config: AppConfig) -> None:
    """Attach HTTP instrumentation and expose ``/metrics``.

    Adds middleware, so it runs in the app factory before startup.
    """
    Instrumentator(
        should_instrument_requests_inprogress=True,
        excluded_handlers=config.tracing.excluded_urls,
    ).instrument(app).expose(app, endpoint="/metrics")

    logger.info("Prometheus metrics initialised")
