"""Per-turn copilot pipeline.

One call to ``Orchestrator.run`` answers one user message:

1. per-IP guard, then (under the session lock) the per-session guard;
   ``RateLimited`` on denial
2. intent classification
3. session history + static exact-answer table (no network on a hit)
4. context resolution (reuse → retrieve → static fallback → default)
5. generation; on failure the apology text is returned instead
6. persona framing
7. the raw message is appended to session memory
8. lead scoring
9. analytics event
10. response assembly

Only ``InvalidRequest`` and ``RateLimited`` escape; upstream failures are
absorbed into a normal answer.
"""

from __future__ import annotations

import logging
import time
from datetime import timedelta

from copilot.configs.content import ContentConfig
from copilot.core.llm import Generator
from copilot.infra.keyed_lock import KeyedLock, NullLock
from copilot.infra.telemetry import (
    ATTR_CONTEXT_SOURCE,
    ATTR_TURN_INTENT,
    ATTR_TURN_OUTCOME,
    ATTR_TURN_PERSONA,
    SPAN_COPILOT_TURN,
    tracer,
)

from .analytics import AnalyticsEmitter
from .context import ContextResolver
from .exceptions import InvalidRequest, RateLimited, UpstreamGenerationFailure
from .guards import RateGuard, SessionMessageGuard
from .intent import classify
from .lead import asked_for_demo, score_lead
from .metrics import (
    LEAD_TIERS_TOTAL,
    RATE_LIMIT_REJECTIONS_TOTAL,
    TURN_DURATION_SECONDS,
    TURNS_TOTAL,
    UPSTREAM_FAILURES_TOTAL,
)
from .models import (
    AnalyticsEvent,
    Confidence,
    ContextSource,
    CopilotResult,
    CopilotTurn,
    IntentResult,
    LeadScore,
    Reference,
)
from .persona import adapt, recommend
from .session import SessionStore

logger = logging.getLogger(__name__)

OUTCOME_ANSWERED = "answered"
OUTCOME_STATIC_ANSWER = "static_answer"
OUTCOME_FALLBACK = "fallback"

SCOPE_IP = "ip"
SCOPE_SESSION = "session"

EVENT_COMPLETION_FAILED = "COMPLETION_FAILED"
UPSTREAM_GENERATION = "generation"

ANALYTICS_EVENT_TYPE = "copilot_turn"


def _seconds(delta: timedelta) -> int:
    return max(int(delta.total_seconds()), 1)


class Orchestrator:
    """Wires the guards, memory, resolver and generator into one turn."""

    def __init__(
        self,
        *,
        sessions: SessionStore,
        rate_guard: RateGuard,
        session_guard: SessionMessageGuard,
        resolver: ContextResolver,
        generator: Generator,
        analytics: AnalyticsEmitter,
        content: ContentConfig,
        locks: KeyedLock | NullLock | None = None,
    ) -> None:
        self._sessions = sessions
        self._rate_guard = rate_guard
        self._session_guard = session_guard
        self._resolver = resolver
        self._generator = generator
        self._analytics = analytics
        self._content = content
        self._locks = locks if locks is not None else NullLock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, turn: CopilotTurn) -> CopilotResult:
        message = (turn.message or "").strip()
        session_id = (turn.session_id or "").strip()
        if not message or not session_id:
            raise InvalidRequest(self._content.invalid_request_message)

        await self._enforce_rate_limit(turn.client_ip)

        async with self._locks.hold(session_id):
            # The session count shares the record with the history, so it
            # is consumed under the same lock as the rest of the turn.
            await self._enforce_session_cap(session_id)
            start = time.monotonic()
            try:
                return await self._answer(turn, message, session_id)
            finally:
                TURN_DURATION_SECONDS.observe(time.monotonic() - start)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _enforce_rate_limit(self, client_ip: str) -> None:
        if not await self._rate_guard.check_and_consume(client_ip):
            RATE_LIMIT_REJECTIONS_TOTAL.labels(scope=SCOPE_IP).inc()
            raise RateLimited(
                self._content.throttled_message,
                scope=SCOPE_IP,
                retry_after=_seconds(self._rate_guard.window),
            )

    async def _enforce_session_cap(self, session_id: str) -> None:
        if not await self._session_guard.check_and_consume(session_id):
            RATE_LIMIT_REJECTIONS_TOTAL.labels(scope=SCOPE_SESSION).inc()
            raise RateLimited(
                self._content.session_exhausted_message,
                scope=SCOPE_SESSION,
                retry_after=_seconds(self._sessions.ttl),
            )

    def static_answer(self, message: str) -> str | None:
        """Canned answer for *message*, if any configured phrase occurs."""
        text = message.lower()
        for entry in self._content.static_answers:
            if any(phrase.lower() in text for phrase in entry.phrases):
                return entry.answer
        return None

    async def _answer(
        self, turn: CopilotTurn, message: str, session_id: str
    ) -> CopilotResult:
        with tracer.start_as_current_span(SPAN_COPILOT_TURN) as span:
            intent = classify(message)
            span.set_attribute(ATTR_TURN_INTENT, str(intent.intent))
            span.set_attribute(ATTR_TURN_PERSONA, turn.persona or "")

            history = await self._sessions.get(session_id)

            references: list[Reference] = []
            canned = self.static_answer(message)
            if canned is not None:
                answer = canned
                source = ContextSource.STATIC_ANSWER
                outcome = OUTCOME_STATIC_ANSWER
            else:
                context = await self._resolver.resolve(message, session_id, history)
                references = context.references
                source = context.source
                try:
                    answer = await self._generator.generate(
                        self._content.system_prompt,
                        history,
                        self._content.render_user_prompt(context.text, message),
                    )
                except UpstreamGenerationFailure as exc:
                    UPSTREAM_FAILURES_TOTAL.labels(upstream=UPSTREAM_GENERATION).inc()
                    logger.error("%s: %s", EVENT_COMPLETION_FAILED, exc)
                    span.set_attribute(ATTR_CONTEXT_SOURCE, str(source))
                    span.set_attribute(ATTR_TURN_OUTCOME, OUTCOME_FALLBACK)
                    return await self._apologize(turn, message, session_id, intent, source)
                outcome = OUTCOME_ANSWERED

            span.set_attribute(ATTR_CONTEXT_SOURCE, str(source))
            span.set_attribute(ATTR_TURN_OUTCOME, outcome)

            answer = adapt(answer, turn.persona)
            await self._sessions.append(session_id, message)

            lead = score_lead(intent.intent, len(history) + 1, asked_for_demo(message))
            LEAD_TIERS_TOTAL.labels(tier=str(lead.tier)).inc()
            TURNS_TOTAL.labels(intent=str(intent.intent), outcome=outcome).inc()

            self._track(turn, session_id, intent, lead, references, source, outcome)

            return CopilotResult(
                message=answer or self._content.empty_answer_message,
                intent=intent.intent,
                confidence=intent.confidence,
                references=references,
                lead=lead,
                cta=recommend(intent.intent),
            )

    async def _apologize(
        self,
        turn: CopilotTurn,
        message: str,
        session_id: str,
        intent: IntentResult,
        source: ContextSource,
    ) -> CopilotResult:
        await self._sessions.append(session_id, message)
        TURNS_TOTAL.labels(intent=str(intent.intent), outcome=OUTCOME_FALLBACK).inc()
        self._track(turn, session_id, intent, None, [], source, OUTCOME_FALLBACK)
        return CopilotResult(
            message=self._content.apology_message,
            intent=intent.intent,
            confidence=Confidence.LOW,
            references=[],
            lead=None,
            cta=recommend(intent.intent),
        )

    def _track(
        self,
        turn: CopilotTurn,
        session_id: str,
        intent: IntentResult,
        lead: LeadScore | None,
        references: list[Reference],
        source: ContextSource,
        outcome: str,
    ) -> None:
        self._analytics.track(
            AnalyticsEvent(
                type=ANALYTICS_EVENT_TYPE,
                session_id=session_id,
                intent=str(intent.intent),
                page=turn.page,
                lead_tier=str(lead.tier) if lead else None,
                references=len(references),
                context_source=str(source),
                outcome=outcome,
                persona=turn.persona,
            )
        )
