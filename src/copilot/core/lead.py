"""Deterministic lead scoring.

Rules are independent and additive; tiers are cut from the total.
"""

from .models import Intent, LeadScore, LeadTier

HIGH_INTENT_POINTS = 40
ENGAGEMENT_POINTS = 20
DEMO_REQUEST_POINTS = 30

ENGAGEMENT_MIN_MESSAGES = 3  # strictly more than this

HOT_THRESHOLD = 70
WARM_THRESHOLD = 40

SIGNAL_HIGH_INTENT = "high_intent_language"
SIGNAL_ENGAGEMENT = "multi_message_engagement"
SIGNAL_DEMO_REQUEST = "explicit_demo_request"


def asked_for_demo(message: str) -> bool:
    return "demo" in (message or "").lower()


def tier_for(score: int) -> LeadTier:
    if score >= HOT_THRESHOLD:
        return LeadTier.HOT
    if score >= WARM_THRESHOLD:
        return LeadTier.WARM
    return LeadTier.COLD


def score_lead(
    intent: Intent | str, message_count: int, demo_requested: bool
) -> LeadScore:
    score = 0
    signals: list[str] = []

    if intent == Intent.HIGH_INTENT_BUYER:
        score += HIGH_INTENT_POINTS
        signals.append(SIGNAL_HIGH_INTENT)

    if message_count > ENGAGEMENT_MIN_MESSAGES:
        score += ENGAGEMENT_POINTS
        signals.append(SIGNAL_ENGAGEMENT)

    if demo_requested:
        score += DEMO_REQUEST_POINTS
        signals.append(SIGNAL_DEMO_REQUEST)

    return LeadScore(score=score, tier=tier_for(score), signals=signals)
