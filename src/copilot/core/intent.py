"""Keyword intent classifier.

Rules are evaluated top-down and the first match wins, so the order below
is the tie-break policy: a message mentioning both "pricing" and "career"
is a pricing question, not a job application.

1. high_intent_buyer  (demo / contact / sales language)
2. pricing
3. partner
4. support
5. talent
6. research           (evaluating content, comparisons)
7. exploring          (default)
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import Confidence, Intent, IntentResult


@dataclass(frozen=True)
class IntentRule:
    intent: Intent
    keywords: tuple[str, ...]
    confidence: Confidence = Confidence.MEDIUM

    def matches(self, text: str) -> bool:
        return any(keyword in text for keyword in self.keywords)


INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        Intent.HIGH_INTENT_BUYER,
        (
            "demo",
            "contact",
            "talk to",
            "sales",
            "book a call",
            "get started",
        ),
        Confidence.HIGH,
    ),
    IntentRule(
        Intent.PRICING,
        ("pricing", "price", "cost", "quote", "budget"),
        Confidence.HIGH,
    ),
    IntentRule(Intent.PARTNER, ("partner", "collaborat", "reseller")),
    IntentRule(Intent.SUPPORT, ("support", "not working", "broken", "bug", "login")),
    IntentRule(Intent.TALENT, ("career", "job", "hiring", "internship", "vacanc")),
    IntentRule(
        Intent.RESEARCH,
        ("insight", "blog", "article", "case stud", "compare", "evaluat"),
    ),
)

DEFAULT_INTENT = IntentResult(intent=Intent.EXPLORING, confidence=Confidence.LOW)


def classify(
    message: str, rules: tuple[IntentRule, ...] = INTENT_RULES
) -> IntentResult:
    """Map raw message text to an intent; never fails."""
    text = (message or "").lower()
    for rule in rules:
        if rule.matches(text):
            return IntentResult(intent=rule.intent, confidence=rule.confidence)
    return DEFAULT_INTENT
