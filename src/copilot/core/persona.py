"""Persona tone adaptation and call-to-action recommendation."""

from __future__ import annotations

from .models import CTA, Intent

PERSONA_PREFIXES: dict[str, str] = {
    "founder": "From a founder's perspective:",
    "technical": "From a technical standpoint:",
    "sales": "From a business outcomes view:",
}


def adapt(answer: str, persona: str | None) -> str:
    """Frame *answer* for *persona*; unknown personas leave it untouched."""
    if not answer or not persona:
        return answer
    prefix = PERSONA_PREFIXES.get(persona.strip().lower())
    if prefix is None:
        return answer
    return f"{prefix}\n\n{answer}"


CTA_TABLE: dict[Intent, tuple[CTA, ...]] = {
    Intent.HIGH_INTENT_BUYER: (
        CTA(label="Book a demo", url="/contact", type="primary"),
        CTA(label="Explore solutions", url="/solutions", type="secondary"),
    ),
    Intent.PRICING: (
        CTA(label="Talk to us", url="/contact", type="primary"),
    ),
    Intent.RESEARCH: (
        CTA(label="Read insights", url="/insights", type="primary"),
        CTA(label="View case studies", url="/insights", type="secondary"),
    ),
    Intent.PARTNER: (
        CTA(label="Partner with Sensihi", url="/contact", type="primary"),
        CTA(label="Read insights", url="/insights", type="secondary"),
    ),
    Intent.SUPPORT: (
        CTA(label="Contact support", url="/contact", type="primary"),
    ),
    Intent.TALENT: (
        CTA(label="Explore careers", url="/careers", type="primary"),
    ),
}

DEFAULT_CTAS: tuple[CTA, ...] = (
    CTA(label="Explore insights", url="/insights", type="primary"),
    CTA(label="Contact us", url="/contact", type="secondary"),
)


def recommend(intent: Intent | str) -> list[CTA]:
    """Ranked next actions for *intent*; copies so callers may mutate."""
    ctas = CTA_TABLE.get(intent, DEFAULT_CTAS)  # type: ignore[arg-type]
    return [cta.model_copy() for cta in ctas]
