"""Domain models shared by the copilot pipeline."""

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Intent
# ---------------------------------------------------------------------------


class Intent(StrEnum):
    EXPLORING = "exploring"
    HIGH_INTENT_BUYER = "high_intent_buyer"
    PRICING = "pricing"
    RESEARCH = "research"
    PARTNER = "partner"
    SUPPORT = "support"
    TALENT = "talent"


class Confidence(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class IntentResult(BaseModel):
    """Classified conversational purpose of one message."""

    model_config = ConfigDict(frozen=True)

    intent: Intent
    confidence: Confidence = Confidence.LOW


# ---------------------------------------------------------------------------
# Lead
# ---------------------------------------------------------------------------


class LeadTier(StrEnum):
    COLD = "cold"
    WARM = "warm"
    HOT = "hot"


class LeadScore(BaseModel):
    score: int
    tier: LeadTier
    signals: list[str] = Field(
        default_factory=list, description="Names of the rules that fired"
    )


# ---------------------------------------------------------------------------
# Links shown under the answer
# ---------------------------------------------------------------------------


class Reference(BaseModel):
    title: str
    url: str


class CTA(BaseModel):
    label: str
    url: str
    type: Literal["primary", "secondary"] = "primary"


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------


class DocumentMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    url: str | None = None
    href: str | None = None
    title: str | None = None
    heading: str | None = None
    type: str | None = None


class DocumentMatch(BaseModel):
    """One row returned by the similarity search, best match first."""

    model_config = ConfigDict(extra="ignore")

    content: str = ""
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    similarity: float | None = None


class ContextSource(StrEnum):
    """Which state of the context resolver produced the grounding text."""

    REUSE = "reuse"
    RETRIEVE = "retrieve"
    STATIC_FALLBACK = "static_fallback"
    HARDCODED_DEFAULT = "hardcoded_default"
    STATIC_ANSWER = "static_answer"


class ResolvedContext(BaseModel):
    text: str
    references: list[Reference] = Field(default_factory=list)
    source: ContextSource


# ---------------------------------------------------------------------------
# Turn input / output
# ---------------------------------------------------------------------------


class CopilotTurn(BaseModel):
    """Everything the orchestrator needs to answer one message."""

    message: str
    session_id: str
    client_ip: str = "unknown"
    page: str | None = None
    persona: str | None = None


class CopilotResult(BaseModel):
    message: str
    intent: Intent
    confidence: Confidence | None = None
    references: list[Reference] = Field(default_factory=list)
    lead: LeadScore | None = None
    cta: list[CTA] = Field(default_factory=list)


class AnalyticsEvent(BaseModel):
    """Fire-and-forget analytics payload; arbitrary extra fields allowed."""

    model_config = ConfigDict(extra="allow")

    type: str = "copilot_turn"
    session_id: str | None = None
    intent: str | None = None
    page: str | None = None
    lead_tier: str | None = None
    timestamp: float | None = None

    def as_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)
