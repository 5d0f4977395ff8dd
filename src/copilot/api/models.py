"""Pydantic models for the copilot API."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from copilot.core.models import (
    CTA,
    Confidence,
    CopilotResult,
    Intent,
    LeadScore,
    Reference,
)

# Only short questions are accepted from the widget
COPILOT_MESSAGE_MAX_LENGTH = 2000
SESSION_ID_MAX_LENGTH = 128

CODE_INVALID_REQUEST = "INVALID_REQUEST"
CODE_RATE_LIMITED = "RATE_LIMITED"
CODE_CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
CODE_INTERNAL_ERROR = "INTERNAL_ERROR"

MessageStr = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True, min_length=1, max_length=COPILOT_MESSAGE_MAX_LENGTH
    ),
]
SessionIdStr = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True, min_length=1, max_length=SESSION_ID_MAX_LENGTH
    ),
]


class CopilotRequest(BaseModel):
    """Request body of ``POST /copilot``."""

    model_config = ConfigDict(populate_by_name=True)

    message: MessageStr = Field(description="User question")
    session_id: SessionIdStr = Field(
        alias="sessionId",
        description="Opaque client-generated conversation id",
    )
    page: str | None = Field(
        default=None, description="Path of the page the widget is shown on"
    )
    persona: str | None = Field(
        default=None, description="Tone hint: founder, technical or sales"
    )


class CopilotResponse(BaseModel):
    """Response body of ``POST /copilot``."""

    message: str
    intent: Intent
    confidence: Confidence | None = None
    references: list[Reference] = Field(default_factory=list)
    lead: LeadScore | None = None
    cta: list[CTA] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: CopilotResult) -> "CopilotResponse":
        return cls.model_validate(result.model_dump())


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    message: str = Field(description="User-facing explanation")
    code: str | None = Field(default=None, description="Error code")
