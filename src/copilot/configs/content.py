"""Canned copy and prompt templates.

Everything the copilot can say without a model lives here so it can be
edited in ``configs/config.yaml`` (under ``content:``) without a release.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_SYSTEM_PROMPT = (
    "You are Sensihi's website copilot. Answer clearly and only using the "
    "provided context. Do not invent details. Do not mention the context, "
    "sources or documents you were given; answer as if you simply know it."
)

DEFAULT_USER_PROMPT = "Context:\n{context}\n\nQuestion:\n{question}"

DEFAULT_CONTEXT = (
    "Sensihi provides AI-driven solutions that help modern businesses "
    "improve decision-making, automate workflows, and scale intelligence "
    "across teams."
)


class StaticAnswer(BaseModel):
    """Answer returned verbatim when any phrase occurs in the message."""

    phrases: list[str] = Field(description="Lower-case trigger phrases")
    answer: str


class FallbackParagraph(BaseModel):
    """Offline grounding paragraph selected by whole-word keywords."""

    keywords: list[str] = Field(description="Lower-case trigger words")
    text: str


def _default_static_answers() -> list[StaticAnswer]:
    return [
        StaticAnswer(
            phrases=["how do i contact", "how can i contact", "reach you"],
            answer=(
                "You can reach the Sensihi team via the contact page to "
                "start a conversation."
            ),
        ),
    ]


def _default_fallback_paragraphs() -> list[FallbackParagraph]:
    return [
        FallbackParagraph(
            keywords=["sensihi"],
            text=(
                "Sensihi is an AI consultancy that helps organizations apply "
                "AI responsibly to real business workflows, improving "
                "decision-making, automation, and scalability."
            ),
        ),
        FallbackParagraph(
            keywords=["prototype", "prototyping", "prototypes"],
            text=(
                "Prototyping is the process of creating early models of "
                "AI-enabled solutions to test ideas, validate workflows, and "
                "ensure real business value before full-scale implementation."
            ),
        ),
        FallbackParagraph(
            keywords=["ai", "artificial intelligence", "automation"],
            text=(
                "Sensihi focuses on practical AI adoption, embedding AI into "
                "existing tools and workflows rather than deploying generic "
                "automation."
            ),
        ),
    ]


class ContentConfig(BaseModel):
    """Prompts, canned answers and user-facing fallback messages."""

    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT)
    user_prompt: str = Field(
        default=DEFAULT_USER_PROMPT,
        description="Final user turn; must contain {context} and {question}",
    )
    static_answers: list[StaticAnswer] = Field(
        default_factory=_default_static_answers,
        description="Zero-cost answers checked before any network call",
    )
    fallback_paragraphs: list[FallbackParagraph] = Field(
        default_factory=_default_fallback_paragraphs,
        description="Grounding used when retrieval yields nothing",
    )
    default_context: str = Field(
        default=DEFAULT_CONTEXT,
        description="Grounding of last resort",
    )
    apology_message: str = Field(
        default=(
            "I'm temporarily at capacity right now. "
            "Please try again in a moment."
        ),
    )
    empty_answer_message: str = Field(
        default="How can I help you with Sensihi?",
    )
    throttled_message: str = Field(
        default=(
            "You're sending messages too quickly. "
            "Please wait a moment and try again."
        ),
    )
    session_exhausted_message: str = Field(
        default=(
            "This conversation has reached its limit. "
            "Please start a new chat or contact the Sensihi team directly."
        ),
    )
    invalid_request_message: str = Field(
        default="Please send a message and a session id.",
    )
    config_error_message: str = Field(default="Server configuration error")
    unavailable_message: str = Field(
        default=(
            "Copilot is temporarily unavailable. Please try again shortly."
        ),
    )

    def render_user_prompt(self, context: str, question: str) -> str:
        return self.user_prompt.format(context=context, question=question)
