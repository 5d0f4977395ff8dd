"""Generator variants.

``ChatModelGenerator`` adapts any LangChain chat model; in production it
wraps ``ChatOpenAI``.  ``DisabledGenerator`` is selected with
``llm.provider: disabled`` and makes every turn take the apology path,
which is handy for load tests and outages.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from copilot.core.exceptions import UpstreamGenerationFailure
from copilot.core.metrics import UPSTREAM_LATENCY_SECONDS
from copilot.infra.telemetry import (
    ATTR_LLM_MODEL,
    ATTR_LLM_PRIOR_MESSAGES,
    SPAN_LLM_GENERATE,
    tracer,
)

from .base import Generator

logger = logging.getLogger(__name__)

UPSTREAM_GENERATION = "generation"


def build_messages(
    system_prompt: str, prior_messages: Sequence[str], user_prompt: str
) -> list[BaseMessage]:
    """System instructions, prior user turns oldest first, then the prompt."""
    messages: list[BaseMessage] = [SystemMessage(content=system_prompt)]
    messages.extend(HumanMessage(content=text) for text in prior_messages)
    messages.append(HumanMessage(content=user_prompt))
    return messages


def _text_of(content: object) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return ""


class ChatModelGenerator(Generator):
    """One non-streaming ``ainvoke`` per turn, bounded by *timeout*."""

    generator_name = "openai"

    def __init__(
        self,
        llm: BaseChatModel,
        *,
        timeout: float,
        model_name: str = "",
    ) -> None:
        self._llm = llm
        self._timeout = timeout
        self._model_name = model_name

    async def generate(
        self,
        system_prompt: str,
        prior_messages: Sequence[str],
        user_prompt: str,
    ) -> str:
        messages = build_messages(system_prompt, prior_messages, user_prompt)

        with tracer.start_as_current_span(SPAN_LLM_GENERATE) as span:
            span.set_attribute(ATTR_LLM_MODEL, self._model_name)
            span.set_attribute(ATTR_LLM_PRIOR_MESSAGES, len(prior_messages))

            start = time.monotonic()
            try:
                async with asyncio.timeout(self._timeout):
                    response = await self._llm.ainvoke(messages)
            except TimeoutError as exc:
                raise UpstreamGenerationFailure("Completion timed out") from exc
            except Exception as exc:
                raise UpstreamGenerationFailure(
                    f"Completion failed: {exc}"
                ) from exc
            finally:
                UPSTREAM_LATENCY_SECONDS.labels(
                    upstream=UPSTREAM_GENERATION
                ).observe(time.monotonic() - start)

        text = _text_of(response.content).strip()
        if not text:
            raise UpstreamGenerationFailure("Completion was empty")
        return text


class DisabledGenerator(Generator):
    """Always fails; the orchestrator answers with its apology text."""

    generator_name = "disabled"

    async def generate(
        self,
        system_prompt: str,
        prior_messages: Sequence[str],
        user_prompt: str,
    ) -> str:
        raise UpstreamGenerationFailure("Generation is disabled")
