"""Generator factory keyed by ``llm.provider``."""

import logging

import httpx
from langchain_openai import ChatOpenAI

from copilot.configs.config import AppConfig

from .base import Generator
from .chat import ChatModelGenerator, DisabledGenerator

logger = logging.getLogger(__name__)

_known_generators: dict[str, type[Generator]] = {
    ChatModelGenerator.generator_name: ChatModelGenerator,
    DisabledGenerator.generator_name: DisabledGenerator,
}


def get_chat_model(
    config: AppConfig, http_client: httpx.AsyncClient | None = None
) -> ChatOpenAI:
    """ChatOpenAI without automatic retries; the turn has its own fallback."""
    llm = config.llm
    return ChatOpenAI(
        api_key=config.third_party.openai_api_key,
        base_url=config.third_party.openai_base_url,
        model=llm.model_name,
        temperature=llm.temperature,
        max_tokens=llm.max_tokens,
        timeout=llm.timeout.total_seconds(),
        max_retries=0,
        http_async_client=http_client,
    )


def get_generator(
    config: AppConfig, http_client: httpx.AsyncClient | None = None
) -> Generator:
    """Create the generator variant named by ``config.llm.provider``."""
    name = config.llm.provider
    if name not in _known_generators:
        raise NotImplementedError(f"Generator {name} is not implemented.")

    generator_cls = _known_generators[name]

    if generator_cls is ChatModelGenerator:
        return ChatModelGenerator(
            get_chat_model(config, http_client),
            timeout=config.llm.timeout.total_seconds(),
            model_name=config.llm.model_name,
        )

    return generator_cls()
