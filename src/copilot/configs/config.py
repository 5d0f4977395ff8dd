"""Configuration management using pydantic-settings.

**Not a singleton**: each call to ``get_app_config()`` re-reads config
from disk so that edits to ``configs/config.yaml`` are picked up without
restarting.

Priority order (highest first):

1. Init kwargs (tests build configs explicitly)
2. Environment variables (``COPILOT_`` prefix, ``__`` for nesting)
3. ``.env`` dotenv file
4. Static YAML (``configs/config.yaml``)
5. File secrets, then field defaults
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from .content import ContentConfig
from .system import (
    AnalyticsConfig,
    APIConfig,
    ChatConfig,
    EmbeddingConfig,
    GuardConfig,
    LLMConfig,
    LoggingConfig,
    RagConfig,
    SessionConfig,
    StateConfig,
    ThirdPartyConfig,
    TracingConfig,
)

# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

CONFIG_PY_PATH = Path(__file__).resolve()
PROJECT_ROOT = CONFIG_PY_PATH.parent.parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "configs"

STATIC_CONFIG_FILE = CONFIG_DIR / "config.yaml"

DOTENV_FILE_PATH = PROJECT_ROOT / ".env"
ENV_DELIMITER = "__"
ENV_PREFIX = "COPILOT_"

DEFAULT_ENCODING = "utf-8"


class AppConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=DOTENV_FILE_PATH,
        env_file_encoding=DEFAULT_ENCODING,
        env_nested_delimiter=ENV_DELIMITER,
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        extra="ignore",
        yaml_file=STATIC_CONFIG_FILE,
        yaml_file_encoding=DEFAULT_ENCODING,
    )

    third_party: ThirdPartyConfig = Field(
        default_factory=ThirdPartyConfig,
        description="Provider credentials and endpoints",
    )
    api: APIConfig = Field(default_factory=APIConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    state: StateConfig = Field(default_factory=StateConfig)
    guard: GuardConfig = Field(default_factory=GuardConfig)
    rag: RagConfig = Field(default_factory=RagConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    content: ContentConfig = Field(default_factory=ContentConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    tracing: TracingConfig = Field(default_factory=TracingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def get_app_config() -> AppConfig:
    """Get the application configuration (re-read on every call)."""
    return AppConfig()
