"""Configuration management for the CLI tool."""

from pydantic import BaseModel, Field


class CLIConfig(BaseModel):
    """CLI configuration settings."""

    host: str = Field(default="localhost", description="Server host")
    port: int = Field(default=8080, description="Server port")
    api_path: str = Field(
        default="/copilot",
        description="API path of the copilot endpoint",
    )
    page: str | None = Field(
        default=None, description="Page path reported to the copilot"
    )
    persona: str | None = Field(
        default=None, description="Tone hint: founder, technical or sales"
    )
    client_ip: str | None = Field(
        default=None,
        description="Sent as X-Forwarded-For to exercise the per-IP guard",
    )

    @property
    def base_url(self) -> str:
        """Get the base URL for the API."""
        return f"http://{self.host}:{self.port}"

    @property
    def copilot_url(self) -> str:
        """Get the full URL for the copilot endpoint."""
        return f"{self.base_url}{self.api_path}"
