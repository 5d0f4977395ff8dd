"""API client for the copilot endpoint."""

import logging

import httpx

from .config import CLIConfig

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 60.0


class CopilotAPIClient:
    """Client for ``POST /copilot``.

    Always returns a dict: the JSON body on success or on a handled
    error status, otherwise a synthetic ``{"message", "code"}`` error.
    """

    def __init__(self, config: CLIConfig):
        self.config = config
        self.client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT)

    async def ask(self, message: str, session_id: str) -> tuple[int, dict]:
        """Send one message; returns ``(status_code, body)``."""
        payload: dict[str, str] = {"message": message, "sessionId": session_id}
        if self.config.page:
            payload["page"] = self.config.page
        if self.config.persona:
            payload["persona"] = self.config.persona

        headers = {}
        if self.config.client_ip:
            headers["X-Forwarded-For"] = self.config.client_ip

        logger.debug("POST %s %s", self.config.copilot_url, payload)

        try:
            response = await self.client.post(
                self.config.copilot_url, json=payload, headers=headers
            )
        except httpx.TimeoutException:
            return 0, {"message": "Request timed out.", "code": "TIMEOUT"}
        except httpx.ConnectError as e:
            return 0, {
                "message": f"Connection error: {e}",
                "code": "CONNECTION_ERROR",
            }

        logger.debug("Response status: %s", response.status_code)
        logger.debug("Response headers: %s", dict(response.headers))

        try:
            body = response.json()
        except ValueError:
            body = {
                "message": f"HTTP {response.status_code}: {response.text}",
                "code": "HTTP_ERROR",
            }
        if response.status_code == 429 and "Retry-After" in response.headers:
            body["retry_after"] = response.headers["Retry-After"]
        return response.status_code, body

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()
