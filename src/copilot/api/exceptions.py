"""Global exception handlers.

Registered by the app factory (handlers must exist before the middleware
stack is built at startup).  Every non-2xx body carries a user-facing
``message`` the widget can show as-is.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from copilot.configs.content import ContentConfig
from copilot.core.exceptions import ConfigurationError, InvalidRequest, RateLimited
from copilot.infra.telemetry import get_current_trace_id

from .models import (
    CODE_CONFIGURATION_ERROR,
    CODE_INTERNAL_ERROR,
    CODE_INVALID_REQUEST,
    CODE_RATE_LIMITED,
    ErrorResponse,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str, code: str, **kwargs) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message, code=code).model_dump(),
        **kwargs,
    )


def install_exception_handlers(app: FastAPI, content: ContentConfig) -> None:
    """Register custom exception handlers on ``app``."""

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.info("Rejected invalid request: %s", exc.errors())
        return _error(400, content.invalid_request_message, CODE_INVALID_REQUEST)

    @app.exception_handler(InvalidRequest)
    async def handle_invalid_request(
        request: Request, exc: InvalidRequest
    ) -> JSONResponse:
        return _error(
            400,
            str(exc) or content.invalid_request_message,
            CODE_INVALID_REQUEST,
        )

    @app.exception_handler(RateLimited)
    async def handle_rate_limited(request: Request, exc: RateLimited) -> JSONResponse:
        return _error(
            429,
            str(exc) or content.throttled_message,
            CODE_RATE_LIMITED,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(ConfigurationError)
    async def handle_configuration_error(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        logger.error("Configuration error: %s", exc)
        return _error(500, content.config_error_message, CODE_CONFIGURATION_ERROR)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled error while serving %s (trace_id=%s)",
            request.url.path,
            get_current_trace_id(),
        )
        return _error(500, content.unavailable_message, CODE_INTERNAL_ERROR)
