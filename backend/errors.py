"""Exception taxonomy and centralized FastAPI error handlers."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from models.schemas import ErrorResponse
from security import apply_security_headers

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Required configuration is missing or invalid. Fatal at startup."""


class LiveProxyError(Exception):
    """Base exception carrying an HTTP status and a client-safe message."""

    status_code = 500
    public_message = "Internal server error"


class UpstreamError(LiveProxyError):
    """The YouTube API call failed or returned a non-success status."""

    status_code = 500
    public_message = "Error fetching YouTube data"


class InvalidUpstreamResponse(LiveProxyError):
    """The YouTube API answered, but without an items list."""

    status_code = 502
    public_message = "Invalid response from YouTube API"


def register_error_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers on the FastAPI app."""

    @app.exception_handler(LiveProxyError)
    async def handle_live_proxy_error(request: Request, exc: LiveProxyError):
        # No traceback: the chained httpx error would print the keyed request URL
        logger.error(
            "%s %s failed (%s): %s",
            request.method,
            request.url.path,
            type(exc).__name__,
            exc,
        )
        return JSONResponse(
            ErrorResponse(error=exc.public_message).model_dump(),
            status_code=exc.status_code,
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
        response = JSONResponse(
            ErrorResponse(error=LiveProxyError.public_message).model_dump(),
            status_code=500,
        )
        # Runs outside the http middleware stack, so headers are set here too
        return apply_security_headers(response, request.app.state.settings.is_production)
