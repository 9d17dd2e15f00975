"""API middleware: CORS, request logging, and error handling.

# ─── MIDDLEWARE EXECUTION ORDER ────────────────────────────────────────
#
# Starlette middleware is a stack (last added, first executed):
#
#   In main.py:
#     app.add_middleware(ErrorHandlingMiddleware)   # added 1st -> inner
#     app.add_middleware(RequestLoggingMiddleware)  # added 2nd -> outer
#
#   Request flow:   Client -> RequestLogging -> ErrorHandling -> route
#   Response flow:  Client <- RequestLogging <- ErrorHandling <- route
#
# So RequestLoggingMiddleware sees the final status code, including the
# one ErrorHandlingMiddleware chose for a TikoError.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from tiko.api.schemas import ErrorResponse
from tiko.utils.errors import (
    AuthenticationError,
    CitySupportError,
    ConfigurationError,
    EventValidationError,
    ProviderUnavailableError,
    RateLimitError,
    ScoringError,
    StorageError,
    TikoError,
)
from tiko.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# First matching class wins; subclasses must precede their bases.
_STATUS_BY_ERROR: tuple[tuple[type[TikoError], int], ...] = (
    (AuthenticationError, 401),
    (RateLimitError, 429),
    (EventValidationError, 422),
    (CitySupportError, 400),
    (ProviderUnavailableError, 502),
    (StorageError, 503),
    (ConfigurationError, 500),
    (ScoringError, 500),
)


def status_for(exc: TikoError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware; ``["*"]`` when no origins are configured."""
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Convert ``TikoError`` subclasses into structured JSON errors.

    The status code comes from the error class (auth 401, rate limit 429,
    upstream 502, storage 503, configuration 500).  Stack traces stay in
    the server log; the client sees the error type and message only.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except TikoError as exc:
            status = status_for(exc)
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status,
            )
            body = ErrorResponse(
                error=type(exc).__name__,
                detail=exc.message,
                provider=exc.provider_name,
            )
            headers = {}
            if isinstance(exc, RateLimitError) and exc.retry_after is not None:
                headers["Retry-After"] = str(int(exc.retry_after))
            return JSONResponse(status_code=status, content=body.model_dump(), headers=headers)
