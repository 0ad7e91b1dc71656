"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain, framework and unexpected) and return consistent JSON responses with
proper HTTP status codes and traceability.

Response shape (all errors):
    {"error": "<human readable>", "code": "<machine code>", "request_id": "..."}

Design:
- AppError subclasses → appropriate HTTP status (400, 429, 500)
- RateLimitAppError additionally carries ``rateLimited: true``
- Starlette HTTPException (404/405...) → same shape, framework status
- RequestValidationError → 400 (malformed body)
- Unexpected Exception → generic 500 (safety net)
"""

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import (
    AppError,
    ConfigurationAppError,
    LLMAppError,
    RateLimitAppError,
    UpstreamRateLimitAppError,
    ValidationAppError,
)
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

_HTTP_ERROR_MESSAGES = {
    404: "Not found",
    405: "Method not allowed",
}


def _error_body(message: str, code: str, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "error": message,
        "code": code,
        "request_id": get_request_id(),
    }
    body.update(extra)
    return body


def _status_for(exc: AppError) -> int:
    """Map a domain error to its HTTP status code."""
    if isinstance(exc, ValidationAppError):
        return 400
    if isinstance(exc, (RateLimitAppError, UpstreamRateLimitAppError)):
        return 429
    if isinstance(exc, (ConfigurationAppError, LLMAppError)):
        return 500
    return 400


def _rate_limit_headers(exc: AppError) -> dict[str, str] | None:
    details = exc.details or {}
    if "retry_after" not in details:
        return None
    headers = {"Retry-After": str(details["retry_after"])}
    for key, header in (
        ("limit", "X-RateLimit-Limit"),
        ("remaining", "X-RateLimit-Remaining"),
        ("reset_at", "X-RateLimit-Reset"),
    ):
        if key in details:
            headers[header] = str(details[key])
    return headers


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Routes domain errors to appropriate HTTP status codes:
    - ValidationAppError → 400 Bad Request (client fault)
    - RateLimitAppError → 429 Too Many Requests, flagged ``rateLimited``
    - UpstreamRateLimitAppError → 429 (upstream throttled, not flagged)
    - ConfigurationAppError / LLMAppError → 500 Internal Server Error

    Details are logged but never returned to the client; they may hold
    upstream status codes or other internals.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error message.
    """
    status_code = _status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    extra: dict[str, Any] = {}
    headers = None
    if isinstance(exc, RateLimitAppError):
        extra["rateLimited"] = True
        headers = _rate_limit_headers(exc)

    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.message, exc.code, **extra),
        headers=headers,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render framework HTTP errors (unknown route, wrong method) in our shape."""
    message = _HTTP_ERROR_MESSAGES.get(exc.status_code)
    if message is None:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"

    logger.info(
        "http_error_handled",
        extra={
            "status_code": exc.status_code,
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(message, f"http_{exc.status_code}"),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Translate body validation failures into a 400 with a readable message."""
    errors = exc.errors()
    message_invalid = any("message" in err.get("loc", ()) for err in errors)
    body_missing = any(err.get("loc", ()) == ("body",) for err in errors)

    if message_invalid or body_missing:
        message = "Message is required"
    else:
        message = "Invalid request body"

    logger.info(
        "request_validation_failed",
        extra={
            "error_count": len(errors),
            "fields": [".".join(str(part) for part in err.get("loc", ())) for err in errors],
            "request_path": request.url.path,
        },
    )

    return JSONResponse(
        status_code=400,
        content=_error_body(message, "invalid_request"),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning generic message.
    Prevents information leakage (no stack traces to client).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content=_error_body(
            "An unexpected error occurred. Please try again later.",
            "internal_server_error",
        ),
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Must be called during app initialization, before route registration.

    Example:
        >>> from fastapi import FastAPI
        >>> from app.core.exception_handlers import setup_exception_handlers
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
