"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability.

    Fields are optional to keep shapes consistent across the codebase
    without forcing every error to fill all of them.
    """

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: int
    limit: int
    remaining: int
    reset_at: int
    model: str
    upstream_error: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class RateLimitAppError(AppError):
    """Raised when a client exceeds its request budget."""


class ConfigurationAppError(AppError):
    """Raised when required server-side configuration is missing."""


class LLMAppError(AppError):
    """Raised when LLM provider/client operations fail."""


class UpstreamAppError(LLMAppError):
    """Raised by upstream clients; details carry the upstream HTTP status."""


class UpstreamRateLimitAppError(LLMAppError):
    """Raised when the upstream API throttles our requests."""
