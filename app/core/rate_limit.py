"""Request gate: rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on a dependency function only.
- Swap-friendly: storage backend is injected via ``set_rate_limiter`` and
  hidden behind ``AbstractRateLimiter``.

Keying strategy:
- First address in X-Forwarded-For (the original client behind a proxy).
- Otherwise the socket peer address.
- Otherwise the shared ``unknown`` bucket.
"""

from __future__ import annotations

import hashlib
import logging

from fastapi import Request

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.core.config import settings
from app.core.errors import RateLimitAppError

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"
RATE_LIMITED_MESSAGE = (
    "Too many requests. Please wait a moment before asking another question."
)

_limiter: AbstractRateLimiter | None = None
_limiter_config: tuple[int, int] | None = None
_injected = False


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide rate limiter instance.

    The instance is cached in-module to preserve state across requests.
    If configuration changes (primarily in tests), the in-memory limiter is
    rebuilt. An injected limiter is returned as-is.

    Returns:
        AbstractRateLimiter: Configured limiter instance.
    """

    global _limiter, _limiter_config

    if _injected and _limiter is not None:
        return _limiter

    config = (
        settings.app.rate_limit_requests,
        settings.app.rate_limit_window_seconds,
    )

    if _limiter is None or _limiter_config != config:
        _limiter = InMemoryFixedWindowRateLimiter(
            limit=settings.app.rate_limit_requests,
            window_seconds=settings.app.rate_limit_window_seconds,
        )
        _limiter_config = config

    return _limiter


def set_rate_limiter(limiter: AbstractRateLimiter | None) -> None:
    """Inject a limiter (e.g. a shared-store implementation).

    Passing ``None`` drops any cached or injected limiter; the next request
    builds a fresh in-memory one from settings.
    """

    global _limiter, _limiter_config, _injected

    _limiter = limiter
    _limiter_config = None
    _injected = limiter is not None


def client_address(request: Request) -> str:
    """Resolve the client address used for rate limiting."""

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_CLIENT


def build_rate_limit_key(request: Request) -> str:
    return f"ip:{client_address(request)}"


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing the per-client request budget.

    When enabled, consumes 1 unit from the requester's budget. If the
    requester has exhausted the current window, raises RateLimitAppError,
    rendered as HTTP 429 with ``rateLimited: true``.

    Raises:
        RateLimitAppError: When the rate limit is exceeded.
    """

    if not settings.app.rate_limit_enabled:
        return

    limiter = get_rate_limiter()
    key = build_rate_limit_key(request)
    key_hash = _hash_limiter_key(key)
    shared_bucket = key == f"ip:{UNKNOWN_CLIENT}"

    result = limiter.consume(key)
    if result.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "key_hash": key_hash,
                "shared_bucket": shared_bucket,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": key_hash,
            "shared_bucket": shared_bucket,
            "limit": result.limit,
            "remaining": result.remaining,
            "retry_after_s": retry_after,
        },
    )

    details = None
    if settings.app.rate_limit_include_headers:
        details = {
            "retry_after": retry_after,
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_at": result.reset_at,
        }

    raise RateLimitAppError(
        code="rate_limited",
        message=RATE_LIMITED_MESSAGE,
        details=details,
    )
