"""Rate limiting adapters.

The API layer depends on ``AbstractRateLimiter`` only, so the in-memory
store can later be replaced by a shared one (e.g. Redis) when the service
runs as more than one instance.
"""

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitResult",
]
