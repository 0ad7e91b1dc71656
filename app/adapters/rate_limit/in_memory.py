"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: state is lost on restart and not shared across workers.
- Thread-safe: uses a lock around shared state.
- Expired entries are swept from the map at most once per window length.
- Each key's window starts at its first request and expires ``window_seconds``
  later; it is not aligned to wall-clock boundaries and does not slide.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


@dataclass
class RateEntry:
    count: int
    reset_time: float


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Counts requests per key inside a fixed window opened by the first request.

    Decision table for ``consume`` at time ``now``:

    - no entry: create ``count=cost, reset_time=now+window`` and allow
    - ``now > reset_time``: start a fresh window as above and allow
    - ``count + cost <= limit``: increment and allow
    - otherwise: block without incrementing
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed units per window.
            window_seconds: Length of the window in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, RateEntry] = {}
        self._next_prune = 0.0

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def get_entry(self, key: str) -> RateEntry | None:
        """Return a copy of the stored entry for ``key`` (mainly for tests)."""
        with self._lock:
            entry = self._entries.get(key)
            return RateEntry(entry.count, entry.reset_time) if entry else None

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def prune(self, now: float | None = None) -> int:
        """Drop entries whose window has expired.

        Returns:
            Number of removed entries.
        """
        if now is None:
            now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if now > entry.reset_time]
            for key in expired:
                del self._entries[key]
            self._next_prune = now + self._window_seconds
        return len(expired)

    def _allowed(self, entry: RateEntry) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            limit=self._limit,
            remaining=max(0, self._limit - entry.count),
            reset_at=int(math.ceil(entry.reset_time)),
            retry_after_seconds=None,
        )

    def _blocked(self, entry: RateEntry, now: float) -> RateLimitResult:
        retry_after = max(1, int(math.ceil(entry.reset_time - now)))
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=max(0, self._limit - entry.count),
            reset_at=int(math.ceil(entry.reset_time)),
            retry_after_seconds=retry_after,
        )

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for the provided key.

        Args:
            key: Unique identifier for rate limiting.
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()

        with self._lock:
            # At most one sweep per window length
            if now >= self._next_prune:
                self.prune(now)

            entry = self._entries.get(key)

            if entry is None or now > entry.reset_time:
                if cost > self._limit:
                    entry = RateEntry(count=0, reset_time=now + self._window_seconds)
                    self._entries[key] = entry
                    return self._blocked(entry, now)
                entry = RateEntry(count=cost, reset_time=now + self._window_seconds)
                self._entries[key] = entry
                return self._allowed(entry)

            if entry.count + cost <= self._limit:
                entry.count += cost
                return self._allowed(entry)

            return self._blocked(entry, now)
