"""
Fixed-window request rate limiting for the public endpoints.

Each limiter owns its counters; create one per process and hand it to
whatever needs it.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
DEFAULT_WINDOW_SECONDS = 60


@dataclass
class _Window:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_in: float

    @property
    def retry_after(self) -> int:
        """Whole seconds to wait, as sent in the ``Retry-After`` header."""
        return max(0, math.ceil(self.reset_in))


class RateLimiter:
    """
    Counts requests per client key inside a fixed window.

    The window starts at a key's first request. Expired windows are swept
    at most once per window length, so idle clients do not accumulate.
    ``limit <= 0`` disables limiting.
    """

    def __init__(
        self,
        limit: int = DEFAULT_LIMIT,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._next_sweep = clock() + window_seconds
        self._lock = threading.Lock()

    def check(self, key: str) -> RateLimitDecision:
        """Record a request for ``key`` and decide whether to let it through."""
        if self.limit <= 0:
            return RateLimitDecision(allowed=True, remaining=0, reset_in=0.0)

        now = self._clock()
        with self._lock:
            if now > self._next_sweep:
                self._drop_expired(now)
                self._next_sweep = now + self.window_seconds

            window = self._windows.get(key)
            if window is not None and now > window.reset_at:
                del self._windows[key]
                window = None

            if window is None:
                self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
                return RateLimitDecision(
                    allowed=True,
                    remaining=self.limit - 1,
                    reset_in=self.window_seconds,
                )

            if window.count >= self.limit:
                logger.warning("Rate limit exceeded for %s", key)
                return RateLimitDecision(allowed=False, remaining=0, reset_in=window.reset_at - now)

            window.count += 1
            return RateLimitDecision(
                allowed=True,
                remaining=self.limit - window.count,
                reset_in=window.reset_at - now,
            )

    def purge_expired(self) -> int:
        """Drop expired windows; returns how many were removed."""
        now = self._clock()
        with self._lock:
            return self._drop_expired(now)

    def tracked_clients(self) -> int:
        with self._lock:
            return len(self._windows)

    def _drop_expired(self, now: float) -> int:
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]
        if expired:
            logger.debug("Dropped %d expired rate limit window(s)", len(expired))
        return len(expired)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


def client_key(headers: Mapping[str, str], fallback: Optional[str] = None) -> str:
    """
    Key a client by the first ``X-Forwarded-For`` hop.

    Falls back to ``fallback`` (usually the peer address), then ``"unknown"``.
    """
    forwarded = headers.get("x-forwarded-for") or headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return fallback or "unknown"
