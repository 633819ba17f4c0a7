"""
Rate limiting module for deadswitch.

Sliding window rate limiting keyed by operation and caller, applied to the
privileged endpoints (claim, key derivation).
"""

import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    remaining: int
    reset_at: float
    retry_after: Optional[float] = None


class RateLimiter:
    """
    Sliding window rate limiter.

    Thread-safe; one deque of hit timestamps per key.
    """

    def __init__(self, rpm: int, window_seconds: int = 60, time_fn: Callable[[], float] = time.monotonic):
        """
        Args:
            rpm: Maximum requests per window
            window_seconds: Window size in seconds (default 60)
            time_fn: Time source, injectable for tests
        """
        self._limit = max(1, rpm)
        self._window = window_seconds
        self._time = time_fn
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    @staticmethod
    def key_for(operation: str, caller: str) -> str:
        return f"{operation}:{caller}"

    def allow(self, key: str) -> bool:
        return self.check(key).allowed

    def check(self, key: str) -> RateLimitResult:
        """
        Record a hit for key if under the limit.

        Rejected requests are not recorded, so a caller hammering the limit
        does not extend its own lockout.
        """
        now = self._time()
        window_start = now - self._window

        with self._lock:
            q = self._hits[key]
            while q and q[0] <= window_start:
                q.popleft()

            reset_at = (q[0] + self._window) if q else (now + self._window)
            if len(q) >= self._limit:
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=reset_at,
                    retry_after=max(0.0, reset_at - now)
                )

            q.append(now)
            return RateLimitResult(
                allowed=True,
                remaining=self._limit - len(q),
                reset_at=reset_at
            )

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key:
                self._hits.pop(key, None)
            else:
                self._hits.clear()
