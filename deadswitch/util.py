"""
Utility functions for deadswitch.

Provides encoding helpers, identifier generation and the time sources
used by the liveness evaluator.
"""

import base64
import hmac
import secrets
import threading
import time
from abc import ABC, abstractmethod
from typing import Union


def now_epoch() -> int:
    """Get current Unix timestamp as integer."""
    return int(time.time())


def b64e(b: bytes) -> str:
    """Base64 encode bytes to string."""
    return base64.b64encode(b).decode('ascii')


def b64d(s: str) -> bytes:
    """Base64 decode string to bytes."""
    return base64.b64decode(s.encode('ascii'), validate=True)


def constant_time_compare(a: Union[str, bytes], b: Union[str, bytes]) -> bool:
    """
    Compare two strings/bytes in constant time to prevent timing attacks.
    """
    if isinstance(a, str):
        a = a.encode('utf-8')
    if isinstance(b, str):
        b = b.encode('utf-8')
    return hmac.compare_digest(a, b)


def generate_id(length: int = 16) -> str:
    """Generate a cryptographically secure random ID."""
    return secrets.token_hex(length)


def mask_sensitive(value: str, visible_chars: int = 4) -> str:
    """
    Mask a sensitive value, showing only the last N characters.
    Useful for logging.
    """
    if len(value) <= visible_chars:
        return '*' * len(value)
    return '*' * (len(value) - visible_chars) + value[-visible_chars:]


# ============================================================
# Time Sources
# ============================================================

class Clock(ABC):
    """Source of the current time in whole Unix seconds."""

    @abstractmethod
    def now(self) -> int:
        pass


class SystemClock(Clock):
    """
    Wall clock that never reports a time earlier than one it already reported.

    A host clock stepping backwards (NTP correction, manual change) would
    otherwise make an expired owner look alive again.
    """

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, now_epoch())
            return self._last


class ManualClock(Clock):
    """Clock driven explicitly by the caller. Used by tests."""

    def __init__(self, start: int = 0):
        self._now = int(start)
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._now

    def set(self, ts: int) -> None:
        with self._lock:
            self._now = int(ts)

    def advance(self, seconds: int) -> int:
        with self._lock:
            self._now += int(seconds)
            return self._now
