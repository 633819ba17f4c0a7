"""
Liveness evaluation.

The only source of truth for "dead vs. alive". Always recomputed from the
stored last_active timestamp; nothing derived from it is ever persisted.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class WillState(str, Enum):
    """Derived lifecycle state of a will."""
    ACTIVE = "ACTIVE"       # owner within heartbeat interval
    EXPIRED = "EXPIRED"     # owner silent too long, not yet claimed
    CLAIMED = "CLAIMED"     # first claim of this registration recorded


@dataclass(frozen=True)
class Liveness:
    elapsed: int
    time_remaining: int
    is_expired: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "elapsed": self.elapsed,
            "time_remaining": self.time_remaining,
            "is_expired": self.is_expired,
        }


def evaluate_liveness(last_active: int, heartbeat_interval: int, now: int) -> Liveness:
    """
    Compute elapsed silence and expiry.

    The owner is alive exactly at the boundary (elapsed == heartbeat_interval);
    expiry needs strictly more silence than the interval allows.

    Args:
        last_active: Last liveness signal, Unix seconds
        heartbeat_interval: Allowed silence, seconds
        now: Current time, Unix seconds

    Returns:
        Liveness with time_remaining clamped at zero
    """
    # A timestamp ahead of the clock counts as zero silence.
    elapsed = max(0, int(now) - int(last_active))
    is_expired = elapsed > heartbeat_interval
    time_remaining = 0 if is_expired else heartbeat_interval - elapsed
    return Liveness(elapsed=elapsed, time_remaining=time_remaining, is_expired=is_expired)


def will_state(liveness: Liveness, claimed_at: Optional[int]) -> WillState:
    """
    CLAIMED is sticky for a registration: a heartbeat after the claim revives
    liveness but not the state. Only re-registering returns the will to ACTIVE.
    """
    if claimed_at is not None:
        return WillState.CLAIMED
    if liveness.is_expired:
        return WillState.EXPIRED
    return WillState.ACTIVE
