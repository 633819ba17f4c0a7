from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from .identity import Principal
from .liveness import Liveness, evaluate_liveness, will_state


@dataclass(frozen=True)
class WillRecord:
    """
    One will per owner. Instances are immutable snapshots; stores hand out
    copies so a record read at decision time cannot change underneath the
    reader.
    """
    owner: Principal
    beneficiary: Principal
    payout_address: str
    heartbeat_interval: int
    last_active: int
    will_id: str
    registered_at: int
    encrypted_secret: Optional[bytes] = None
    claimed_at: Optional[int] = None

    def liveness(self, now: int) -> Liveness:
        return evaluate_liveness(self.last_active, self.heartbeat_interval, now)

    def with_changes(self, **changes) -> "WillRecord":
        return replace(self, **changes)

    def status_dict(self, now: int) -> Dict[str, Any]:
        """
        Owner-facing status. Never includes the secret.

        state stays CLAIMED after the first claim even if the owner heartbeats
        again (is_expired then reads False); re-registering starts a new will.
        """
        lv = self.liveness(now)
        return {
            "will_id": self.will_id,
            "beneficiary": self.beneficiary.text,
            "heartbeat_interval": self.heartbeat_interval,
            "last_active": self.last_active,
            "time_remaining": lv.time_remaining,
            "is_expired": lv.is_expired,
            "state": will_state(lv, self.claimed_at).value,
            "has_secret": bool(self.encrypted_secret),
        }

    def inheritance_dict(self, now: int) -> Dict[str, Any]:
        """Beneficiary-facing view of the will."""
        lv = self.liveness(now)
        return {
            "owner": self.owner.text,
            "payout_address": self.payout_address,
            "heartbeat_interval": self.heartbeat_interval,
            "last_active": self.last_active,
            "time_remaining": lv.time_remaining,
            "is_expired": lv.is_expired,
        }
