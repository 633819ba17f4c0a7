"""
Authorization Gate

Central policy for the two privileged operations:

    CLAIM           beneficiary takes the escrowed secret and triggers settlement
    KEY_DERIVATION  caller obtains key material scoped to an owner

Both gates are stateless. Every decision is recomputed from the stored
record and the current time; no grant is cached and a grant carries no
state of its own. All conditions must hold at once; there are no partial
grants.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .errors import (
    AccessDeniedError,
    NotFoundError,
    StillAliveError,
    UnauthorizedError,
)
from .identity import Principal, same_identity
from .liveness import Liveness
from .logging_config import audit_log
from .models import WillRecord
from .registry import WillRegistry
from .util import Clock


class GateId(str, Enum):
    CLAIM = "claim"
    KEY_DERIVATION = "key_derivation"


class GateResult(str, Enum):
    GRANT = "GRANT"
    DENY = "DENY"


class DenyReason(str, Enum):
    """Reason for denying a privileged operation."""
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    STILL_ALIVE = "STILL_ALIVE"
    ACCESS_DENIED = "ACCESS_DENIED"


_DENIAL_ERRORS = {
    DenyReason.NOT_FOUND: NotFoundError,
    DenyReason.UNAUTHORIZED: UnauthorizedError,
    DenyReason.STILL_ALIVE: StillAliveError,
    DenyReason.ACCESS_DENIED: AccessDeniedError,
}


@dataclass(frozen=True)
class GateDecision:
    """
    Outcome of one gate evaluation.

    record and liveness are the snapshot the decision was made on. Later
    steps may act on them but must not assume the store still matches.
    """
    gate_id: GateId
    result: GateResult
    caller: Principal
    owner: Principal
    evaluated_at: int
    reason: Optional[DenyReason] = None
    details: Optional[str] = None
    record: Optional[WillRecord] = None
    liveness: Optional[Liveness] = None

    def granted(self) -> bool:
        return self.result == GateResult.GRANT

    def raise_for_denial(self) -> None:
        """Raise the error matching the deny reason. No-op on grant."""
        if self.granted():
            return
        error_cls = _DENIAL_ERRORS.get(self.reason, AccessDeniedError)
        raise error_cls(self.details) if self.details else error_cls()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gate_id": self.gate_id.value,
            "result": self.result.value,
            "reason": self.reason.value if self.reason else None,
            "details": self.details,
            "evaluated_at": self.evaluated_at,
            "liveness": self.liveness.to_dict() if self.liveness else None,
        }


class AuthorizationGate:
    """
    Decides whether a caller may claim an inheritance or derive key material.

    Usage:
        gate = AuthorizationGate(registry, clock)
        decision = gate.authorize_claim(caller, owner)
        decision.raise_for_denial()
    """

    def __init__(self, registry: WillRegistry, clock: Clock):
        self.registry = registry
        self.clock = clock

    def authorize_claim(self, caller: Principal, owner: Principal) -> GateDecision:
        """
        Claim gate.

        1. A will must exist for owner                  else NOT_FOUND
        2. caller must be the registered beneficiary    else UNAUTHORIZED
        3. owner must be expired                        else STILL_ALIVE
        """
        now = self.clock.now()
        record = self.registry.get(owner)

        if record is None or owner.is_anonymous():
            return self._decide(GateId.CLAIM, caller, owner, now,
                                reason=DenyReason.NOT_FOUND, details="No will found")

        if not same_identity(caller, record.beneficiary):
            return self._decide(GateId.CLAIM, caller, owner, now, record=record,
                                reason=DenyReason.UNAUTHORIZED, details="Unauthorized")

        liveness = record.liveness(now)
        if not liveness.is_expired:
            return self._decide(GateId.CLAIM, caller, owner, now, record=record, liveness=liveness,
                                reason=DenyReason.STILL_ALIVE, details="Owner is still alive")

        return self._decide(GateId.CLAIM, caller, owner, now, record=record, liveness=liveness)

    def authorize_key_derivation(self, caller: Principal, owner_scope: Principal) -> GateDecision:
        """
        Key-derivation gate.

        Without a will, only the owner may derive (bootstrap: set up a key
        before registering). With a will, the owner may always derive; the
        beneficiary only once the owner is expired.
        """
        now = self.clock.now()
        record = self.registry.get(owner_scope)

        if same_identity(caller, owner_scope):
            liveness = record.liveness(now) if record else None
            return self._decide(GateId.KEY_DERIVATION, caller, owner_scope, now,
                                record=record, liveness=liveness)

        if record is None:
            return self._decide(GateId.KEY_DERIVATION, caller, owner_scope, now,
                                reason=DenyReason.ACCESS_DENIED, details="Access denied")

        liveness = record.liveness(now)
        if same_identity(caller, record.beneficiary) and liveness.is_expired:
            return self._decide(GateId.KEY_DERIVATION, caller, owner_scope, now,
                                record=record, liveness=liveness)

        return self._decide(GateId.KEY_DERIVATION, caller, owner_scope, now,
                            record=record, liveness=liveness,
                            reason=DenyReason.ACCESS_DENIED, details="Access denied")

    def _decide(
        self,
        gate_id: GateId,
        caller: Principal,
        owner: Principal,
        now: int,
        record: Optional[WillRecord] = None,
        liveness: Optional[Liveness] = None,
        reason: Optional[DenyReason] = None,
        details: Optional[str] = None
    ) -> GateDecision:
        decision = GateDecision(
            gate_id=gate_id,
            result=GateResult.DENY if reason else GateResult.GRANT,
            caller=caller,
            owner=owner,
            evaluated_at=now,
            reason=reason,
            details=details,
            record=record,
            liveness=liveness,
        )
        audit_log.gate_decision(
            gate_id.value,
            caller.masked(),
            owner.masked(),
            decision.result.value,
            reason.value if reason else None,
        )
        return decision
