"""
Claim Orchestrator

Runs a claim in two phases:

    decide   gate check, escrow read, single-use claim marker. Local only,
             no external calls, never suspends on the network.
    settle   ledger transfer and native asset release. External, fallible,
             every failure logged and swallowed.

The phases communicate through a SettlementTask built from the decision
snapshot. Settlement never re-reads the registry, and the secret handed back
to the beneficiary never depends on settlement succeeding.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import UnauthorizedError
from .escrow import EscrowStore
from .gates import AuthorizationGate
from .identity import Principal
from .logging_config import audit_log
from .settlement import AssetTransferService, LedgerService

logger = logging.getLogger(__name__)

LEG_LEDGER = "ledger_transfer"
LEG_ASSET = "asset_release"


@dataclass(frozen=True)
class SettlementTask:
    """Everything settle needs, captured at decision time."""
    will_id: str
    owner: Principal
    beneficiary: Principal
    payout_address: str
    ledger_amount: int


@dataclass
class SettlementLeg:
    name: str
    status: str                      # SUCCESS | FAILED
    reference: Optional[str] = None  # block index / tx id
    error: Optional[str] = None

    def succeeded(self) -> bool:
        return self.status == "SUCCESS"


@dataclass
class SettlementReport:
    will_id: str
    legs: List[SettlementLeg] = field(default_factory=list)

    def all_succeeded(self) -> bool:
        return all(leg.succeeded() for leg in self.legs)


@dataclass
class ClaimResult:
    """
    A granted claim. secret is b"" if the owner never escrowed one.

    settlement is None when this claim was not the first for the
    registration, or when settle has not run yet.
    """
    owner: Principal
    will_id: str
    secret: bytes
    first_claim: bool
    task: Optional[SettlementTask] = None
    settlement: Optional[SettlementReport] = None


class ClaimOrchestrator:

    def __init__(
        self,
        gate: AuthorizationGate,
        escrow: EscrowStore,
        ledger: LedgerService,
        asset_transfer: AssetTransferService,
        ledger_amount: int = 1000
    ):
        self.gate = gate
        self.escrow = escrow
        self.ledger = ledger
        self.asset_transfer = asset_transfer
        self.ledger_amount = ledger_amount

    def decide(self, caller: Principal, owner: Principal) -> ClaimResult:
        """
        Authorize the claim and release the secret.

        Repeated claims after expiry keep returning the secret; only the first
        one for a registration carries a SettlementTask.

        Raises:
            NotFoundError, UnauthorizedError, StillAliveError
        """
        decision = self.gate.authorize_claim(caller, owner)
        decision.raise_for_denial()
        record = decision.record

        secret = self.escrow.read_secret(owner, will_id=record.will_id)
        if secret is None:
            # Owner re-registered between the gate check and the escrow read;
            # the grant applied to a will that no longer exists.
            audit_log.security_event("claim_on_replaced_will", severity="medium",
                                     owner=owner.masked(), will_id=record.will_id)
            raise UnauthorizedError()

        first_claim = self.gate.registry.mark_claimed(owner, record.will_id, decision.evaluated_at)
        audit_log.claim_granted(owner.masked(), caller.masked(), record.will_id, first_claim)

        task = None
        if first_claim:
            task = SettlementTask(
                will_id=record.will_id,
                owner=record.owner,
                beneficiary=record.beneficiary,
                payout_address=record.payout_address,
                ledger_amount=self.ledger_amount,
            )
        return ClaimResult(owner=owner, will_id=record.will_id, secret=secret,
                           first_claim=first_claim, task=task)

    def settle(self, task: SettlementTask) -> SettlementReport:
        """Best-effort settlement. Never raises."""
        report = SettlementReport(will_id=task.will_id)
        report.legs.append(self._run_leg(
            task, LEG_LEDGER,
            lambda: self.ledger.transfer(task.beneficiary, task.ledger_amount, memo=task.will_id),
        ))
        report.legs.append(self._run_leg(
            task, LEG_ASSET,
            lambda: self.asset_transfer.release(task.owner, task.payout_address),
        ))
        return report

    def claim(self, caller: Principal, owner: Principal) -> ClaimResult:
        """decide, then settle inline if this is the first claim."""
        result = self.decide(caller, owner)
        if result.task is not None:
            result.settlement = self.settle(result.task)
        return result

    def _run_leg(self, task: SettlementTask, name: str, action) -> SettlementLeg:
        try:
            reference = action()
        except Exception as e:
            # Any collaborator failure is recorded and dropped.
            logger.warning("settlement leg %s failed for will %s", name, task.will_id, exc_info=True)
            leg = SettlementLeg(name=name, status="FAILED", error=str(e) or type(e).__name__)
        else:
            leg = SettlementLeg(name=name, status="SUCCESS", reference=str(reference))
        audit_log.settlement_result(task.will_id, leg.name, leg.status, leg.reference, leg.error)
        return leg
