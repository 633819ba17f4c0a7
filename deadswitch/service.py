"""
Will service.

The caller-facing operations, with the caller identity passed in explicitly
by the hosting environment. This is the only object the HTTP layer and the
CLI talk to.
"""

from typing import Any, Dict, List, Optional

from . import config
from .db import Database
from .errors import NotFoundError, ServiceUnavailableError
from .escrow import EscrowStore
from .gates import AuthorizationGate
from .identity import Principal
from .keys import DerivationRequest, KeyDerivationGateway, KeyDerivationService, get_key_derivation_service
from .logging_config import audit_log
from .orchestrator import ClaimOrchestrator, ClaimResult
from .registry import InMemoryWillRegistry, SqliteWillRegistry, WillRegistry
from .settlement import (
    AssetTransferService,
    BalanceService,
    LedgerService,
    get_asset_transfer_service,
    get_balance_service,
    get_ledger_service,
)
from .util import Clock, SystemClock
from .validation import (
    validate_beneficiary,
    validate_heartbeat_interval,
    validate_payout_address,
    validate_principal,
    validate_secret,
)


class WillService:
    """
    Usage:
        service = WillService(InMemoryWillRegistry(), SystemClock(), ...)
        service.register_will(owner, beneficiary, "tb1q...", 86400)
        service.heartbeat(owner)
        secret = service.claim_inheritance(beneficiary, owner)
    """

    def __init__(
        self,
        registry: WillRegistry,
        clock: Clock,
        ledger: LedgerService,
        asset_transfer: AssetTransferService,
        key_service: KeyDerivationService,
        balance_service: Optional[BalanceService] = None,
        ledger_amount: int = 1000
    ):
        self.registry = registry
        self.clock = clock
        self.gate = AuthorizationGate(registry, clock)
        self.escrow = EscrowStore(registry)
        self.orchestrator = ClaimOrchestrator(
            self.gate, self.escrow, ledger, asset_transfer, ledger_amount=ledger_amount
        )
        self.keys = KeyDerivationGateway(self.gate, key_service)
        self.balance_service = balance_service

    # ------------------------------------------------------------------
    # Owner operations
    # ------------------------------------------------------------------

    def register_will(
        self,
        caller: Principal,
        beneficiary: Any,
        payout_address: str,
        heartbeat_interval_seconds: int,
        encrypted_secret: Optional[bytes] = None
    ) -> str:
        """
        Register (or replace) the caller's will. The caller becomes the owner.

        Raises:
            ValidationError: For an anonymous caller, a self-beneficiary,
                a non-positive interval or a malformed payout address
        """
        owner = validate_principal(caller, "caller")
        beneficiary = validate_principal(beneficiary, "beneficiary")
        validate_beneficiary(owner, beneficiary)
        interval = validate_heartbeat_interval(heartbeat_interval_seconds)
        payout_address = validate_payout_address(payout_address)
        secret = validate_secret(encrypted_secret)

        record = self.registry.register(
            owner, beneficiary, payout_address, interval, self.clock.now(), encrypted_secret=secret
        )
        audit_log.will_registered(owner.masked(), beneficiary.masked(), record.will_id,
                                  interval, record.encrypted_secret is not None)
        return "Will registered successfully"

    def heartbeat(self, caller: Principal) -> int:
        """
        Reaffirm liveness.

        Returns:
            The stored last_active after the update

        Raises:
            NotFoundError: If the caller has no will
        """
        if caller.is_anonymous():
            raise NotFoundError()
        record = self.registry.touch(caller, self.clock.now())
        if record is None:
            raise NotFoundError()
        audit_log.heartbeat(caller.masked(), record.last_active)
        return record.last_active

    def update_secret(self, caller: Principal, ciphertext: bytes) -> None:
        self.escrow.update_secret(caller, ciphertext)

    def get_will_status(self, caller: Principal) -> Dict[str, Any]:
        record = None if caller.is_anonymous() else self.registry.get(caller)
        if record is None:
            raise NotFoundError()
        return record.status_dict(self.clock.now())

    # ------------------------------------------------------------------
    # Beneficiary operations
    # ------------------------------------------------------------------

    def list_my_inheritances(self, caller: Principal) -> List[Dict[str, Any]]:
        if caller.is_anonymous():
            return []
        now = self.clock.now()
        return [r.inheritance_dict(now) for r in self.registry.list_by_beneficiary(caller)]

    def claim(self, caller: Principal, owner: Principal, settle: bool = True) -> ClaimResult:
        """
        Claim with access to the settlement task.

        With settle=False the caller is responsible for running
        orchestrator.settle(result.task), e.g. in a background task.
        """
        if settle:
            return self.orchestrator.claim(caller, owner)
        return self.orchestrator.decide(caller, owner)

    def claim_inheritance(self, caller: Principal, owner: Principal) -> bytes:
        """
        Returns:
            The escrowed secret, b"" if none was set

        Raises:
            NotFoundError, UnauthorizedError, StillAliveError
        """
        return self.claim(caller, owner).secret

    # ------------------------------------------------------------------
    # Key material and vault
    # ------------------------------------------------------------------

    def derive_authorized_key(
        self,
        caller: Principal,
        owner_scope: Principal,
        request: DerivationRequest
    ) -> bytes:
        return self.keys.derive_authorized_key(caller, owner_scope, request)

    def get_vault_public_key(self, caller: Principal) -> str:
        return self.keys.vault_public_key(caller).hex()

    def get_vault_balance(self, address: str) -> int:
        address = validate_payout_address(address, "address")
        if self.balance_service is None:
            raise ServiceUnavailableError("Balance service not configured")
        return self.balance_service.balance(address)


def build_service(clock: Optional[Clock] = None) -> WillService:
    """Assemble a WillService from environment configuration."""
    if config.REGISTRY_BACKEND == "memory":
        registry: WillRegistry = InMemoryWillRegistry()
    else:
        registry = SqliteWillRegistry(Database(config.DB_PATH))

    return WillService(
        registry=registry,
        clock=clock or SystemClock(),
        ledger=get_ledger_service(),
        asset_transfer=get_asset_transfer_service(),
        key_service=get_key_derivation_service(config.MASTER_SEED_PATH),
        balance_service=get_balance_service(),
        ledger_amount=config.CLAIM_LEDGER_AMOUNT,
    )
