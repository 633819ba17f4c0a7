"""
deadswitch

Liveness-gated inheritance: a dead man's switch for secrets and assets.

An owner registers a beneficiary and a heartbeat interval. While the owner
keeps signalling liveness, the escrowed secret and the asset-transfer
capability stay locked. Once the owner has been silent for longer than the
interval, the beneficiary may claim the secret and trigger a one-time
settlement.

Usage:
    from deadswitch import (
        WillService,
        InMemoryWillRegistry,
        ManualClock,
        Principal,
    )
    from deadswitch.settlement import UnavailableLedgerService, UnimplementedAssetTransferService
    from deadswitch.keys import LocalKeyDerivationService

    clock = ManualClock(start=0)
    service = WillService(
        registry=InMemoryWillRegistry(),
        clock=clock,
        ledger=UnavailableLedgerService(),
        asset_transfer=UnimplementedAssetTransferService(),
        key_service=LocalKeyDerivationService(seed),
    )

    owner, heir = Principal("alice"), Principal("bob")
    service.register_will(owner, heir, "tb1q...", 3600, encrypted_secret=b"...")

    clock.advance(3601)
    secret = service.claim_inheritance(heir, owner)
"""

__version__ = "0.3.0"

# Identity and time
from .identity import Principal, ANONYMOUS, same_identity
from .util import Clock, SystemClock, ManualClock

# Errors
from .errors import (
    DeadSwitchError,
    NotFoundError,
    UnauthorizedError,
    StillAliveError,
    AccessDeniedError,
    ValidationError,
    ServiceUnavailableError,
    DerivationServiceUnavailable,
    SettlementError,
    RateLimitedError,
)

# Records and liveness
from .liveness import Liveness, WillState, evaluate_liveness
from .models import WillRecord

# Stores
from .registry import WillRegistry, InMemoryWillRegistry, SqliteWillRegistry
from .escrow import EscrowStore

# Policy
from .gates import AuthorizationGate, GateDecision, GateId, GateResult, DenyReason

# Claims and keys
from .orchestrator import (
    ClaimOrchestrator,
    ClaimResult,
    SettlementTask,
    SettlementReport,
    SettlementLeg,
)
from .keys import DerivationRequest, KeyDerivationGateway, KeyDerivationService, derivation_path

# Facade
from .service import WillService, build_service


__all__ = [
    "__version__",

    # Identity and time
    "Principal",
    "ANONYMOUS",
    "same_identity",
    "Clock",
    "SystemClock",
    "ManualClock",

    # Errors
    "DeadSwitchError",
    "NotFoundError",
    "UnauthorizedError",
    "StillAliveError",
    "AccessDeniedError",
    "ValidationError",
    "ServiceUnavailableError",
    "DerivationServiceUnavailable",
    "SettlementError",
    "RateLimitedError",

    # Records and liveness
    "Liveness",
    "WillState",
    "evaluate_liveness",
    "WillRecord",

    # Stores
    "WillRegistry",
    "InMemoryWillRegistry",
    "SqliteWillRegistry",
    "EscrowStore",

    # Policy
    "AuthorizationGate",
    "GateDecision",
    "GateId",
    "GateResult",
    "DenyReason",

    # Claims and keys
    "ClaimOrchestrator",
    "ClaimResult",
    "SettlementTask",
    "SettlementReport",
    "SettlementLeg",
    "DerivationRequest",
    "KeyDerivationGateway",
    "KeyDerivationService",
    "derivation_path",

    # Facade
    "WillService",
    "build_service",
]
