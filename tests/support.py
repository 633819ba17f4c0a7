"""Shared test collaborators: recording settlement stubs and a service factory."""

from typing import List, Optional, Tuple

from deadswitch import InMemoryWillRegistry, ManualClock, Principal, WillService
from deadswitch.errors import SettlementError
from deadswitch.keys import LocalKeyDerivationService
from deadswitch.settlement import AssetTransferService, BalanceService, LedgerService

START = 1_700_000_000
TEST_SEED = bytes(range(32))

OWNER = Principal("alice")
HEIR = Principal("bob")
STRANGER = Principal("mallory")
PAYOUT = "tb1qexampleaddress0000000000000000000000"


class RecordingLedger(LedgerService):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[Tuple[Principal, int, Optional[str]]] = []

    def transfer(self, to: Principal, amount: int, memo: Optional[str] = None) -> str:
        self.calls.append((to, amount, memo))
        if self.fail:
            raise SettlementError("Ledger call failed: down")
        return str(len(self.calls))


class RecordingAssetTransfer(AssetTransferService):
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[Tuple[Principal, str]] = []

    def release(self, owner: Principal, payout_address: str) -> str:
        self.calls.append((owner, payout_address))
        if self.error is not None:
            raise self.error
        return f"tx-{len(self.calls)}"


class FixedBalance(BalanceService):
    def __init__(self, amount: int):
        self.amount = amount
        self.queried: List[str] = []

    def balance(self, address: str) -> int:
        self.queried.append(address)
        return self.amount


def make_service(registry=None, clock=None, ledger=None, asset_transfer=None,
                 key_service=None, balance_service=None) -> WillService:
    return WillService(
        registry=registry if registry is not None else InMemoryWillRegistry(),
        clock=clock or ManualClock(START),
        ledger=ledger or RecordingLedger(),
        asset_transfer=asset_transfer or RecordingAssetTransfer(),
        key_service=key_service or LocalKeyDerivationService(TEST_SEED),
        balance_service=balance_service,
    )
