"""
Settlement collaborators.

External services that move assets after a granted claim, and the balance
query used to show what a vault holds. All of them are best effort from the
point of view of a claim: their failures are logged, never surfaced.
"""

from abc import ABC, abstractmethod
from typing import Optional

import requests

from . import config
from .errors import ServiceUnavailableError, SettlementError
from .identity import Principal


class LedgerService(ABC):
    """Moves a liquid-asset amount to a beneficiary account."""

    @abstractmethod
    def transfer(self, to: Principal, amount: int, memo: Optional[str] = None) -> str:
        """
        Returns:
            Transfer receipt (block index) as a string

        Raises:
            SettlementError: On any transport or ledger-side failure
        """
        pass


class AssetTransferService(ABC):
    """Releases the owner's native on-chain assets to a payout address."""

    @abstractmethod
    def release(self, owner: Principal, payout_address: str) -> str:
        """Returns a transaction id. Raises SettlementError on failure."""
        pass


class BalanceService(ABC):

    @abstractmethod
    def balance(self, address: str) -> int:
        """Confirmed balance of address in satoshi."""
        pass


class HttpLedgerService(LedgerService):
    """
    Ledger reached over HTTP.

    POST {base_url}/transfer with {"to": {"owner", "subaccount"}, "amount", "memo"};
    a 2xx answer carries {"block_index": n}, anything else carries {"error": ...}.
    """

    def __init__(self, base_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def transfer(self, to: Principal, amount: int, memo: Optional[str] = None) -> str:
        payload = {
            "to": {"owner": to.text, "subaccount": None},
            "amount": int(amount),
            "memo": memo,
        }
        try:
            r = self.session.post(f"{self.base_url}/transfer", json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise SettlementError(f"Ledger call failed: {e}") from e

        try:
            body = r.json()
        except ValueError:
            body = {}

        if r.status_code // 100 != 2:
            raise SettlementError(f"Transfer error: {body.get('error') or r.status_code}")
        if "block_index" not in body:
            raise SettlementError("Transfer error: missing block_index in ledger reply")
        return str(body["block_index"])


class UnavailableLedgerService(LedgerService):
    """Used when no ledger is configured. Every transfer fails."""

    def transfer(self, to: Principal, amount: int, memo: Optional[str] = None) -> str:
        raise SettlementError("Ledger call failed: no ledger configured")


class UnimplementedAssetTransferService(AssetTransferService):
    """
    Native on-chain release needs address derivation from the vault key, UTXO
    selection, transaction building, signing and broadcast. None of that is
    implemented, so every release fails.
    """

    def release(self, owner: Principal, payout_address: str) -> str:
        raise SettlementError(
            "Native transfer requires full transaction construction; "
            "only ledger settlement is supported"
        )


class EsploraBalanceService(BalanceService):
    """Balance lookup against an Esplora-compatible REST API."""

    def __init__(self, base_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def balance(self, address: str) -> int:
        if not self.base_url:
            raise ServiceUnavailableError("Balance API not configured")
        try:
            r = self.session.get(f"{self.base_url}/address/{address}", timeout=self.timeout)
            r.raise_for_status()
            stats = r.json()["chain_stats"]
            return int(stats["funded_txo_sum"]) - int(stats["spent_txo_sum"])
        except requests.RequestException as e:
            raise ServiceUnavailableError(f"Failed to get balance for address {address}: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise ServiceUnavailableError(f"Unexpected balance reply for address {address}") from e


def get_ledger_service() -> LedgerService:
    if not config.LEDGER_URL:
        return UnavailableLedgerService()
    return HttpLedgerService(config.LEDGER_URL, timeout=config.LEDGER_TIMEOUT_SECONDS)


def get_asset_transfer_service() -> AssetTransferService:
    return UnimplementedAssetTransferService()


def get_balance_service() -> BalanceService:
    return EsploraBalanceService(config.balance_api_url(), timeout=config.BALANCE_TIMEOUT_SECONDS)
