"""
Will Registry

Keyed store of will records, one per owner identity.

Contract shared by all implementations:
- Registering again for the same owner replaces the record (no merge, no history)
- last_active never moves backwards
- Every method is atomic with respect to every other call on the same store
- Records handed out are immutable snapshots
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .db import Database
from .identity import Principal
from .models import WillRecord
from .util import generate_id


class WillRegistry(ABC):
    """Abstract keyed store of will records."""

    def register(
        self,
        owner: Principal,
        beneficiary: Principal,
        payout_address: str,
        heartbeat_interval: int,
        now: int,
        encrypted_secret: Optional[bytes] = None
    ) -> WillRecord:
        """
        Create or replace the will for owner.

        Liveness, claim state and escrow start fresh. An empty secret is
        treated as "not supplied".
        """
        record = WillRecord(
            owner=owner,
            beneficiary=beneficiary,
            payout_address=payout_address,
            heartbeat_interval=int(heartbeat_interval),
            last_active=int(now),
            will_id=generate_id(16),
            registered_at=int(now),
            encrypted_secret=bytes(encrypted_secret) if encrypted_secret else None,
            claimed_at=None,
        )
        self.save(record)
        return record

    @abstractmethod
    def save(self, record: WillRecord) -> None:
        """Insert or overwrite the record keyed by record.owner."""
        pass

    @abstractmethod
    def get(self, owner: Principal) -> Optional[WillRecord]:
        pass

    @abstractmethod
    def list_by_beneficiary(self, beneficiary: Principal) -> List[WillRecord]:
        """All records naming beneficiary. Order is unspecified."""
        pass

    @abstractmethod
    def touch(self, owner: Principal, now: int) -> Optional[WillRecord]:
        """
        Record a liveness signal.

        Returns:
            The updated record, or None if owner has no will
        """
        pass

    @abstractmethod
    def set_secret(self, owner: Principal, ciphertext: bytes) -> bool:
        """Replace the escrowed secret. Returns False if owner has no will."""
        pass

    @abstractmethod
    def mark_claimed(self, owner: Principal, will_id: str, claimed_at: int) -> bool:
        """
        Record the first claim of a specific registration.

        Returns:
            True only for the call that moved the record into the claimed
            state; False if already claimed, or if the owner re-registered
            since will_id was read
        """
        pass

    @abstractmethod
    def count(self) -> int:
        pass


class InMemoryWillRegistry(WillRegistry):
    """
    In-memory registry for development/testing.

    Not persistent across restarts.
    """

    def __init__(self):
        self._wills: Dict[Principal, WillRecord] = {}
        self._lock = threading.Lock()

    def save(self, record: WillRecord) -> None:
        with self._lock:
            self._wills[record.owner] = record

    def get(self, owner: Principal) -> Optional[WillRecord]:
        with self._lock:
            return self._wills.get(owner)

    def list_by_beneficiary(self, beneficiary: Principal) -> List[WillRecord]:
        with self._lock:
            records = list(self._wills.values())
        return [r for r in records if r.beneficiary == beneficiary]

    def touch(self, owner: Principal, now: int) -> Optional[WillRecord]:
        with self._lock:
            record = self._wills.get(owner)
            if record is None:
                return None
            record = record.with_changes(last_active=max(record.last_active, int(now)))
            self._wills[owner] = record
            return record

    def set_secret(self, owner: Principal, ciphertext: bytes) -> bool:
        with self._lock:
            record = self._wills.get(owner)
            if record is None:
                return False
            self._wills[owner] = record.with_changes(encrypted_secret=bytes(ciphertext))
            return True

    def mark_claimed(self, owner: Principal, will_id: str, claimed_at: int) -> bool:
        with self._lock:
            record = self._wills.get(owner)
            if record is None or record.will_id != will_id or record.claimed_at is not None:
                return False
            self._wills[owner] = record.with_changes(claimed_at=int(claimed_at))
            return True

    def count(self) -> int:
        with self._lock:
            return len(self._wills)

    def clear(self) -> None:
        with self._lock:
            self._wills.clear()


class SqliteWillRegistry(WillRegistry):
    """
    SQLite-backed registry.

    Conditional updates (WHERE ... IS NULL, MAX()) keep the single-use and
    monotonic guarantees inside one statement.
    """

    _COLUMNS = (
        "owner, beneficiary, payout_address, heartbeat_interval, last_active, "
        "will_id, registered_at, encrypted_secret, claimed_at"
    )

    def __init__(self, db: Database):
        self.db = db
        self.db.init_schema()

    @staticmethod
    def _row_to_record(row) -> WillRecord:
        secret = row["encrypted_secret"]
        return WillRecord(
            owner=Principal(row["owner"]),
            beneficiary=Principal(row["beneficiary"]),
            payout_address=row["payout_address"],
            heartbeat_interval=row["heartbeat_interval"],
            last_active=row["last_active"],
            will_id=row["will_id"],
            registered_at=row["registered_at"],
            encrypted_secret=bytes(secret) if secret is not None else None,
            claimed_at=row["claimed_at"],
        )

    def save(self, record: WillRecord) -> None:
        with self.db.transaction() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO wills({self._COLUMNS}) VALUES(?,?,?,?,?,?,?,?,?)",
                (
                    record.owner.text,
                    record.beneficiary.text,
                    record.payout_address,
                    record.heartbeat_interval,
                    record.last_active,
                    record.will_id,
                    record.registered_at,
                    record.encrypted_secret,
                    record.claimed_at,
                )
            )

    def get(self, owner: Principal) -> Optional[WillRecord]:
        cur = self.db.connection().execute(
            f"SELECT {self._COLUMNS} FROM wills WHERE owner=?", (owner.text,)
        )
        row = cur.fetchone()
        return self._row_to_record(row) if row else None

    def list_by_beneficiary(self, beneficiary: Principal) -> List[WillRecord]:
        cur = self.db.connection().execute(
            f"SELECT {self._COLUMNS} FROM wills WHERE beneficiary=?", (beneficiary.text,)
        )
        return [self._row_to_record(row) for row in cur.fetchall()]

    def touch(self, owner: Principal, now: int) -> Optional[WillRecord]:
        with self.db.transaction() as conn:
            cur = conn.execute(
                "UPDATE wills SET last_active=MAX(last_active, ?) WHERE owner=?",
                (int(now), owner.text)
            )
            if cur.rowcount != 1:
                return None
            row = conn.execute(
                f"SELECT {self._COLUMNS} FROM wills WHERE owner=?", (owner.text,)
            ).fetchone()
        return self._row_to_record(row)

    def set_secret(self, owner: Principal, ciphertext: bytes) -> bool:
        with self.db.transaction() as conn:
            cur = conn.execute(
                "UPDATE wills SET encrypted_secret=? WHERE owner=?",
                (bytes(ciphertext), owner.text)
            )
            return cur.rowcount == 1

    def mark_claimed(self, owner: Principal, will_id: str, claimed_at: int) -> bool:
        with self.db.transaction() as conn:
            cur = conn.execute(
                "UPDATE wills SET claimed_at=? "
                "WHERE owner=? AND will_id=? AND claimed_at IS NULL",
                (int(claimed_at), owner.text, will_id)
            )
            return cur.rowcount == 1

    def count(self) -> int:
        return self.db.stats()["wills_count"]
