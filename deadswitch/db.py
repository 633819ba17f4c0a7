"""
Database module for deadswitch.

SQLite storage for will records. Connections are thread-local and every
mutation runs in its own transaction, so each registry call is atomic.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Union

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS wills (
        owner TEXT PRIMARY KEY,
        beneficiary TEXT NOT NULL,
        payout_address TEXT NOT NULL,
        heartbeat_interval INTEGER NOT NULL,
        last_active INTEGER NOT NULL,
        will_id TEXT NOT NULL,
        registered_at INTEGER NOT NULL,
        encrypted_secret BLOB,
        claimed_at INTEGER
    );""",
    """
    CREATE INDEX IF NOT EXISTS idx_wills_beneficiary
    ON wills(beneficiary);""",
)


class Database:
    """
    Thread-local SQLite connection holder.

    ":memory:" databases are per-connection in SQLite, so they are only
    useful from a single thread.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = str(path)
        self._local = threading.local()

    def connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.path, check_same_thread=False, isolation_level=None)
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute("PRAGMA busy_timeout=5000;")
            conn.row_factory = sqlite3.Row
            self._local.conn = conn
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block inside BEGIN IMMEDIATE ... COMMIT.
        Takes the write lock up front so read-modify-write blocks don't interleave.
        """
        conn = self.connection()
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
            conn.execute("COMMIT")
        except Exception:
            conn.execute("ROLLBACK")
            raise

    def init_schema(self) -> None:
        """Safe to call multiple times (uses IF NOT EXISTS)."""
        with self.transaction() as conn:
            for stmt in SCHEMA:
                conn.execute(stmt)

    def stats(self) -> Dict[str, int]:
        conn = self.connection()
        row = conn.execute(
            "SELECT COUNT(*) AS wills, "
            "COALESCE(SUM(claimed_at IS NOT NULL), 0) AS claimed FROM wills"
        ).fetchone()
        return {"wills_count": row["wills"], "claimed_count": row["claimed"]}

    def reset(self) -> None:
        """Clear all tables but preserve schema. Test support."""
        with self.transaction() as conn:
            conn.execute("DELETE FROM wills")

    def close(self) -> None:
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None
