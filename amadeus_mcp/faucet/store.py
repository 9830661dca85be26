"""
Durable claim storage for the testnet faucet.

Stores expose two async operations: ``get(origin)`` and
``compare_and_set(origin, expected, new)``. The compare-and-set is the only
synchronization the faucet relies on; it succeeds only when the stored record
still equals ``expected`` (``None`` meaning absent) and then writes ``new``
(``None`` meaning delete).
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Protocol

from amadeus_mcp.errors import StoreError

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_GRANTED = "granted"


@dataclass(frozen=True, slots=True)
class ClaimRecord:
    address: str
    claimed_at: float
    status: str = STATUS_PENDING
    tx_hash: Optional[str] = None


class ClaimStore(Protocol):
    async def get(self, origin: str) -> Optional[ClaimRecord]:
        ...

    async def compare_and_set(
        self, origin: str, expected: Optional[ClaimRecord], new: Optional[ClaimRecord]
    ) -> bool:
        ...


class InMemoryClaimStore:
    """Process-local store. Each operation runs without awaiting, so it is atomic on one loop."""

    def __init__(self) -> None:
        self._records: Dict[str, ClaimRecord] = {}

    async def get(self, origin: str) -> Optional[ClaimRecord]:
        return self._records.get(origin)

    async def compare_and_set(
        self, origin: str, expected: Optional[ClaimRecord], new: Optional[ClaimRecord]
    ) -> bool:
        if self._records.get(origin) != expected:
            return False
        if new is None:
            self._records.pop(origin, None)
        else:
            self._records[origin] = new
        return True


class SqliteClaimStore:
    """SQLite-backed store, safe across processes sharing the database file."""

    def __init__(self, path: str, *, timeout: float = 5.0) -> None:
        self.path = path
        self.timeout = timeout
        self._initialized = False

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.path, timeout=self.timeout, isolation_level=None)
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        if self._initialized:
            return
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS faucet_claims (
                origin TEXT PRIMARY KEY,
                address TEXT NOT NULL,
                claimed_at REAL NOT NULL,
                status TEXT NOT NULL,
                tx_hash TEXT
            )
            """
        )
        self._initialized = True

    @staticmethod
    def _select(conn: sqlite3.Connection, origin: str) -> Optional[ClaimRecord]:
        row = conn.execute(
            "SELECT address, claimed_at, status, tx_hash FROM faucet_claims WHERE origin = ?",
            (origin,),
        ).fetchone()
        if row is None:
            return None
        return ClaimRecord(address=row[0], claimed_at=row[1], status=row[2], tx_hash=row[3])

    def _get_sync(self, origin: str) -> Optional[ClaimRecord]:
        with self._connect() as conn:
            self._ensure_schema(conn)
            return self._select(conn, origin)

    def _cas_sync(
        self, origin: str, expected: Optional[ClaimRecord], new: Optional[ClaimRecord]
    ) -> bool:
        with self._connect() as conn:
            self._ensure_schema(conn)
            conn.execute("BEGIN IMMEDIATE")
            try:
                if self._select(conn, origin) != expected:
                    conn.execute("ROLLBACK")
                    return False
                if new is None:
                    conn.execute("DELETE FROM faucet_claims WHERE origin = ?", (origin,))
                else:
                    conn.execute(
                        "INSERT OR REPLACE INTO faucet_claims (origin, address, claimed_at, status, tx_hash) "
                        "VALUES (?, ?, ?, ?, ?)",
                        (origin, new.address, new.claimed_at, new.status, new.tx_hash),
                    )
                conn.execute("COMMIT")
                return True
            except sqlite3.Error:
                conn.execute("ROLLBACK")
                raise

    async def _run(self, func, *args):
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Faucet store operation timed out")
            raise StoreError("Faucet store timed out.") from exc
        except sqlite3.Error as exc:
            logger.warning("Faucet store unavailable", extra={"error": str(exc)})
            raise StoreError("Faucet store unavailable.") from exc

    async def get(self, origin: str) -> Optional[ClaimRecord]:
        return await self._run(self._get_sync, origin)

    async def compare_and_set(
        self, origin: str, expected: Optional[ClaimRecord], new: Optional[ClaimRecord]
    ) -> bool:
        return await self._run(self._cas_sync, origin, expected, new)


def build_store(location: str, *, timeout: float = 5.0) -> ClaimStore:
    """``memory`` selects the in-process store; anything else is a SQLite path."""
    if location == "memory":
        return InMemoryClaimStore()
    return SqliteClaimStore(location, timeout=timeout)
