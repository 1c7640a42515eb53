"""SQLite implementation of the EntityStore protocol."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from escrow_indexer.models.events import DepositCreated
from escrow_indexer.models.records import (
    DepositRecord,
    DepositStatus,
    DisputeRecord,
    SyncCursor,
    UserRecord,
)

SCHEMA = """
-- Per-event sync cursor for resumption
CREATE TABLE IF NOT EXISTS sync_cursors (
    event_name TEXT PRIMARY KEY,
    last_block INTEGER NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Wallets seen as depositor or beneficiary
CREATE TABLE IF NOT EXISTS users (
    wallet_address TEXT PRIMARY KEY COLLATE NOCASE,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Deposits, one per on-chain id
CREATE TABLE IF NOT EXISTS deposits (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    on_chain_id TEXT NOT NULL UNIQUE,
    depositor_address TEXT NOT NULL COLLATE NOCASE
        REFERENCES users(wallet_address),
    beneficiary_address TEXT NOT NULL COLLATE NOCASE
        REFERENCES users(wallet_address),
    deposit_amount TEXT NOT NULL,
    period_start TEXT NOT NULL,
    period_end TEXT NOT NULL,
    auto_release_time TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'WAITING_FOR_DEPOSIT' CHECK (status IN (
        'WAITING_FOR_DEPOSIT', 'ACTIVE', 'DISPUTED', 'RESOLVED', 'COMPLETED'
    )),
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_deposits_depositor ON deposits(depositor_address);
CREATE INDEX IF NOT EXISTS idx_deposits_beneficiary ON deposits(beneficiary_address);
CREATE INDEX IF NOT EXISTS idx_deposits_status ON deposits(status);

-- Disputes, at most one per deposit, never deleted
CREATE TABLE IF NOT EXISTS disputes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    deposit_id INTEGER NOT NULL UNIQUE REFERENCES deposits(id),
    claimed_amount TEXT NOT NULL,
    evidence_hash TEXT NOT NULL,
    dispute_start_time TEXT NOT NULL,
    dispute_deadline TEXT NOT NULL,
    depositor_responded INTEGER NOT NULL DEFAULT 0,
    response_hash TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(unix_seconds: int) -> str:
    return datetime.fromtimestamp(int(unix_seconds), tz=timezone.utc).isoformat()


def _key(on_chain_id: int | str) -> str:
    """Canonical decimal form of an on-chain id."""
    return str(int(on_chain_id))


class SQLiteEntityStore:
    """SQLite-backed implementation of the EntityStore protocol.

    One connection is shared by every handler task. Write units go through
    transaction(), which serialises them on that connection so statements of
    concurrent handlers never interleave inside one commit.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.execute("PRAGMA foreign_keys = ON")
        if self._db_path != ":memory:":
            await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Commit everything executed inside the block, or nothing."""
        async with self._write_lock:
            try:
                yield self.db
            except BaseException:
                await self.db.rollback()
                raise
            else:
                await self.db.commit()

    # ── Sync cursors ───────────────────────────────────────

    async def get_cursor(self, event_name: str) -> int | None:
        async with self.db.execute(
            "SELECT last_block FROM sync_cursors WHERE event_name=?", (event_name,)
        ) as cur:
            row = await cur.fetchone()
            return row["last_block"] if row else None

    async def set_cursor(self, event_name: str, block_number: int) -> None:
        async with self.transaction() as db:
            await db.execute(
                "INSERT INTO sync_cursors (event_name, last_block, updated_at) VALUES (?, ?, ?)"
                " ON CONFLICT(event_name) DO UPDATE SET last_block=excluded.last_block,"
                " updated_at=excluded.updated_at",
                (event_name, block_number, _now()),
            )

    async def get_all_cursors(self) -> list[SyncCursor]:
        async with self.db.execute(
            "SELECT * FROM sync_cursors ORDER BY event_name"
        ) as cur:
            return [
                SyncCursor(
                    event_name=row["event_name"],
                    last_block=row["last_block"],
                    updated_at=row["updated_at"],
                )
                async for row in cur
            ]

    # ── Users ──────────────────────────────────────────────

    async def _upsert_user(self, db: aiosqlite.Connection, wallet_address: str) -> None:
        await db.execute(
            "INSERT INTO users (wallet_address, created_at) VALUES (?, ?)"
            " ON CONFLICT(wallet_address) DO NOTHING",
            (wallet_address, _now()),
        )

    async def get_user(self, wallet_address: str) -> UserRecord | None:
        async with self.db.execute(
            "SELECT * FROM users WHERE wallet_address=?", (wallet_address,)
        ) as cur:
            row = await cur.fetchone()
            if row:
                return UserRecord(
                    wallet_address=row["wallet_address"],
                    created_at=row["created_at"],
                )
        return None

    # ── Deposits ───────────────────────────────────────────

    async def create_deposit(self, event: DepositCreated) -> bool:
        now = _now()
        async with self.transaction() as db:
            await self._upsert_user(db, event.depositor)
            await self._upsert_user(db, event.beneficiary)
            cur = await db.execute(
                "INSERT INTO deposits"
                " (on_chain_id, depositor_address, beneficiary_address, deposit_amount,"
                "  period_start, period_end, auto_release_time, status, created_at, updated_at)"
                " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
                " ON CONFLICT(on_chain_id) DO NOTHING",
                (
                    _key(event.deposit_id), event.depositor, event.beneficiary,
                    str(event.deposit_amount), _iso(event.period_start),
                    _iso(event.period_end), _iso(event.auto_release_time),
                    DepositStatus.WAITING_FOR_DEPOSIT.value, now, now,
                ),
            )
            return cur.rowcount == 1

    async def get_deposit(self, on_chain_id: int | str) -> DepositRecord | None:
        async with self.db.execute(
            "SELECT * FROM deposits WHERE on_chain_id=?", (_key(on_chain_id),)
        ) as cur:
            row = await cur.fetchone()
            return _row_to_deposit(row) if row else None

    async def get_deposit_by_id(self, deposit_id: int) -> DepositRecord | None:
        async with self.db.execute(
            "SELECT * FROM deposits WHERE id=?", (deposit_id,)
        ) as cur:
            row = await cur.fetchone()
            return _row_to_deposit(row) if row else None

    async def set_deposit_status(
        self,
        on_chain_id: int | str,
        status: DepositStatus,
        expected: tuple[DepositStatus, ...] | None = None,
    ) -> bool:
        sql = "UPDATE deposits SET status=?, updated_at=? WHERE on_chain_id=?"
        params: list = [status.value, _now(), _key(on_chain_id)]
        if expected:
            placeholders = ",".join("?" for _ in expected)
            sql += f" AND status IN ({placeholders})"
            params.extend(s.value for s in expected)
        async with self.transaction() as db:
            cur = await db.execute(sql, params)
            return cur.rowcount > 0

    async def get_all_deposits(self) -> list[DepositRecord]:
        async with self.db.execute("SELECT * FROM deposits ORDER BY id") as cur:
            return [_row_to_deposit(row) async for row in cur]

    async def get_deposits_by_depositor(self, address: str) -> list[DepositRecord]:
        async with self.db.execute(
            "SELECT * FROM deposits WHERE depositor_address=?"
            " ORDER BY created_at DESC, id DESC",
            (address,),
        ) as cur:
            return [_row_to_deposit(row) async for row in cur]

    async def get_deposits_by_beneficiary(self, address: str) -> list[DepositRecord]:
        async with self.db.execute(
            "SELECT * FROM deposits WHERE beneficiary_address=?"
            " ORDER BY created_at DESC, id DESC",
            (address,),
        ) as cur:
            return [_row_to_deposit(row) async for row in cur]

    # ── Disputes ───────────────────────────────────────────

    async def open_dispute(
        self,
        on_chain_id: int | str,
        claimed_amount: int,
        evidence_hash: str,
        start_time: datetime,
        deadline: datetime,
    ) -> bool:
        key = _key(on_chain_id)
        async with self.transaction() as db:
            cur = await db.execute(
                "UPDATE deposits SET status=?, updated_at=? WHERE on_chain_id=? AND status=?",
                (DepositStatus.DISPUTED.value, _now(), key, DepositStatus.ACTIVE.value),
            )
            if cur.rowcount == 0:
                return False
            async with db.execute(
                "SELECT id FROM deposits WHERE on_chain_id=?", (key,)
            ) as sel:
                row = await sel.fetchone()
            await self._insert_dispute(
                db, row["id"], claimed_amount, evidence_hash, start_time, deadline,
            )
        return True

    async def _insert_dispute(
        self,
        db: aiosqlite.Connection,
        deposit_id: int,
        claimed_amount: int,
        evidence_hash: str,
        start_time: datetime,
        deadline: datetime,
    ) -> None:
        now = _now()
        await db.execute(
            "INSERT INTO disputes"
            " (deposit_id, claimed_amount, evidence_hash, dispute_start_time,"
            "  dispute_deadline, depositor_responded, created_at, updated_at)"
            " VALUES (?, ?, ?, ?, ?, 0, ?, ?)",
            (
                deposit_id, str(claimed_amount), evidence_hash,
                start_time.isoformat(), deadline.isoformat(), now, now,
            ),
        )

    async def get_dispute(self, deposit_id: int) -> DisputeRecord | None:
        async with self.db.execute(
            "SELECT * FROM disputes WHERE deposit_id=?", (deposit_id,)
        ) as cur:
            row = await cur.fetchone()
            return _row_to_dispute(row) if row else None

    async def record_dispute_response(self, deposit_id: int, response_hash: str) -> bool:
        async with self.transaction() as db:
            cur = await db.execute(
                "UPDATE disputes SET response_hash=?, depositor_responded=1, updated_at=?"
                " WHERE deposit_id=?",
                (response_hash, _now(), deposit_id),
            )
            return cur.rowcount > 0

    async def get_all_disputes(self) -> list[DisputeRecord]:
        async with self.db.execute("SELECT * FROM disputes ORDER BY id") as cur:
            return [_row_to_dispute(row) async for row in cur]

    async def get_disputes_for_deposits(
        self, deposit_ids: list[int]
    ) -> dict[int, DisputeRecord]:
        if not deposit_ids:
            return {}
        placeholders = ",".join("?" for _ in deposit_ids)
        async with self.db.execute(
            f"SELECT * FROM disputes WHERE deposit_id IN ({placeholders})", deposit_ids,
        ) as cur:
            disputes = [_row_to_dispute(row) async for row in cur]
        return {d.deposit_id: d for d in disputes}


# ── Row converters ─────────────────────────────────────────


def _row_to_deposit(row: aiosqlite.Row) -> DepositRecord:
    return DepositRecord(
        id=row["id"],
        on_chain_id=row["on_chain_id"],
        depositor_address=row["depositor_address"],
        beneficiary_address=row["beneficiary_address"],
        deposit_amount=int(row["deposit_amount"]),
        period_start=row["period_start"],
        period_end=row["period_end"],
        auto_release_time=row["auto_release_time"],
        status=DepositStatus(row["status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_dispute(row: aiosqlite.Row) -> DisputeRecord:
    return DisputeRecord(
        id=row["id"],
        deposit_id=row["deposit_id"],
        claimed_amount=int(row["claimed_amount"]),
        evidence_hash=row["evidence_hash"],
        dispute_start_time=row["dispute_start_time"],
        dispute_deadline=row["dispute_deadline"],
        depositor_responded=bool(row["depositor_responded"]),
        response_hash=row["response_hash"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
