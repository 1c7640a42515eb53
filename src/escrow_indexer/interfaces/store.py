"""EntityStore protocol - durable read model for users, deposits and disputes."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from escrow_indexer.models.events import DepositCreated
from escrow_indexer.models.records import (
    DepositRecord,
    DepositStatus,
    DisputeRecord,
    SyncCursor,
    UserRecord,
)


class EntityStore(Protocol):
    """Keyed storage with atomic transactions and idempotent upsert.

    All mutations used by the projectors are single calls that either
    commit fully or not at all.
    """

    # ── Lifecycle ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Create tables if they don't exist."""
        ...

    async def close(self) -> None:
        ...

    # ── Sync cursors ───────────────────────────────────────

    async def get_cursor(self, event_name: str) -> int | None:
        ...

    async def set_cursor(self, event_name: str, block_number: int) -> None:
        ...

    async def get_all_cursors(self) -> list[SyncCursor]:
        ...

    # ── Users ──────────────────────────────────────────────

    async def get_user(self, wallet_address: str) -> UserRecord | None:
        """Case-insensitive lookup."""
        ...

    # ── Deposits ───────────────────────────────────────────

    async def create_deposit(self, event: DepositCreated) -> bool:
        """Upsert both users and insert the deposit if absent, atomically.

        Returns False when a deposit with this on-chain id already exists.
        """
        ...

    async def get_deposit(self, on_chain_id: int | str) -> DepositRecord | None:
        ...

    async def set_deposit_status(
        self,
        on_chain_id: int | str,
        status: DepositStatus,
        expected: tuple[DepositStatus, ...] | None = None,
    ) -> bool:
        """Set status, only if the current status is one of `expected` when given.

        Returns True if a row changed.
        """
        ...

    async def get_all_deposits(self) -> list[DepositRecord]:
        ...

    async def get_deposits_by_depositor(self, address: str) -> list[DepositRecord]:
        ...

    async def get_deposits_by_beneficiary(self, address: str) -> list[DepositRecord]:
        ...

    # ── Disputes ───────────────────────────────────────────

    async def open_dispute(
        self,
        on_chain_id: int | str,
        claimed_amount: int,
        evidence_hash: str,
        start_time: datetime,
        deadline: datetime,
    ) -> bool:
        """Flip ACTIVE -> DISPUTED and insert the dispute in one transaction.

        Returns False (nothing written) if the deposit is not ACTIVE.
        """
        ...

    async def get_dispute(self, deposit_id: int) -> DisputeRecord | None:
        ...

    async def record_dispute_response(self, deposit_id: int, response_hash: str) -> bool:
        ...

    async def get_all_disputes(self) -> list[DisputeRecord]:
        ...

    async def get_disputes_for_deposits(
        self, deposit_ids: list[int]
    ) -> dict[int, DisputeRecord]:
        ...

    async def get_deposit_by_id(self, deposit_id: int) -> DepositRecord | None:
        ...
