"""Query aggregator - builds API snapshots from the projected read model."""

from __future__ import annotations

import logging

from escrow_indexer.interfaces.store import EntityStore
from escrow_indexer.models.records import DepositRecord, DisputeRecord, UserRecord
from escrow_indexer.models.snapshots import DepositSnapshot, DisputeSnapshot, UserSnapshot

log = logging.getLogger(__name__)


def _dispute_to_snapshot(
    dispute: DisputeRecord, deposit: DepositRecord | None = None,
) -> DisputeSnapshot:
    return DisputeSnapshot(
        id=dispute.id,
        deposit_id=dispute.deposit_id,
        claimed_amount=str(dispute.claimed_amount),
        evidence_hash=dispute.evidence_hash,
        dispute_start_time=dispute.dispute_start_time,
        dispute_deadline=dispute.dispute_deadline,
        depositor_responded=dispute.depositor_responded,
        response_hash=dispute.response_hash,
        created_at=dispute.created_at,
        updated_at=dispute.updated_at,
        deposit=_deposit_to_snapshot(deposit) if deposit else None,
    )


def _deposit_to_snapshot(
    deposit: DepositRecord, dispute: DisputeRecord | None = None,
) -> DepositSnapshot:
    return DepositSnapshot(
        id=deposit.id,
        on_chain_id=deposit.on_chain_id,
        depositor_address=deposit.depositor_address,
        beneficiary_address=deposit.beneficiary_address,
        deposit_amount=str(deposit.deposit_amount),
        period_start=deposit.period_start,
        period_end=deposit.period_end,
        auto_release_time=deposit.auto_release_time,
        status=deposit.status.value,
        created_at=deposit.created_at,
        updated_at=deposit.updated_at,
        dispute=_dispute_to_snapshot(dispute) if dispute else None,
    )


def _user_to_snapshot(user: UserRecord) -> UserSnapshot:
    return UserSnapshot(wallet_address=user.wallet_address, created_at=user.created_at)


class EscrowQueries:
    """Read-only views over the entity store for API clients.

    Results reflect whatever has been projected so far; nothing here
    writes to the store.
    """

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    async def _with_disputes(self, deposits: list[DepositRecord]) -> list[DepositSnapshot]:
        disputes = await self._store.get_disputes_for_deposits([d.id for d in deposits])
        return [_deposit_to_snapshot(d, disputes.get(d.id)) for d in deposits]

    # ── Deposits ───────────────────────────────────────────

    async def list_deposits(self) -> list[DepositSnapshot]:
        return await self._with_disputes(await self._store.get_all_deposits())

    async def deposits_by_depositor(self, address: str) -> list[DepositSnapshot]:
        return await self._with_disputes(await self._store.get_deposits_by_depositor(address))

    async def deposits_by_beneficiary(self, address: str) -> list[DepositSnapshot]:
        return await self._with_disputes(await self._store.get_deposits_by_beneficiary(address))

    async def get_deposit(self, on_chain_id: str) -> DepositSnapshot | None:
        deposit = await self._store.get_deposit(on_chain_id)
        if deposit is None:
            return None
        dispute = await self._store.get_dispute(deposit.id)
        return _deposit_to_snapshot(deposit, dispute)

    # ── Disputes ───────────────────────────────────────────

    async def list_disputes(self) -> list[DisputeSnapshot]:
        snapshots = []
        for dispute in await self._store.get_all_disputes():
            deposit = await self._store.get_deposit_by_id(dispute.deposit_id)
            snapshots.append(_dispute_to_snapshot(dispute, deposit))
        return snapshots

    async def get_dispute(self, on_chain_id: str) -> DisputeSnapshot | None:
        deposit = await self._store.get_deposit(on_chain_id)
        if deposit is None:
            return None
        dispute = await self._store.get_dispute(deposit.id)
        return _dispute_to_snapshot(dispute) if dispute else None

    # ── Users ──────────────────────────────────────────────

    async def get_user(self, address: str) -> UserSnapshot | None:
        user = await self._store.get_user(address)
        return _user_to_snapshot(user) if user else None

    async def user_deposits(self, address: str) -> list[DepositSnapshot]:
        """Deposits where the user is depositor, then where beneficiary."""
        user = await self._store.get_user(address)
        if user is None:
            return []
        as_depositor = await self._store.get_deposits_by_depositor(user.wallet_address)
        as_beneficiary = await self._store.get_deposits_by_beneficiary(user.wallet_address)
        return await self._with_disputes(as_depositor + as_beneficiary)
