"""Dispute projector - applies dispute lifecycle events to the entity store."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from escrow_indexer.interfaces.store import EntityStore
from escrow_indexer.models.events import (
    DepositorResponded,
    DisputeRaised,
    DisputeTimeout,
    ResolverDecision,
)
from escrow_indexer.models.records import DepositStatus
from escrow_indexer.projection.transitions import apply_transition

log = logging.getLogger(__name__)

DISPUTE_WINDOW = timedelta(days=14)


def dispute_deadline(start: datetime) -> datetime:
    """Deadline for the depositor's response and the resolver's decision."""
    return start + DISPUTE_WINDOW


class DisputeProjector:
    """Projects DisputeRaised, DepositorResponded, ResolverDecision and
    DisputeTimeout onto disputes and their deposits.

    All failures are logged and dropped; DisputeRaised relies on the store
    to write the status flip and the dispute row in one transaction.
    """

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    async def on_dispute_raised(self, event: DisputeRaised) -> None:
        log.info(
            "Processing DisputeRaised: depositId=%d, beneficiary=%s, claimed=%d",
            event.deposit_id, event.beneficiary, event.claimed_amount,
        )
        try:
            deposit = await self._store.get_deposit(event.deposit_id)
            if deposit is None:
                log.warning(
                    "Deposit %d not found in database - might be syncing", event.deposit_id,
                )
                return

            if deposit.status == DepositStatus.DISPUTED:
                log.info("DisputeRaised %d already applied", event.deposit_id)
                return

            if deposit.status != DepositStatus.ACTIVE:
                log.error(
                    "Invalid status for DisputeRaised: depositId=%d, expected=ACTIVE, actual=%s",
                    event.deposit_id, deposit.status.value,
                )
                return

            start = datetime.fromtimestamp(event.block_timestamp, tz=timezone.utc)
            opened = await self._store.open_dispute(
                event.deposit_id,
                claimed_amount=event.claimed_amount,
                evidence_hash=event.evidence_hash,
                start_time=start,
                deadline=dispute_deadline(start),
            )
            if not opened:
                log.error(
                    "Deposit %d left ACTIVE concurrently, DisputeRaised not applied",
                    event.deposit_id,
                )
                return

            log.info(
                "DisputeRaised %d processed successfully (block: %d)",
                event.deposit_id, event.block_number,
            )
        except Exception as exc:
            log.error(
                "Failed to process DisputeRaised %d: %s", event.deposit_id, exc,
                exc_info=True,
            )

    async def on_depositor_responded(self, event: DepositorResponded) -> None:
        log.info(
            "Processing DepositorResponded: depositId=%d, depositor=%s",
            event.deposit_id, event.depositor,
        )
        try:
            deposit = await self._store.get_deposit(event.deposit_id)
            if deposit is None:
                log.warning(
                    "Deposit %d not found in database - might be syncing", event.deposit_id,
                )
                return

            dispute = await self._store.get_dispute(deposit.id)
            if dispute is None:
                log.error("Dispute not found for deposit %d", event.deposit_id)
                return

            await self._store.record_dispute_response(deposit.id, event.response_hash)
            log.info(
                "DepositorResponded %d processed successfully (block: %d)",
                event.deposit_id, event.block_number,
            )
        except Exception as exc:
            log.error(
                "Failed to process DepositorResponded %d: %s", event.deposit_id, exc,
                exc_info=True,
            )

    async def on_resolver_decision(self, event: ResolverDecision) -> None:
        # The split itself lives on-chain; only the status is projected.
        log.info(
            "Processing ResolverDecision: depositId=%d, resolver=%s, "
            "amountToDepositor=%d, amountToBeneficiary=%d",
            event.deposit_id, event.resolver,
            event.amount_to_depositor, event.amount_to_beneficiary,
        )
        await self._resolve("ResolverDecision", event.deposit_id, event.block_number)

    async def on_dispute_timeout(self, event: DisputeTimeout) -> None:
        log.info(
            "Processing DisputeTimeout: depositId=%d, depositor=%s, amount=%d",
            event.deposit_id, event.depositor, event.amount,
        )
        await self._resolve("DisputeTimeout", event.deposit_id, event.block_number)

    async def _resolve(self, event_name: str, deposit_id: int, block_number: int) -> None:
        try:
            await apply_transition(
                self._store, event_name, deposit_id, DepositStatus.RESOLVED, block_number,
            )
        except Exception as exc:
            log.error(
                "Failed to process %s %d: %s", event_name, deposit_id, exc, exc_info=True,
            )
