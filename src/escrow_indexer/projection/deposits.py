"""Deposit projector - applies deposit lifecycle events to the entity store."""

from __future__ import annotations

import logging

from escrow_indexer.interfaces.store import EntityStore
from escrow_indexer.models.events import (
    AutoReleaseExecuted,
    CleanExitConfirmed,
    DepositCreated,
    DepositPaid,
)
from escrow_indexer.models.records import DepositStatus
from escrow_indexer.projection.transitions import apply_transition

log = logging.getLogger(__name__)


class DepositProjector:
    """Projects DepositCreated, DepositPaid, CleanExitConfirmed and
    AutoReleaseExecuted onto deposits.

    Each handler is one independent store operation keyed by on-chain id.
    Only a store failure while creating a deposit propagates; every other
    failure is logged and dropped.
    """

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    async def on_deposit_created(self, event: DepositCreated) -> None:
        log.info(
            "Processing DepositCreated: id=%d depositor=%s beneficiary=%s amount=%d",
            event.deposit_id, event.depositor, event.beneficiary, event.deposit_amount,
        )
        try:
            created = await self._store.create_deposit(event)
        except Exception as exc:
            log.error(
                "Failed to process DepositCreated %d: %s", event.deposit_id, exc,
                exc_info=True,
            )
            raise

        if not created:
            log.info("DepositCreated %d already processed, skipping", event.deposit_id)
            return
        log.info(
            "DepositCreated %d processed successfully (block: %d)",
            event.deposit_id, event.block_number,
        )

    async def on_deposit_paid(self, event: DepositPaid) -> None:
        log.info(
            "Processing DepositPaid: id=%d depositor=%s", event.deposit_id, event.depositor,
        )
        try:
            deposit = await self._store.get_deposit(event.deposit_id)
            if deposit is None:
                log.warning(
                    "Deposit %d not found in database - might be syncing", event.deposit_id,
                )
                return

            # Unconditional set: repeated deliveries converge on ACTIVE
            if deposit.status not in (DepositStatus.WAITING_FOR_DEPOSIT, DepositStatus.ACTIVE):
                log.warning(
                    "DepositPaid %d overwrites status %s", event.deposit_id, deposit.status.value,
                )
            await self._store.set_deposit_status(event.deposit_id, DepositStatus.ACTIVE)
            log.info(
                "DepositPaid %d processed successfully (block: %d)",
                event.deposit_id, event.block_number,
            )
        except Exception as exc:
            log.error(
                "Failed to process DepositPaid %d: %s", event.deposit_id, exc, exc_info=True,
            )

    async def on_clean_exit_confirmed(self, event: CleanExitConfirmed) -> None:
        log.info(
            "Processing CleanExitConfirmed: id=%d beneficiary=%s tx=%s",
            event.deposit_id, event.beneficiary, event.tx_hash,
        )
        await self._transition("CleanExitConfirmed", event.deposit_id,
                               DepositStatus.COMPLETED, event.block_number)

    async def on_auto_release_executed(self, event: AutoReleaseExecuted) -> None:
        log.info(
            "Processing AutoReleaseExecuted: id=%d depositor=%s tx=%s",
            event.deposit_id, event.depositor, event.tx_hash,
        )
        await self._transition("AutoReleaseExecuted", event.deposit_id,
                               DepositStatus.COMPLETED, event.block_number)

    async def _transition(
        self, event_name: str, deposit_id: int, target: DepositStatus, block_number: int,
    ) -> None:
        try:
            await apply_transition(self._store, event_name, deposit_id, target, block_number)
        except Exception as exc:
            log.error(
                "Failed to process %s %d: %s", event_name, deposit_id, exc, exc_info=True,
            )
