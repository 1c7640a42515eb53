"""Deposit state machine and the guarded status transition shared by projectors."""

from __future__ import annotations

import logging

from escrow_indexer.interfaces.store import EntityStore
from escrow_indexer.models.records import DepositStatus

log = logging.getLogger(__name__)

TRANSITIONS: dict[DepositStatus, frozenset[DepositStatus]] = {
    DepositStatus.WAITING_FOR_DEPOSIT: frozenset({DepositStatus.ACTIVE}),
    DepositStatus.ACTIVE: frozenset({DepositStatus.DISPUTED, DepositStatus.COMPLETED}),
    DepositStatus.DISPUTED: frozenset({DepositStatus.RESOLVED}),
    DepositStatus.RESOLVED: frozenset(),
    DepositStatus.COMPLETED: frozenset(),
}


def can_transition(current: DepositStatus, target: DepositStatus) -> bool:
    return target in TRANSITIONS[current]


def sources_for(target: DepositStatus) -> tuple[DepositStatus, ...]:
    """Statuses from which `target` is reachable in one step."""
    return tuple(s for s, targets in TRANSITIONS.items() if target in targets)


async def apply_transition(
    store: EntityStore,
    event_name: str,
    deposit_id: int,
    target: DepositStatus,
    block_number: int,
) -> bool:
    """Move a deposit to `target` if the state machine allows it.

    Missing deposits are treated as not yet synced (warning); a status that
    cannot reach `target` is an invalid transition (error). A deposit already
    at `target` is a replay and left alone. Returns True if the row changed.
    """
    deposit = await store.get_deposit(deposit_id)
    if deposit is None:
        log.warning(
            "Deposit %d not found for %s - might be syncing", deposit_id, event_name,
        )
        return False

    if deposit.status == target:
        log.info(
            "%s %d already applied (status %s)", event_name, deposit_id, target.value,
        )
        return False

    if not can_transition(deposit.status, target):
        log.error(
            "Invalid status for %s: depositId=%d, expected=%s, actual=%s",
            event_name,
            deposit_id,
            "|".join(s.value for s in sources_for(target)),
            deposit.status.value,
        )
        return False

    # Conditional update: a concurrent handler may have moved the row since the read
    changed = await store.set_deposit_status(
        deposit_id, target, expected=(deposit.status,),
    )
    if not changed:
        log.error(
            "Deposit %d left %s concurrently, %s not applied",
            deposit_id, deposit.status.value, event_name,
        )
        return False

    log.info(
        "%s %d processed successfully (block: %d)", event_name, deposit_id, block_number,
    )
    return True
