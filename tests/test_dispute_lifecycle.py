"""Dispute projector: raise, respond, resolve and time out."""

from __future__ import annotations

import logging

from escrow_indexer.models.records import DepositStatus

from tests.factories import (
    ONE_ETHER,
    make_deposit_created,
    make_deposit_paid,
    make_depositor_responded,
    make_dispute_raised,
    make_dispute_timeout,
    make_resolver_decision,
)


async def _active_deposit(deposits, deposit_id: int = 1) -> None:
    await deposits.on_deposit_created(make_deposit_created(deposit_id=deposit_id))
    await deposits.on_deposit_paid(make_deposit_paid(deposit_id=deposit_id))


# ── DisputeRaised ─────────────────────────────────────────────────


async def test_dispute_raised_opens_dispute(deposits, disputes, store):
    """ACTIVE deposit → DISPUTED plus a dispute row, not yet responded."""
    await _active_deposit(deposits)

    await disputes.on_dispute_raised(make_dispute_raised(evidence_hash="ipfs://QmEvidence"))

    deposit = await store.get_deposit(1)
    assert deposit.status == DepositStatus.DISPUTED
    dispute = await store.get_dispute(deposit.id)
    assert dispute is not None
    assert dispute.claimed_amount == ONE_ETHER // 2
    assert dispute.evidence_hash == "ipfs://QmEvidence"
    assert dispute.depositor_responded is False
    assert dispute.response_hash is None
    assert dispute.dispute_start_time == "2023-11-14T22:13:20+00:00"


async def test_dispute_raised_on_waiting_deposit_is_rejected(deposits, disputes, store, caplog):
    """WAITING_FOR_DEPOSIT → status unchanged and no dispute row."""
    caplog.set_level(logging.ERROR)
    await deposits.on_deposit_created(make_deposit_created())

    await disputes.on_dispute_raised(make_dispute_raised())

    deposit = await store.get_deposit(1)
    assert deposit.status == DepositStatus.WAITING_FOR_DEPOSIT
    assert await store.get_dispute(deposit.id) is None
    assert any("Invalid status for DisputeRaised" in r.getMessage() for r in caplog.records)


async def test_dispute_raised_missing_deposit_warns(disputes, store, caplog):
    caplog.set_level(logging.WARNING)

    await disputes.on_dispute_raised(make_dispute_raised(deposit_id=5))

    assert await store.get_all_disputes() == []
    assert any("might be syncing" in r.getMessage() for r in caplog.records)


async def test_dispute_raised_on_completed_deposit_is_rejected(deposits, disputes, store):
    await _active_deposit(deposits)
    await store.set_deposit_status(1, DepositStatus.COMPLETED)

    await disputes.on_dispute_raised(make_dispute_raised())

    assert (await store.get_deposit(1)).status == DepositStatus.COMPLETED
    assert await store.get_all_disputes() == []


# ── DepositorResponded ────────────────────────────────────────────


async def test_depositor_responded_records_response(deposits, disputes, store):
    await _active_deposit(deposits)
    await disputes.on_dispute_raised(make_dispute_raised())

    await disputes.on_depositor_responded(make_depositor_responded(response_hash="ipfs://Qm2"))

    deposit = await store.get_deposit(1)
    dispute = await store.get_dispute(deposit.id)
    assert dispute.depositor_responded is True
    assert dispute.response_hash == "ipfs://Qm2"
    assert deposit.status == DepositStatus.DISPUTED


async def test_depositor_responded_without_dispute_logs_error(deposits, disputes, store, caplog):
    caplog.set_level(logging.ERROR)
    await _active_deposit(deposits)

    await disputes.on_depositor_responded(make_depositor_responded())

    assert await store.get_all_disputes() == []
    assert any("Dispute not found for deposit 1" in r.getMessage() for r in caplog.records)


async def test_depositor_responded_missing_deposit_warns(disputes, caplog):
    caplog.set_level(logging.WARNING)

    await disputes.on_depositor_responded(make_depositor_responded(deposit_id=3))

    assert any("might be syncing" in r.getMessage() for r in caplog.records)


# ── Resolution ────────────────────────────────────────────────────


async def test_resolver_decision_resolves_disputed_deposit(deposits, disputes, store):
    await _active_deposit(deposits)
    await disputes.on_dispute_raised(make_dispute_raised())

    await disputes.on_resolver_decision(make_resolver_decision())

    deposit = await store.get_deposit(1)
    assert deposit.status == DepositStatus.RESOLVED
    # Dispute rows are kept after resolution
    assert await store.get_dispute(deposit.id) is not None


async def test_dispute_timeout_resolves_disputed_deposit(deposits, disputes, store):
    await _active_deposit(deposits)
    await disputes.on_dispute_raised(make_dispute_raised())

    await disputes.on_dispute_timeout(make_dispute_timeout())

    assert (await store.get_deposit(1)).status == DepositStatus.RESOLVED


async def test_resolver_decision_requires_disputed(deposits, disputes, store, caplog):
    caplog.set_level(logging.ERROR)
    await _active_deposit(deposits)

    await disputes.on_resolver_decision(make_resolver_decision())

    assert (await store.get_deposit(1)).status == DepositStatus.ACTIVE
    assert any(
        "Invalid status for ResolverDecision" in r.getMessage()
        and "expected=DISPUTED" in r.getMessage()
        for r in caplog.records
    )


async def test_dispute_timeout_store_failure_is_swallowed(deposits, disputes, store, monkeypatch):
    await _active_deposit(deposits)
    await disputes.on_dispute_raised(make_dispute_raised())

    async def boom(*args, **kwargs):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(store, "set_deposit_status", boom)

    await disputes.on_dispute_timeout(make_dispute_timeout())

    assert (await store.get_deposit(1)).status == DepositStatus.DISPUTED
