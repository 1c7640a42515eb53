"""DisputeRaised writes the status flip and the dispute row together or not at all."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from escrow_indexer.models.records import DepositStatus

from tests.factories import make_deposit_created, make_deposit_paid, make_dispute_raised


async def test_failed_dispute_insert_rolls_back_status(deposits, disputes, store, monkeypatch, caplog):
    """Failure in the dispute half leaves the deposit ACTIVE with no dispute."""
    await deposits.on_deposit_created(make_deposit_created())
    await deposits.on_deposit_paid(make_deposit_paid())

    async def boom(*args, **kwargs):
        raise RuntimeError("simulated dispute insert failure")

    monkeypatch.setattr(store, "_insert_dispute", boom)
    caplog.set_level(logging.ERROR)

    await disputes.on_dispute_raised(make_dispute_raised())

    assert (await store.get_deposit(1)).status == DepositStatus.ACTIVE
    assert await store.get_all_disputes() == []
    assert any("simulated dispute insert failure" in r.getMessage() for r in caplog.records)


async def test_dispute_can_be_raised_after_rollback(deposits, disputes, store, monkeypatch):
    """A redelivery after a failed attempt applies cleanly."""
    await deposits.on_deposit_created(make_deposit_created())
    await deposits.on_deposit_paid(make_deposit_paid())

    async def boom(*args, **kwargs):
        raise RuntimeError("simulated dispute insert failure")

    monkeypatch.setattr(store, "_insert_dispute", boom)
    await disputes.on_dispute_raised(make_dispute_raised())
    monkeypatch.undo()

    await disputes.on_dispute_raised(make_dispute_raised())

    assert (await store.get_deposit(1)).status == DepositStatus.DISPUTED
    assert len(await store.get_all_disputes()) == 1


async def test_open_dispute_refuses_non_active(store, deposits):
    """The conditional update reports False when the deposit is not ACTIVE."""
    await deposits.on_deposit_created(make_deposit_created())

    now = datetime.now(timezone.utc)
    opened = await store.open_dispute(1, 10, "ipfs://x", now, now)

    assert opened is False
    assert await store.get_all_disputes() == []
