"""SQLite entity store: lookups, guarded updates and sync cursors."""

from __future__ import annotations

from escrow_indexer.models.records import DepositStatus
from escrow_indexer.storage.sqlite import SQLiteEntityStore

from tests.factories import BENEFICIARY, DEPOSITOR, make_deposit_created


# ── Case-insensitive addresses ────────────────────────────────────


async def test_depositor_lookup_ignores_case(store):
    """A lowercase query matches a mixed-case stored address."""
    await store.create_deposit(make_deposit_created())

    found = await store.get_deposits_by_depositor(DEPOSITOR.lower())

    assert [d.on_chain_id for d in found] == ["1"]
    assert found[0].depositor_address == DEPOSITOR


async def test_beneficiary_lookup_ignores_case(store):
    await store.create_deposit(make_deposit_created())

    assert len(await store.get_deposits_by_beneficiary(BENEFICIARY.upper().replace("0X", "0x"))) == 1


async def test_user_lookup_ignores_case(store):
    await store.create_deposit(make_deposit_created(deposit_id=1))
    await store.create_deposit(make_deposit_created(deposit_id=2, depositor=DEPOSITOR.lower()))

    user = await store.get_user(DEPOSITOR.lower())
    assert user is not None
    assert user.wallet_address == DEPOSITOR


async def test_depositor_lookup_newest_first(store):
    for deposit_id in (1, 2, 3):
        await store.create_deposit(make_deposit_created(deposit_id=deposit_id))

    found = await store.get_deposits_by_depositor(DEPOSITOR)

    assert [d.on_chain_id for d in found] == ["3", "2", "1"]


# ── Deposits ──────────────────────────────────────────────────────


async def test_create_deposit_reports_insert(store):
    assert await store.create_deposit(make_deposit_created()) is True
    assert await store.create_deposit(make_deposit_created()) is False


async def test_large_amounts_round_trip(store):
    amount = 2**200
    await store.create_deposit(make_deposit_created(deposit_amount=amount))

    assert (await store.get_deposit("1")).deposit_amount == amount


async def test_guarded_status_update(store):
    await store.create_deposit(make_deposit_created())

    changed = await store.set_deposit_status(
        1, DepositStatus.COMPLETED, expected=(DepositStatus.ACTIVE,),
    )
    assert changed is False
    assert (await store.get_deposit(1)).status == DepositStatus.WAITING_FOR_DEPOSIT

    changed = await store.set_deposit_status(
        1, DepositStatus.ACTIVE, expected=(DepositStatus.WAITING_FOR_DEPOSIT,),
    )
    assert changed is True


async def test_status_update_unknown_deposit(store):
    assert await store.set_deposit_status(404, DepositStatus.ACTIVE) is False


async def test_disputes_for_no_deposits(store):
    assert await store.get_disputes_for_deposits([]) == {}


# ── Sync cursors ──────────────────────────────────────────────────


async def test_cursor_roundtrip(store):
    assert await store.get_cursor("DepositPaid") is None

    await store.set_cursor("DepositPaid", 10)
    await store.set_cursor("DepositPaid", 20)
    await store.set_cursor("DepositCreated", 15)

    assert await store.get_cursor("DepositPaid") == 20
    cursors = await store.get_all_cursors()
    assert [(c.event_name, c.last_block) for c in cursors] == [
        ("DepositCreated", 15),
        ("DepositPaid", 20),
    ]


async def test_file_store_persists_across_connections(tmp_path):
    path = str(tmp_path / "nested" / "indexer.db")
    first = SQLiteEntityStore(path)
    await first.initialize()
    await first.create_deposit(make_deposit_created())
    await first.set_cursor("DepositCreated", 99)
    await first.close()

    second = SQLiteEntityStore(path)
    await second.initialize()
    try:
        assert (await second.get_deposit(1)) is not None
        assert await second.get_cursor("DepositCreated") == 99
    finally:
        await second.close()
