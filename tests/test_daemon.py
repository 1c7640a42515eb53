"""Daemon wiring and lifecycle over a mocked log source."""

from __future__ import annotations

import asyncio

from escrow_indexer.chain.router import EVENT_NAMES
from escrow_indexer.chain.watcher import Web3LogSource
from escrow_indexer.daemon import IndexerDaemon
from escrow_indexer.models.records import DepositStatus

from tests.conftest import make_test_config
from tests.factories import DEPOSITOR, deposit_created_args, make_log
from tests.mocks import MockLogSource


async def _wait_for(predicate, attempts: int = 100) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not reached")


async def test_daemon_projects_events_until_stopped():
    source = MockLogSource()
    daemon = IndexerDaemon(make_test_config(), source=source)
    task = asyncio.create_task(daemon.start())

    await _wait_for(lambda: len(source.subscriptions) == len(EVENT_NAMES))
    source.emit("DepositCreated", make_log("DepositCreated", deposit_created_args()))
    await daemon.router.drain()
    source.emit("DepositPaid", make_log("DepositPaid", {"depositId": 1, "depositor": DEPOSITOR}))
    await daemon.router.drain()

    deposit = await daemon.store.get_deposit(1)
    assert deposit.status == DepositStatus.ACTIVE

    await daemon.stop()
    await asyncio.wait_for(task, timeout=5)

    assert all(sub.stopped for sub in source.subscriptions.values())
    assert daemon.router.subscriptions == []


def test_daemon_builds_web3_source_from_config():
    cfg = make_test_config(start_block=123, confirmations=2, max_block_range=50)
    daemon = IndexerDaemon(cfg)

    assert isinstance(daemon.source, Web3LogSource)
    assert daemon.source.start_block == 123
    assert daemon.source.confirmations == 2
    assert daemon.source.max_block_range == 50
