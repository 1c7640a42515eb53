"""Indexer daemon - wires the log source, projectors and store together."""

from __future__ import annotations

import asyncio
import logging
import signal

from escrow_indexer.chain.abi import load_abi
from escrow_indexer.chain.router import EventRouter
from escrow_indexer.chain.watcher import Web3LogSource
from escrow_indexer.interfaces.source import LogSource
from escrow_indexer.models.config import IndexerConfig
from escrow_indexer.projection.deposits import DepositProjector
from escrow_indexer.projection.disputes import DisputeProjector
from escrow_indexer.storage.sqlite import SQLiteEntityStore

log = logging.getLogger(__name__)


class IndexerDaemon:
    """Projects DepositEscrow events into the local read model.

    Runs until stop() is called. Event watchers poll in the background;
    this coroutine only waits for the stop signal and then tears the
    router and store down in order.
    """

    def __init__(self, cfg: IndexerConfig, source: LogSource | None = None) -> None:
        self._cfg = cfg
        self._stopped = asyncio.Event()

        self.store = SQLiteEntityStore(cfg.db_path)
        if source is None:
            source = Web3LogSource(
                cfg.rpc_url,
                cfg.contract_address,
                abi=load_abi(cfg.abi_path) if cfg.abi_path else None,
                poll_interval=cfg.poll_interval,
                error_backoff=cfg.error_backoff,
                start_block=cfg.start_block,
                confirmations=cfg.confirmations,
                max_block_range=cfg.max_block_range,
                cursor_store=self.store,
            )
        self.source = source
        self.deposits = DepositProjector(self.store)
        self.disputes = DisputeProjector(self.store)
        self.router = EventRouter(self.source, self.deposits, self.disputes)

    async def start(self) -> None:
        """Initialize the store, start watching, and block until stopped."""
        log.info("Starting escrow indexer")
        log.info("  Network: %s", self._cfg.network)
        log.info("  Contract: %s", self._cfg.contract_address)
        log.info("  RPC: %s", self._cfg.rpc_url)
        log.info("  DB: %s", self._cfg.db_path)

        await self.store.initialize()
        for cursor in await self.store.get_all_cursors():
            log.info("Restored cursor: %s at block %d", cursor.event_name, cursor.last_block)

        try:
            await self.router.start()
            await self._stopped.wait()
        finally:
            await self.router.stop()
            await self.store.close()
            log.info("Indexer shut down cleanly")

    async def stop(self) -> None:
        """Signal the daemon to stop gracefully."""
        log.info("Stop requested")
        self._stopped.set()


async def run_daemon(cfg: IndexerConfig) -> None:
    """Entry point for running the daemon."""
    daemon = IndexerDaemon(cfg)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await daemon.start()
