"""Web3 log source - polls eth_getLogs for DepositEscrow events, one task per event."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from web3 import AsyncHTTPProvider, AsyncWeb3

from escrow_indexer.chain.abi import DEPOSIT_ESCROW_ABI, event_topic
from escrow_indexer.interfaces.source import ErrorHandler, LogsHandler
from escrow_indexer.interfaces.store import EntityStore
from escrow_indexer.models.events import ChainLog
from escrow_indexer.models.records import BlockInfo

log = logging.getLogger(__name__)


def _hex(value: Any) -> str:
    if isinstance(value, str):
        return value
    return AsyncWeb3.to_hex(value)


class Web3EventSubscription:
    """Watches a single contract event by polling block windows.

    Delivers each non-empty window to on_logs as one batch and reports
    RPC failures to on_error without stopping. The cursor advances only
    after a window has been handed over, so a restart may redeliver the
    last window but never skips one.
    """

    def __init__(
        self,
        source: Web3LogSource,
        event_name: str,
        on_logs: LogsHandler,
        on_error: ErrorHandler,
    ) -> None:
        self.event_name = event_name
        self._source = source
        self._on_logs = on_logs
        self._on_error = on_error
        self._next_block: int | None = None
        self._running = False
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.create_task(self._run(), name=f"watch-{self.event_name}")
        log.debug("Watching %s", self.event_name)

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        log.debug("Stopped watching %s", self.event_name)

    async def _run(self) -> None:
        while self._running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                self._on_error(exc)
                await asyncio.sleep(self._source.error_backoff)
                continue
            await asyncio.sleep(self._source.poll_interval)

    async def poll_once(self) -> int:
        """Fetch and deliver every window up to the confirmed head.

        Returns the number of logs delivered.
        """
        head = await self._source.head_block()
        if self._next_block is None:
            self._next_block = await self._initial_block(head)

        delivered = 0
        while self._next_block <= head:
            to_block = min(head, self._next_block + self._source.max_block_range - 1)
            raw_logs = await self._source.fetch_logs(self.event_name, self._next_block, to_block)
            logs = [self._source.decode_log(self.event_name, raw) for raw in raw_logs]
            if logs:
                self._on_logs(logs)
                delivered += len(logs)
            self._next_block = to_block + 1
            await self._source.save_cursor(self.event_name, to_block)

        if delivered:
            log.debug("Delivered %d %s logs (next block %d)",
                      delivered, self.event_name, self._next_block)
        return delivered

    async def _initial_block(self, head: int) -> int:
        saved = await self._source.load_cursor(self.event_name)
        if saved is not None:
            log.info("Restored %s cursor: block %d", self.event_name, saved)
            return saved + 1
        if self._source.start_block is not None:
            return self._source.start_block
        log.info("No cursor for %s, starting after head block %d", self.event_name, head)
        return head + 1


class Web3LogSource:
    """LogSource over an EVM JSON-RPC endpoint using web3's AsyncWeb3."""

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        abi: list[dict] | None = None,
        poll_interval: float = 4,
        error_backoff: float = 10,
        start_block: int | None = None,
        confirmations: int = 0,
        max_block_range: int = 2000,
        cursor_store: EntityStore | None = None,
    ) -> None:
        self._w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self._abi = abi or DEPOSIT_ESCROW_ABI
        self._address = AsyncWeb3.to_checksum_address(contract_address)
        self._contract = self._w3.eth.contract(address=self._address, abi=self._abi)
        self._cursor_store = cursor_store
        self.poll_interval = poll_interval
        self.error_backoff = error_backoff
        self.start_block = start_block
        self.confirmations = confirmations
        self.max_block_range = max(1, max_block_range)

    def subscribe(
        self, event_name: str, on_logs: LogsHandler, on_error: ErrorHandler
    ) -> Web3EventSubscription:
        event_topic(self._abi, event_name)  # fail fast on unknown events
        return Web3EventSubscription(self, event_name, on_logs, on_error)

    async def get_block(self, block_number: int) -> BlockInfo:
        block = await self._w3.eth.get_block(block_number)
        return BlockInfo(number=int(block["number"]), timestamp=int(block["timestamp"]))

    async def head_block(self) -> int:
        latest = await self._w3.eth.block_number
        return max(0, int(latest) - self.confirmations)

    async def fetch_logs(self, event_name: str, from_block: int, to_block: int) -> list:
        return await self._w3.eth.get_logs({
            "address": self._address,
            "topics": [event_topic(self._abi, event_name)],
            "fromBlock": from_block,
            "toBlock": to_block,
        })

    def decode_log(self, event_name: str, raw: Any) -> ChainLog:
        """Decode a raw log against the ABI. args is None if decoding fails."""
        args: dict | None
        try:
            decoded = getattr(self._contract.events, event_name)().process_log(raw)
            args = dict(decoded["args"])
        except Exception as exc:
            log.warning("Could not decode %s log in tx %s: %s",
                        event_name, _hex(raw.get("transactionHash", "")), exc)
            args = None
        return ChainLog(
            event_name=event_name,
            args=args,
            block_number=int(raw["blockNumber"]),
            tx_hash=_hex(raw["transactionHash"]),
            log_index=int(raw.get("logIndex", 0)),
        )

    async def load_cursor(self, event_name: str) -> int | None:
        if self._cursor_store is None:
            return None
        return await self._cursor_store.get_cursor(event_name)

    async def save_cursor(self, event_name: str, block_number: int) -> None:
        if self._cursor_store is not None:
            await self._cursor_store.set_cursor(event_name, block_number)
