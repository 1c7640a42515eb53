"""Event router - subscribes per event name, decodes logs, dispatches to projectors."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from functools import partial
from typing import Any, Awaitable, Callable, Coroutine, Mapping, Union

from escrow_indexer.interfaces.source import EventSubscription, LogSource
from escrow_indexer.models.events import (
    AutoReleaseExecuted,
    ChainLog,
    CleanExitConfirmed,
    DepositCreated,
    DepositorResponded,
    DepositPaid,
    DisputeRaised,
    DisputeTimeout,
    ResolverDecision,
)
from escrow_indexer.projection.deposits import DepositProjector
from escrow_indexer.projection.disputes import DisputeProjector

log = logging.getLogger(__name__)

ContractEvent = Union[
    DepositCreated, DepositPaid, CleanExitConfirmed, AutoReleaseExecuted,
    DisputeRaised, DepositorResponded, ResolverDecision, DisputeTimeout,
]

EVENT_NAMES = (
    "DepositCreated",
    "DepositPaid",
    "CleanExitConfirmed",
    "AutoReleaseExecuted",
    "DisputeRaised",
    "DepositorResponded",
    "ResolverDecision",
    "DisputeTimeout",
)


def decode_event(
    event_name: str,
    args: Mapping[str, Any],
    block_number: int,
    tx_hash: str,
    block_timestamp: int | None = None,
) -> ContractEvent:
    """Build the typed event from on-chain (camelCase) arguments.

    Raises KeyError for a missing argument and ValueError for an unknown
    event name.
    """
    if event_name == "DepositCreated":
        return DepositCreated(
            deposit_id=int(args["depositId"]),
            depositor=str(args["depositor"]),
            beneficiary=str(args["beneficiary"]),
            deposit_amount=int(args["depositAmount"]),
            period_start=int(args["periodStart"]),
            period_end=int(args["periodEnd"]),
            auto_release_time=int(args["autoReleaseTime"]),
            block_number=block_number,
        )
    elif event_name == "DepositPaid":
        return DepositPaid(
            deposit_id=int(args["depositId"]),
            depositor=str(args["depositor"]),
            block_number=block_number,
        )
    elif event_name == "CleanExitConfirmed":
        return CleanExitConfirmed(
            deposit_id=int(args["depositId"]),
            beneficiary=str(args["beneficiary"]),
            block_number=block_number,
            tx_hash=tx_hash,
        )
    elif event_name == "AutoReleaseExecuted":
        return AutoReleaseExecuted(
            deposit_id=int(args["depositId"]),
            depositor=str(args["depositor"]),
            block_number=block_number,
            tx_hash=tx_hash,
        )
    elif event_name == "DisputeRaised":
        return DisputeRaised(
            deposit_id=int(args["depositId"]),
            beneficiary=str(args["beneficiary"]),
            claimed_amount=int(args["claimedAmount"]),
            evidence_hash=str(args["evidenceHash"]),
            block_number=block_number,
            tx_hash=tx_hash,
            block_timestamp=int(block_timestamp or 0),
        )
    elif event_name == "DepositorResponded":
        return DepositorResponded(
            deposit_id=int(args["depositId"]),
            depositor=str(args["depositor"]),
            response_hash=str(args["responseHash"]),
            block_number=block_number,
        )
    elif event_name == "ResolverDecision":
        return ResolverDecision(
            deposit_id=int(args["depositId"]),
            resolver=str(args["resolver"]),
            amount_to_depositor=int(args["amountToDepositor"]),
            amount_to_beneficiary=int(args["amountToBeneficiary"]),
            block_number=block_number,
        )
    elif event_name == "DisputeTimeout":
        return DisputeTimeout(
            deposit_id=int(args["depositId"]),
            depositor=str(args["depositor"]),
            amount=int(args["amount"]),
            block_number=block_number,
        )
    raise ValueError(f"unknown event {event_name!r}")


class EventRouter:
    """Routes each contract event type to its projector.

    Every event name gets its own subscription. Each delivered batch is
    handled as an independent asyncio task: the subscription never waits
    for a handler, and a failing handler never affects the others.

    Only the first log of a batch is processed and logs without decoded
    arguments are skipped.
    """

    def __init__(
        self,
        source: LogSource,
        deposits: DepositProjector,
        disputes: DisputeProjector,
    ) -> None:
        self._source = source
        self._handlers: dict[str, Callable[[Any], Awaitable[None]]] = {
            "DepositCreated": deposits.on_deposit_created,
            "DepositPaid": deposits.on_deposit_paid,
            "CleanExitConfirmed": deposits.on_clean_exit_confirmed,
            "AutoReleaseExecuted": deposits.on_auto_release_executed,
            "DisputeRaised": disputes.on_dispute_raised,
            "DepositorResponded": disputes.on_depositor_responded,
            "ResolverDecision": disputes.on_resolver_decision,
            "DisputeTimeout": disputes.on_dispute_timeout,
        }
        self._subscriptions: list[EventSubscription] = []
        self._tasks: set[asyncio.Task] = set()

    @property
    def subscriptions(self) -> list[EventSubscription]:
        return list(self._subscriptions)

    @property
    def pending(self) -> int:
        """Number of handler tasks still in flight."""
        return len(self._tasks)

    # ── Lifecycle ──────────────────────────────────────────

    async def start(self) -> None:
        log.debug("Starting to watch escrow events...")
        for event_name in EVENT_NAMES:
            sub = self._source.subscribe(
                event_name,
                partial(self._on_logs, event_name),
                partial(self._on_error, event_name),
            )
            await sub.start()
            self._subscriptions.append(sub)
        log.info("Event listeners started (%d subscriptions)", len(self._subscriptions))

    async def stop(self) -> None:
        for sub in self._subscriptions:
            await sub.stop()
        self._subscriptions.clear()
        await self.drain()
        log.info("Event listeners stopped")

    async def drain(self) -> None:
        """Wait for every in-flight handler task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ── Subscription callbacks ─────────────────────────────

    def _on_logs(self, event_name: str, logs: list[ChainLog]) -> None:
        if not logs:
            return
        if len(logs) > 1:
            log.debug("%s batch of %d logs, processing the first only", event_name, len(logs))

        first = logs[0]
        if first.args is None:
            log.debug("Skipping %s log without decoded args (tx %s)", event_name, first.tx_hash)
            return

        self._spawn(
            event_name,
            self.on_event(event_name, first.args, first.block_number, first.tx_hash),
        )

    def _on_error(self, event_name: str, exc: Exception) -> None:
        log.error("Error watching %s: %s", event_name, exc)

    # ── Dispatch ───────────────────────────────────────────

    async def on_event(
        self,
        event_name: str,
        args: Mapping[str, Any],
        block_number: int,
        tx_hash: str,
        block_timestamp: int | None = None,
    ) -> None:
        """Decode one event and apply it through its projector.

        DisputeRaised without a block_timestamp triggers a block lookup.
        """
        handler = self._handlers.get(event_name)
        if handler is None:
            log.warning("No handler for event %s", event_name)
            return

        try:
            event = decode_event(event_name, args, block_number, tx_hash, block_timestamp)
        except (KeyError, TypeError, ValueError) as exc:
            log.debug("Skipping %s log with missing or invalid args: %s", event_name, exc)
            return

        if isinstance(event, DisputeRaised) and block_timestamp is None:
            try:
                block = await self._source.get_block(block_number)
            except Exception as exc:
                log.error(
                    "Failed to fetch block %d for DisputeRaised %d: %s",
                    block_number, event.deposit_id, exc,
                )
                return
            event = dataclasses.replace(event, block_timestamp=block.timestamp)

        await handler(event)

    def _spawn(self, event_name: str, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.create_task(coro, name=f"handle-{event_name}")
        self._tasks.add(task)
        task.add_done_callback(partial(self._task_done, event_name))
        return task

    def _task_done(self, event_name: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("%s handler failed: %s", event_name, exc, exc_info=exc)
