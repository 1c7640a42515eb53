"""LogSource protocol - per-event subscriptions to contract logs."""

from __future__ import annotations

from typing import Callable, Protocol

from escrow_indexer.models.events import ChainLog
from escrow_indexer.models.records import BlockInfo

LogsHandler = Callable[[list[ChainLog]], None]
ErrorHandler = Callable[[Exception], None]


class EventSubscription(Protocol):
    """A long-lived subscription to one contract event."""

    event_name: str

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...


class LogSource(Protocol):
    """Delivers contract logs, at least once and possibly out of order."""

    def subscribe(
        self, event_name: str, on_logs: LogsHandler, on_error: ErrorHandler
    ) -> EventSubscription:
        """Register handlers for one event. Delivery begins on start()."""
        ...

    async def get_block(self, block_number: int) -> BlockInfo:
        ...
