"""Protocol interfaces for escrow_indexer components."""

from escrow_indexer.interfaces.source import (
    ErrorHandler,
    EventSubscription,
    LogSource,
    LogsHandler,
)
from escrow_indexer.interfaces.store import EntityStore

__all__ = [
    "EntityStore",
    "ErrorHandler", "EventSubscription", "LogSource", "LogsHandler",
]
