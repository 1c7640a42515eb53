"""Data models for the escrow_indexer service."""

from escrow_indexer.models.events import (
    ChainLog,
    AutoReleaseExecuted,
    CleanExitConfirmed,
    DepositCreated,
    DepositorResponded,
    DepositPaid,
    DisputeRaised,
    DisputeTimeout,
    ResolverDecision,
)
from escrow_indexer.models.records import (
    BlockInfo,
    DepositRecord,
    DepositStatus,
    DisputeRecord,
    SyncCursor,
    UserRecord,
)
from escrow_indexer.models.config import ApiConfig, IndexerConfig
from escrow_indexer.models.snapshots import DepositSnapshot, DisputeSnapshot, UserSnapshot

__all__ = [
    "ChainLog", "DepositCreated", "DepositPaid", "CleanExitConfirmed", "AutoReleaseExecuted",
    "DisputeRaised", "DepositorResponded", "ResolverDecision", "DisputeTimeout",
    "BlockInfo", "DepositRecord", "DepositStatus", "DisputeRecord", "SyncCursor",
    "UserRecord",
    "ApiConfig", "IndexerConfig",
    "DepositSnapshot", "DisputeSnapshot", "UserSnapshot",
]
