"""Internal record types for the projected read model."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DepositStatus(str, Enum):
    """Deposit lifecycle. RESOLVED and COMPLETED are terminal."""

    WAITING_FOR_DEPOSIT = "WAITING_FOR_DEPOSIT"
    ACTIVE = "ACTIVE"
    DISPUTED = "DISPUTED"
    RESOLVED = "RESOLVED"  # dispute decided or timed out
    COMPLETED = "COMPLETED"  # clean exit or auto-release


@dataclass
class UserRecord:
    """A wallet address seen as depositor or beneficiary."""

    wallet_address: str
    created_at: str = ""


@dataclass
class DepositRecord:
    """A deposit as persisted in the entity store."""

    id: int
    on_chain_id: str  # decimal string, up to uint256
    depositor_address: str
    beneficiary_address: str
    deposit_amount: int
    period_start: str  # ISO 8601
    period_end: str
    auto_release_time: str
    status: DepositStatus
    created_at: str = ""
    updated_at: str = ""


@dataclass
class DisputeRecord:
    """The dispute attached to a deposit. Kept after resolution."""

    id: int
    deposit_id: int  # surrogate key of the owning deposit
    claimed_amount: int
    evidence_hash: str
    dispute_start_time: str  # ISO 8601
    dispute_deadline: str
    depositor_responded: bool = False
    response_hash: str | None = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class BlockInfo:
    """The subset of a block header the router needs."""

    number: int
    timestamp: int  # unix seconds


@dataclass
class SyncCursor:
    """Last block fully delivered for one event subscription."""

    event_name: str
    last_block: int
    updated_at: str = ""
