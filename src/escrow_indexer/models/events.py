"""Contract event models decoded from DepositEscrow logs."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DepositCreated:
    """Emitted when a beneficiary opens a deposit for a depositor."""

    deposit_id: int
    depositor: str  # EVM address
    beneficiary: str
    deposit_amount: int  # smallest token unit
    period_start: int  # unix seconds
    period_end: int
    auto_release_time: int
    block_number: int


@dataclass(frozen=True)
class DepositPaid:
    """Emitted when the depositor funds the escrow."""

    deposit_id: int
    depositor: str
    block_number: int


@dataclass(frozen=True)
class CleanExitConfirmed:
    """Emitted when the beneficiary releases the full deposit without dispute."""

    deposit_id: int
    beneficiary: str
    block_number: int
    tx_hash: str


@dataclass(frozen=True)
class AutoReleaseExecuted:
    """Emitted when the auto-release deadline passed without a dispute."""

    deposit_id: int
    depositor: str
    block_number: int
    tx_hash: str


@dataclass(frozen=True)
class DisputeRaised:
    """Emitted when the beneficiary claims part of the deposit.

    block_timestamp is not part of the log; the router fills it in from
    the block header before dispatching.
    """

    deposit_id: int
    beneficiary: str
    claimed_amount: int
    evidence_hash: str
    block_number: int
    tx_hash: str
    block_timestamp: int  # unix seconds


@dataclass(frozen=True)
class DepositorResponded:
    """Emitted when the depositor answers an open dispute."""

    deposit_id: int
    depositor: str
    response_hash: str
    block_number: int


@dataclass(frozen=True)
class ResolverDecision:
    """Emitted when the resolver splits a disputed deposit."""

    deposit_id: int
    resolver: str
    amount_to_depositor: int
    amount_to_beneficiary: int
    block_number: int


@dataclass(frozen=True)
class DisputeTimeout:
    """Emitted when the dispute window closed without a decision."""

    deposit_id: int
    depositor: str
    amount: int
    block_number: int


@dataclass(frozen=True)
class ChainLog:
    """A log as delivered by the log source, before typed decoding.

    args is None when the log could not be decoded against the ABI.
    """

    event_name: str
    args: dict | None
    block_number: int
    tx_hash: str
    log_index: int = 0
