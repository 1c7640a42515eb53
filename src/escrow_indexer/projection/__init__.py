"""Event-to-state projection: deposit and dispute state machines."""

from escrow_indexer.projection.deposits import DepositProjector
from escrow_indexer.projection.disputes import DISPUTE_WINDOW, DisputeProjector, dispute_deadline
from escrow_indexer.projection.transitions import TRANSITIONS, can_transition

__all__ = [
    "DepositProjector",
    "DisputeProjector", "DISPUTE_WINDOW", "dispute_deadline",
    "TRANSITIONS", "can_transition",
]
