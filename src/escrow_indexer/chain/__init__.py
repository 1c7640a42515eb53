"""EVM chain integration: event ABI, log source and event router."""

from escrow_indexer.chain.abi import DEPOSIT_ESCROW_ABI, load_abi
from escrow_indexer.chain.router import EVENT_NAMES, EventRouter, decode_event
from escrow_indexer.chain.watcher import Web3EventSubscription, Web3LogSource

__all__ = [
    "DEPOSIT_ESCROW_ABI", "load_abi",
    "EVENT_NAMES", "EventRouter", "decode_event",
    "Web3EventSubscription", "Web3LogSource",
]
