"""DepositEscrow event ABI and helpers for topic computation."""

from __future__ import annotations

import json
from pathlib import Path

from web3 import Web3


def _event(name: str, *inputs: tuple[str, str, bool]) -> dict:
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [
            {"name": arg, "type": typ, "indexed": indexed}
            for arg, typ, indexed in inputs
        ],
    }


# Event fragments of the deployed contract. Only events are needed to decode logs.
DEPOSIT_ESCROW_ABI: list[dict] = [
    _event(
        "DepositCreated",
        ("depositId", "uint256", True),
        ("depositor", "address", True),
        ("beneficiary", "address", True),
        ("depositAmount", "uint256", False),
        ("periodStart", "uint256", False),
        ("periodEnd", "uint256", False),
        ("autoReleaseTime", "uint256", False),
    ),
    _event(
        "DepositPaid",
        ("depositId", "uint256", True),
        ("depositor", "address", True),
    ),
    _event(
        "CleanExitConfirmed",
        ("depositId", "uint256", True),
        ("beneficiary", "address", True),
    ),
    _event(
        "AutoReleaseExecuted",
        ("depositId", "uint256", True),
        ("depositor", "address", True),
    ),
    _event(
        "DisputeRaised",
        ("depositId", "uint256", True),
        ("beneficiary", "address", True),
        ("claimedAmount", "uint256", False),
        ("evidenceHash", "string", False),
    ),
    _event(
        "DepositorResponded",
        ("depositId", "uint256", True),
        ("depositor", "address", True),
        ("responseHash", "string", False),
    ),
    _event(
        "ResolverDecision",
        ("depositId", "uint256", True),
        ("resolver", "address", True),
        ("amountToDepositor", "uint256", False),
        ("amountToBeneficiary", "uint256", False),
    ),
    _event(
        "DisputeTimeout",
        ("depositId", "uint256", True),
        ("depositor", "address", True),
        ("amount", "uint256", False),
    ),
]


def load_abi(path: str | Path) -> list[dict]:
    """Load an ABI from a raw JSON array or a Hardhat/Foundry artifact."""
    with open(Path(path).expanduser(), encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict) and "abi" in data:
        return data["abi"]
    return data


def event_signature(abi: list[dict], event_name: str) -> str:
    """Canonical signature, e.g. 'DepositPaid(uint256,address)'."""
    for item in abi:
        if item.get("type") == "event" and item.get("name") == event_name:
            types = ",".join(inp["type"] for inp in item.get("inputs", []))
            return f"{event_name}({types})"
    raise KeyError(f"event {event_name!r} not in ABI")


def event_topic(abi: list[dict], event_name: str) -> str:
    """topic0 of an event as a 0x-prefixed hex string."""
    return Web3.to_hex(Web3.keccak(text=event_signature(abi, event_name)))
