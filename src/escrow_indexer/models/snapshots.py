"""JSON-serializable snapshot models served by the query API.

Keys are camelCase and big integers are decimal strings, the shape the
web client reads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class UserSnapshot:
    wallet_address: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {"walletAddress": self.wallet_address, "createdAt": self.created_at}


@dataclass
class DisputeSnapshot:
    id: int
    deposit_id: int
    claimed_amount: str
    evidence_hash: str
    dispute_start_time: str
    dispute_deadline: str
    depositor_responded: bool
    response_hash: str | None
    created_at: str
    updated_at: str
    deposit: DepositSnapshot | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "depositId": self.deposit_id,
            "claimedAmount": self.claimed_amount,
            "evidenceHash": self.evidence_hash,
            "disputeStartTime": self.dispute_start_time,
            "disputeDeadline": self.dispute_deadline,
            "depositorResponded": self.depositor_responded,
            "responseHash": self.response_hash,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.deposit is not None:
            data["deposit"] = self.deposit.to_dict()
        return data


@dataclass
class DepositSnapshot:
    id: int
    on_chain_id: str
    depositor_address: str
    beneficiary_address: str
    deposit_amount: str
    period_start: str
    period_end: str
    auto_release_time: str
    status: str
    created_at: str
    updated_at: str
    dispute: DisputeSnapshot | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "onChainId": self.on_chain_id,
            "depositorAddress": self.depositor_address,
            "beneficiaryAddress": self.beneficiary_address,
            "depositAmount": self.deposit_amount,
            "periodStart": self.period_start,
            "periodEnd": self.period_end,
            "autoReleaseTime": self.auto_release_time,
            "status": self.status,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "dispute": self.dispute.to_dict() if self.dispute else None,
        }
