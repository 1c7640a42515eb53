"""Full dispute flow driven through the router's push interface."""

from __future__ import annotations

from escrow_indexer.models.records import DepositStatus

from tests.factories import BENEFICIARY, DEPOSITOR, RESOLVER, deposit_created_args


async def test_created_paid_disputed_responded_resolved(router, store, api_client):
    """The dispute path ends RESOLVED with the response recorded."""
    await router.on_event(
        "DepositCreated",
        deposit_created_args(deposit_id=1, depositAmount=1_000_000),
        block_number=100,
        tx_hash="0x01",
    )
    await router.on_event(
        "DepositPaid", {"depositId": 1, "depositor": DEPOSITOR},
        block_number=101, tx_hash="0x02",
    )
    await router.on_event(
        "DisputeRaised",
        {
            "depositId": 1,
            "beneficiary": BENEFICIARY,
            "claimedAmount": 300_000,
            "evidenceHash": "ipfs://Qm1",
        },
        block_number=102,
        tx_hash="0x03",
        block_timestamp=1_700_000_000,
    )
    await router.on_event(
        "DepositorResponded",
        {"depositId": 1, "depositor": DEPOSITOR, "responseHash": "ipfs://Qm2"},
        block_number=103,
        tx_hash="0x04",
    )
    await router.on_event(
        "ResolverDecision",
        {
            "depositId": 1,
            "resolver": RESOLVER,
            "amountToDepositor": 700_000,
            "amountToBeneficiary": 300_000,
        },
        block_number=104,
        tx_hash="0x05",
    )

    deposit = await store.get_deposit(1)
    assert deposit.status == DepositStatus.RESOLVED
    dispute = await store.get_dispute(deposit.id)
    assert dispute.claimed_amount == 300_000
    assert dispute.response_hash == "ipfs://Qm2"
    assert dispute.depositor_responded is True

    resp = await api_client.get("/deposits/1")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "RESOLVED"
    assert body["depositAmount"] == "1000000"
    assert body["dispute"]["claimedAmount"] == "300000"
    assert body["dispute"]["responseHash"] == "ipfs://Qm2"
    assert body["dispute"]["depositorResponded"] is True
