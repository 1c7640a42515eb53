"""Shared fixtures for escrow_indexer tests."""

from __future__ import annotations

import httpx
import pytest
from pytest_metadata.plugin import metadata_key

from escrow_indexer.api.app import create_app
from escrow_indexer.api.queries import EscrowQueries
from escrow_indexer.chain.router import EventRouter
from escrow_indexer.models.config import IndexerConfig
from escrow_indexer.projection.deposits import DepositProjector
from escrow_indexer.projection.disputes import DisputeProjector
from escrow_indexer.storage.sqlite import SQLiteEntityStore

from tests.factories import BENEFICIARY, DEPOSITOR
from tests.mocks import MockLogSource

CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
RPC_URL = "http://127.0.0.1:8545"


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add chain info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Network"] = "Local (mocked log source)"
    meta["DepositEscrow Contract"] = CONTRACT_ADDRESS
    meta["Depositor Account"] = DEPOSITOR
    meta["Beneficiary Account"] = BENEFICIARY


def pytest_html_results_summary(prefix, summary, postfix):
    """Show the contract under test at the top of the HTML report."""
    prefix.append(
        '<div style="margin:8px 0;padding:10px;background:#f8f9fa;border:1px solid #dee2e6;'
        'border-radius:4px;font-family:monospace;font-size:13px;">'
        "<strong>DepositEscrow</strong><br/>"
        f"Contract: {CONTRACT_ADDRESS}<br/>"
        f"RPC: {RPC_URL}"
        "</div>"
    )


def make_test_config(**overrides) -> IndexerConfig:
    """Build an IndexerConfig suitable for testing."""
    defaults = dict(
        poll_interval=1,
        error_backoff=1,
        network="local",
        rpc_url=RPC_URL,
        contract_address=CONTRACT_ADDRESS,
        start_block=0,
        db_path=":memory:",
    )
    defaults.update(overrides)
    return IndexerConfig(**defaults)


@pytest.fixture
def test_config():
    """Default IndexerConfig for tests."""
    return make_test_config()


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteEntityStore."""
    s = SQLiteEntityStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def deposits(store):
    return DepositProjector(store)


@pytest.fixture
def disputes(store):
    return DisputeProjector(store)


@pytest.fixture
def source():
    return MockLogSource()


@pytest.fixture
async def router(source, deposits, disputes):
    """Started EventRouter over the mock log source."""
    r = EventRouter(source, deposits, disputes)
    await r.start()
    yield r
    await r.stop()


@pytest.fixture
def queries(store):
    return EscrowQueries(store)


@pytest.fixture
async def api_client(store):
    """HTTP client bound to the query API over the shared store."""
    app = create_app(store=store)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
