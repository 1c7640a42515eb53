"""Query API - read-only aggregator and FastAPI application."""

from escrow_indexer.api.app import create_app
from escrow_indexer.api.queries import EscrowQueries

__all__ = ["EscrowQueries", "create_app"]
