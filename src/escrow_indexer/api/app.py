"""FastAPI application exposing the projected deposits, disputes and users."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any, AsyncIterator

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware

from escrow_indexer.api.queries import EscrowQueries
from escrow_indexer.storage.sqlite import SQLiteEntityStore

log = logging.getLogger(__name__)


def get_queries(request: Request) -> EscrowQueries:
    return request.app.state.queries


QueriesDep = Annotated[EscrowQueries, Depends(get_queries)]


def _parse_on_chain_id(value: str) -> str:
    if not (value.isascii() and value.isdigit()):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid on-chain id: {value}",
        )
    return value


# ── Deposits ───────────────────────────────────────────────

deposits_router = APIRouter(prefix="/deposits", tags=["deposits"])


@deposits_router.get("")
async def list_deposits(queries: QueriesDep) -> list[dict[str, Any]]:
    return [d.to_dict() for d in await queries.list_deposits()]


@deposits_router.get("/depositor/{address}")
async def deposits_by_depositor(address: str, queries: QueriesDep) -> list[dict[str, Any]]:
    return [d.to_dict() for d in await queries.deposits_by_depositor(address)]


@deposits_router.get("/beneficiary/{address}")
async def deposits_by_beneficiary(address: str, queries: QueriesDep) -> list[dict[str, Any]]:
    return [d.to_dict() for d in await queries.deposits_by_beneficiary(address)]


@deposits_router.get("/{on_chain_id}")
async def get_deposit(on_chain_id: str, queries: QueriesDep) -> dict[str, Any] | None:
    deposit = await queries.get_deposit(_parse_on_chain_id(on_chain_id))
    return deposit.to_dict() if deposit else None


# ── Disputes ───────────────────────────────────────────────

disputes_router = APIRouter(prefix="/disputes", tags=["disputes"])


@disputes_router.get("")
async def list_disputes(queries: QueriesDep) -> list[dict[str, Any]]:
    return [d.to_dict() for d in await queries.list_disputes()]


@disputes_router.get("/{on_chain_id}")
async def get_dispute(on_chain_id: str, queries: QueriesDep) -> dict[str, Any] | None:
    dispute = await queries.get_dispute(_parse_on_chain_id(on_chain_id))
    return dispute.to_dict() if dispute else None


# ── Users ──────────────────────────────────────────────────

users_router = APIRouter(prefix="/users", tags=["users"])


@users_router.get("/{address}")
async def get_user(address: str, queries: QueriesDep) -> dict[str, Any] | None:
    user = await queries.get_user(address)
    return user.to_dict() if user else None


@users_router.get("/{address}/deposits")
async def get_user_deposits(address: str, queries: QueriesDep) -> list[dict[str, Any]]:
    return [d.to_dict() for d in await queries.user_deposits(address)]


def create_app(
    store: SQLiteEntityStore | None = None,
    db_path: str | None = None,
    cors_origins: list[str] | None = None,
) -> FastAPI:
    """Build the query API.

    With an already initialized `store` the caller owns its lifecycle;
    otherwise a store is opened on `db_path` for the app's lifetime.
    """
    owns_store = store is None
    if store is None:
        if db_path is None:
            raise ValueError("create_app needs a store or a db_path")
        store = SQLiteEntityStore(db_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if owns_store:
            await store.initialize()
            log.info("Query API opened store %s", db_path)
        try:
            yield
        finally:
            if owns_store:
                await store.close()

    app = FastAPI(
        title="Escrow Indexer API",
        description="Read-only view of projected escrow deposits and disputes",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.queries = EscrowQueries(store)

    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=["GET"],
            allow_headers=["*"],
        )

    @app.get("/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(deposits_router)
    app.include_router(disputes_router)
    app.include_router(users_router)
    return app
