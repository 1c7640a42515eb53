"""CLI entry point for the escrow indexer."""

from __future__ import annotations

import asyncio
import logging
import sys

import click
import uvicorn

from escrow_indexer.api.app import create_app
from escrow_indexer.api.queries import EscrowQueries
from escrow_indexer.config import load_config
from escrow_indexer.daemon import run_daemon
from escrow_indexer.models.snapshots import DepositSnapshot
from escrow_indexer.storage.sqlite import SQLiteEntityStore


def _require_rpc(cfg):
    """Exit with error if no RPC endpoint is configured."""
    if not cfg.rpc_url:
        click.echo("Error: No RPC URL configured.", err=True)
        click.echo("Set ESCROW_INDEXER_RPC_URL or rpc_url in [chain].", err=True)
        sys.exit(1)


def _require_contract(cfg):
    """Exit with error if no contract address is configured."""
    if not cfg.contract_address:
        click.echo("Error: No contract address configured.", err=True)
        click.echo("Set ESCROW_INDEXER_CONTRACT_ADDRESS or check deployments.json.", err=True)
        sys.exit(1)


def _echo_deposit(d: DepositSnapshot) -> None:
    click.echo(
        f"  #{d.on_chain_id:<6} [{d.status:19s}] amount={d.deposit_amount} "
        f"depositor={d.depositor_address[:12]}... beneficiary={d.beneficiary_address[:12]}..."
    )


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """escrow-indexer - DepositEscrow event indexer and query API."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    cfg = load_config(config_path)
    ctx.obj["cfg"] = cfg

    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, cfg.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Indexer ────────────────────────────────────────────


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the event indexer."""
    cfg = ctx.obj["cfg"]
    _require_rpc(cfg)
    _require_contract(cfg)

    click.echo(f"Starting escrow indexer ({cfg.network})")
    asyncio.run(run_daemon(cfg))


@cli.command()
@click.option("--host", default=None, help="Bind address (overrides [api] host)")
@click.option("--port", type=int, default=None, help="Bind port (overrides [api] port)")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Serve the read-only query API."""
    cfg = ctx.obj["cfg"]
    app = create_app(db_path=cfg.db_path, cors_origins=cfg.api.cors_origins)
    uvicorn.run(
        app,
        host=host or cfg.api.host,
        port=port or cfg.api.port,
        log_level="debug" if ctx.obj["verbose"] else cfg.log_level.lower(),
    )


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show indexer configuration."""
    cfg = ctx.obj["cfg"]
    click.echo(f"Network:     {cfg.network}")
    click.echo(f"RPC URL:     {cfg.rpc_url or '(not set)'}")
    click.echo(f"Contract:    {cfg.contract_address or '(not set)'}")
    click.echo(f"ABI:         {cfg.abi_path or '(bundled)'}")
    click.echo(f"Start block: {cfg.start_block if cfg.start_block is not None else '(head)'}")
    click.echo(f"Poll:        {cfg.poll_interval}s (backoff {cfg.error_backoff}s)")
    click.echo(f"DB path:     {cfg.db_path}")
    click.echo(f"API:         http://{cfg.api.host}:{cfg.api.port}")


@cli.command()
@click.option("--depositor", default=None, help="Only deposits made by this address")
@click.option("--beneficiary", default=None, help="Only deposits payable to this address")
@click.pass_context
def deposits(ctx: click.Context, depositor: str | None, beneficiary: str | None) -> None:
    """List projected deposits."""
    cfg = ctx.obj["cfg"]
    if depositor and beneficiary:
        click.echo("Use either --depositor or --beneficiary, not both.", err=True)
        sys.exit(1)

    async def _deposits():
        store = SQLiteEntityStore(cfg.db_path)
        await store.initialize()
        try:
            queries = EscrowQueries(store)
            if depositor:
                rows = await queries.deposits_by_depositor(depositor)
            elif beneficiary:
                rows = await queries.deposits_by_beneficiary(beneficiary)
            else:
                rows = await queries.list_deposits()

            if not rows:
                click.echo("No deposits.")
                return

            for d in rows:
                _echo_deposit(d)
        finally:
            await store.close()

    asyncio.run(_deposits())


@cli.command()
@click.argument("on_chain_id")
@click.pass_context
def deposit(ctx: click.Context, on_chain_id: str) -> None:
    """Show one deposit and its dispute."""
    cfg = ctx.obj["cfg"]
    if not (on_chain_id.isascii() and on_chain_id.isdigit()):
        click.echo(f"Invalid on-chain id: {on_chain_id}", err=True)
        sys.exit(1)

    async def _deposit():
        store = SQLiteEntityStore(cfg.db_path)
        await store.initialize()
        try:
            d = await EscrowQueries(store).get_deposit(on_chain_id)
            if d is None:
                click.echo(f"Deposit {on_chain_id} not indexed.")
                return

            click.echo(f"Deposit #{d.on_chain_id}")
            click.echo(f"  Status:       {d.status}")
            click.echo(f"  Depositor:    {d.depositor_address}")
            click.echo(f"  Beneficiary:  {d.beneficiary_address}")
            click.echo(f"  Amount:       {d.deposit_amount}")
            click.echo(f"  Period:       {d.period_start} -> {d.period_end}")
            click.echo(f"  Auto release: {d.auto_release_time}")
            if d.dispute is not None:
                click.echo("")
                click.echo("Dispute")
                click.echo(f"  Claimed:      {d.dispute.claimed_amount}")
                click.echo(f"  Evidence:     {d.dispute.evidence_hash}")
                click.echo(f"  Started:      {d.dispute.dispute_start_time}")
                click.echo(f"  Deadline:     {d.dispute.dispute_deadline}")
                click.echo(f"  Responded:    {d.dispute.depositor_responded}")
                if d.dispute.response_hash:
                    click.echo(f"  Response:     {d.dispute.response_hash}")
        finally:
            await store.close()

    asyncio.run(_deposit())


@cli.command()
@click.pass_context
def cursors(ctx: click.Context) -> None:
    """Show per-event sync cursors."""
    cfg = ctx.obj["cfg"]

    async def _cursors():
        store = SQLiteEntityStore(cfg.db_path)
        await store.initialize()
        try:
            rows = await store.get_all_cursors()
            if not rows:
                click.echo("No cursors saved yet.")
                return

            for c in rows:
                click.echo(f"  {c.event_name:20s} block={c.last_block} at={c.updated_at}")
        finally:
            await store.close()

    asyncio.run(_cursors())


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
