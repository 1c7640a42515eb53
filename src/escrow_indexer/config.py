"""Configuration loading: TOML file + environment variables + deployments.json."""

from __future__ import annotations

import json
import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from escrow_indexer.models.config import ApiConfig, IndexerConfig


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "ESCROW_INDEXER_",
) -> IndexerConfig:
    """Load indexer configuration from TOML file, env vars, and deployments.json.

    Priority (highest wins):
        1. Environment variables (ESCROW_INDEXER_RPC_URL, etc.)
        2. TOML config file
        3. Defaults from IndexerConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = IndexerConfig()

    # ── Indexer section ────────────────────────────────────
    indexer = raw.get("indexer", {})
    if v := indexer.get("poll_interval"):
        cfg.poll_interval = int(v)
    if v := indexer.get("error_backoff"):
        cfg.error_backoff = int(v)
    if v := indexer.get("log_level"):
        cfg.log_level = str(v)

    # ── Chain section ──────────────────────────────────────
    chain = raw.get("chain", {})
    if v := chain.get("network"):
        cfg.network = str(v)
    if v := chain.get("rpc_url"):
        cfg.rpc_url = str(v)
    if v := chain.get("contract_address"):
        cfg.contract_address = str(v)
    if (v := chain.get("start_block")) is not None:
        cfg.start_block = int(v)
    if v := chain.get("confirmations"):
        cfg.confirmations = int(v)
    if v := chain.get("max_block_range"):
        cfg.max_block_range = int(v)
    if v := chain.get("abi_path"):
        cfg.abi_path = str(v)

    # Contract address from deployments.json if not explicitly set
    if not cfg.contract_address:
        _load_deployments(cfg, chain.get("deployments_path", "deployments.json"))

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── API section ────────────────────────────────────────
    api_raw = raw.get("api", {})
    cfg.api = ApiConfig(
        host=api_raw.get("host", "127.0.0.1"),
        port=int(api_raw.get("port", 3001)),
        cors_origins=api_raw.get("cors_origins", ["http://localhost:3000"]),
    )

    # ── Environment variable overrides (highest priority) ──
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.rpc_url = rpc
    if addr := os.environ.get(f"{env_prefix}CONTRACT_ADDRESS"):
        cfg.contract_address = addr
    if db := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = db
    if start := os.environ.get(f"{env_prefix}START_BLOCK"):
        cfg.start_block = int(start)
    if port := os.environ.get(f"{env_prefix}API_PORT"):
        cfg.api.port = int(port)
    if level := os.environ.get(f"{env_prefix}LOG_LEVEL"):
        cfg.log_level = level

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())

    return cfg


def _load_deployments(cfg: IndexerConfig, deployments_path: str) -> None:
    """Load the DepositEscrow address from a deployments.json file."""
    p = Path(deployments_path).expanduser()
    if not p.is_absolute():
        # Try relative to CWD
        p = Path.cwd() / p
    if not p.exists():
        return

    with open(p) as f:
        data = json.load(f)

    escrow = data.get("DepositEscrow", {})
    if addr := escrow.get("address"):
        cfg.contract_address = addr
