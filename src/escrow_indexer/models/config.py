"""Configuration models for the indexer."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ApiConfig:
    """Read-only query API settings."""

    host: str = "127.0.0.1"
    port: int = 3001
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])


@dataclass
class IndexerConfig:
    """Complete indexer configuration."""

    # Indexer
    poll_interval: int = 4  # seconds between eth_getLogs polls
    error_backoff: int = 10  # seconds
    log_level: str = "info"

    # Chain
    network: str = "polygon-amoy"
    rpc_url: str = ""
    contract_address: str = ""  # DepositEscrow address
    start_block: int | None = None  # None: start from the chain head
    confirmations: int = 0
    max_block_range: int = 2000  # blocks per eth_getLogs window
    abi_path: str = ""  # deployed ABI or artifact; bundled events ABI if empty

    # Storage
    db_path: str = "~/.escrow_indexer/indexer.db"

    # Query API
    api: ApiConfig = field(default_factory=ApiConfig)
