"""
TOML-based configuration for the wallet core.

Loads settings from a TOML file and/or environment variables.
Environment variables take precedence over file values.

Usage:
    from hdwallet_core.config import load_config
    cfg = load_config("hdwallet.toml")
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


@dataclass
class NetworkConfig:
    """Which network the wallet belongs to and where its services live."""
    network: str = "mainnet"          # "mainnet" or "testnet"
    full_node_url: str = "http://127.0.0.1:7070"
    trust_score_url: str = "http://127.0.0.1:7080"
    request_timeout: float = 30.0     # seconds per HTTP request


@dataclass
class DiscoveryConfig:
    """Index scanning used by address auto-discovery."""
    batch_size: int = 20
    # Consecutive batches with no known address before scanning stops.
    max_gap_batches: int = 1


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "human"   # "human" or "json"
    file: str | None = None


@dataclass
class HDWalletConfig:
    """Top-level configuration container."""
    network: NetworkConfig = field(default_factory=NetworkConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _merge(dc: Any, raw: dict[str, Any]) -> None:
    """Merge a raw dict into a dataclass instance (in-place)."""
    for key, value in raw.items():
        key_under = key.replace("-", "_")
        if hasattr(dc, key_under):
            setattr(dc, key_under, value)


def _validate(cfg: HDWalletConfig) -> None:
    if cfg.network.network not in ("mainnet", "testnet"):
        raise ValueError(f"network must be 'mainnet' or 'testnet', got {cfg.network.network!r}")
    if cfg.network.request_timeout <= 0:
        raise ValueError("request_timeout must be positive")
    if cfg.discovery.batch_size < 1:
        raise ValueError("discovery batch_size must be at least 1")
    if cfg.discovery.max_gap_batches < 1:
        raise ValueError("discovery max_gap_batches must be at least 1")


def load_config(path: str | None = None) -> HDWalletConfig:
    """
    Load configuration from a TOML file, then overlay environment variables.

    Env-var mapping:
        HDWALLET_NETWORK          -> network.network
        HDWALLET_FULL_NODE_URL    -> network.full_node_url
        HDWALLET_TRUST_SCORE_URL  -> network.trust_score_url
        HDWALLET_TIMEOUT          -> network.request_timeout
        HDWALLET_DISCOVERY_BATCH  -> discovery.batch_size
        HDWALLET_LOG_LEVEL        -> logging.level
        HDWALLET_LOG_FMT          -> logging.format
        HDWALLET_LOG_FILE         -> logging.file
    """
    cfg = HDWalletConfig()

    # ── TOML file ────────────────────────────────────────────────
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            for section_name, section_dc in [
                ("network", cfg.network),
                ("discovery", cfg.discovery),
                ("logging", cfg.logging),
            ]:
                if section_name in data:
                    _merge(section_dc, data[section_name])

    # ── Environment variable overrides ───────────────────────────
    if v := os.environ.get("HDWALLET_NETWORK"):
        cfg.network.network = v.lower()
    if v := os.environ.get("HDWALLET_FULL_NODE_URL"):
        cfg.network.full_node_url = v
    if v := os.environ.get("HDWALLET_TRUST_SCORE_URL"):
        cfg.network.trust_score_url = v
    if v := os.environ.get("HDWALLET_TIMEOUT"):
        cfg.network.request_timeout = float(v)
    if v := os.environ.get("HDWALLET_DISCOVERY_BATCH"):
        cfg.discovery.batch_size = int(v)
    if v := os.environ.get("HDWALLET_LOG_LEVEL"):
        cfg.logging.level = v.upper()
    if v := os.environ.get("HDWALLET_LOG_FMT"):
        cfg.logging.format = v
    if v := os.environ.get("HDWALLET_LOG_FILE"):
        cfg.logging.file = v

    _validate(cfg)
    return cfg
