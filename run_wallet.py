#!/usr/bin/env python3
"""
Wallet sync runner — builds a wallet from a seed, then:
  - auto-discovers the wallet's addresses on the full node
  - reconciles their balances
  - merges the transaction history
  - optionally fetches the user trust score
and prints a JSON summary.

Usage:
    python run_wallet.py --seed <64-char seed> --config hdwallet.toml
    python run_wallet.py --user-secret s3cret --server-key 0x1f2e... --trust-score

Environment variables (alternative to flags):
    HDWALLET_SEED, HDWALLET_USER_SECRET, HDWALLET_SERVER_KEY, plus every
    HDWALLET_* variable understood by hdwallet_core.config
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import os
import sys

import aiohttp

# ---------------------------------------------------------------------------
# Ensure the project root is in sys.path so imports work before pip install
# ---------------------------------------------------------------------------
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from hdwallet_core.config import HDWalletConfig, load_config  # noqa: E402
from hdwallet_core.errors import WalletError  # noqa: E402
from hdwallet_core.logging_config import (  # noqa: E402
    setup_logging_from_config,
    wallet_logger,
)
from hdwallet_core.precision import format_amount  # noqa: E402
from hdwallet_core.service import HttpWalletService  # noqa: E402
from hdwallet_core.wallet import Wallet  # noqa: E402


def parse_args(argv: list[str] | None = None):
    p = argparse.ArgumentParser(description="HD wallet sync")
    p.add_argument("--config", default=None, help="Path to hdwallet.toml config file")
    p.add_argument("--seed", default=os.environ.get("HDWALLET_SEED", ""),
                   help="64-character wallet seed")
    p.add_argument("--user-secret", default=os.environ.get("HDWALLET_USER_SECRET", ""),
                   help="User secret (used with --server-key)")
    p.add_argument("--server-key", default=os.environ.get("HDWALLET_SERVER_KEY", ""),
                   help="Server key as an integer (decimal or 0x-prefixed hex)")
    p.add_argument("--network", default=None, choices=["mainnet", "testnet"],
                   help="Override the configured network")
    p.add_argument("--trust-score", action="store_true",
                   help="Also fetch the user trust score")
    return p.parse_args(argv)


def build_wallet(args, cfg: HDWalletConfig, service: HttpWalletService) -> Wallet:
    if args.seed:
        wallet = Wallet(seed=args.seed, network=cfg.network.network, service=service)
    else:
        server_key = int(args.server_key, 0) if args.server_key else None
        wallet = Wallet(
            user_secret=args.user_secret or None,
            server_key=server_key,
            network=cfg.network.network,
            service=service,
        )
    wallet.log = wallet_logger(wallet.get_public_hash(), wallet.get_network().value)
    return wallet


async def sync(args, cfg: HDWalletConfig) -> dict:
    async with HttpWalletService.from_config(cfg) as service:
        wallet = build_wallet(args, cfg, service)
        await wallet.auto_discover_addresses()
        await wallet.get_transaction_history()
        total = wallet.get_total_balance()
        wallet.log.info("Total balance %s", format_amount(total.balance))
        summary = {
            "public_hash": wallet.get_public_hash(),
            "network": wallet.get_network().value,
            "addresses": [a.to_dict() for a in wallet.get_address_map().values()],
            "transactions": len(wallet.transaction_map),
            "total": total.to_dict(),
        }
        if args.trust_score:
            summary["trust_score"] = await wallet.get_user_trust_score()
        return summary


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    cfg = load_config(args.config)
    if args.network:
        cfg.network.network = args.network
    logger = setup_logging_from_config(cfg.logging)

    try:
        summary = await sync(args, cfg)
    except (WalletError, ValueError, aiohttp.ClientError) as exc:
        logger.error("Wallet sync failed: %s", exc)
        return 1
    print(json.dumps(summary, indent=2))
    return 0


def main_sync():
    """Synchronous entry point for console_scripts."""
    with contextlib.suppress(KeyboardInterrupt):
        sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    main_sync()
