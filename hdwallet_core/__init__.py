"""
hdwallet-core - in-memory wallet core for index-addressed HD accounts.

Key features:
- Deterministic secp256k1 address derivation by index
- Address / balance cache reconciled against external snapshots
- Transaction history deduplicated by hash and consensus-update time
- Push-only change notifications (balance, new address, transaction)
- aiohttp client for full-node and trust-score services
"""

__version__ = "0.3.0"
__all__ = [
    "address",
    "config",
    "crypto_utils",
    "derivation",
    "errors",
    "events",
    "logging_config",
    "precision",
    "service",
    "transaction",
    "wallet",
]
