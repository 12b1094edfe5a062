"""
Shared pytest fixtures for the hdwallet-core test suite.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from hdwallet_core.service import BalanceSnapshot, WalletService
from hdwallet_core.transaction import TransactionData
from hdwallet_core.wallet import Wallet

SEED = "5f3a" * 16


class FakeWalletService(WalletService):
    """In-memory stand-in for the full node and trust-score node."""

    def __init__(self):
        self.balances: dict[str, BalanceSnapshot] = {}
        self.transactions: list[TransactionData] = []
        self.discovered: list = []
        self.trust_score_response: dict = {"data": {"trustScore": 42.5}}
        self.balance_requests: list[list[str]] = []
        self.history_requests: list[list[str]] = []

    def set_balance(self, address_hex: str, balance, pre_balance) -> None:
        self.balances[address_hex] = BalanceSnapshot(
            Decimal(str(balance)), Decimal(str(pre_balance))
        )

    async def check_balances(self, address_hexes, wallet):
        self.balance_requests.append(list(address_hexes))
        return {h: self.balances[h] for h in address_hexes if h in self.balances}

    async def get_transactions_history(self, address_hexes, wallet):
        self.history_requests.append(list(address_hexes))
        return list(self.transactions)

    async def get_addresses_of_wallet(self, wallet):
        return list(self.discovered)

    async def get_user_trust_score(self, wallet):
        return self.trust_score_response


@pytest.fixture
def service():
    """Fresh in-memory wallet service."""
    return FakeWalletService()


@pytest.fixture
def wallet(service):
    """Seeded wallet wired to the fake service."""
    return Wallet(seed=SEED, service=service)


@pytest.fixture
def make_tx():
    """Factory for TransactionData with a given hash and consensus time."""
    def _make(tx_hash: str, consensus_time=100, create_time=50, **extra):
        return TransactionData(
            hash=tx_hash,
            create_time=create_time,
            transaction_consensus_update_time=consensus_time,
            **extra,
        )
    return _make
