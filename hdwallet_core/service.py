"""
External wallet services.

The wallet core never performs I/O itself; it awaits a :class:`WalletService`
for balances, transaction history, address discovery and trust scores.
:class:`HttpWalletService` is the ``aiohttp`` implementation that talks to
a full node and a trust-score node over JSON/HTTP:

    POST {full_node}/balance                              {"addresses": [...]}
    POST {full_node}/transaction/addressTransactions/batch {"addresses": [...]}
    POST {full_node}/address                              {"addresses": [...]}
    POST {trust_score}/usertrustscore                     {"userHash", "networkType", "signature"}

Usage::

    async with HttpWalletService.from_config(cfg) as service:
        wallet = Wallet(seed=seed, service=service)
        await wallet.auto_discover_addresses()
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import aiohttp

from hdwallet_core.address import BaseAddress
from hdwallet_core.errors import ServiceResponseError
from hdwallet_core.precision import to_decimal
from hdwallet_core.transaction import TransactionData

if TYPE_CHECKING:
    from hdwallet_core.config import HDWalletConfig
    from hdwallet_core.wallet import BaseWallet, IndexedWallet

log = logging.getLogger("hdwallet_core.service")

DEFAULT_TIMEOUT = 30.0
DEFAULT_DISCOVERY_BATCH = 20


@dataclass(frozen=True)
class BalanceSnapshot:
    """Balance and pre-balance of one address as reported by the node."""
    balance: Decimal
    pre_balance: Decimal

    @classmethod
    def from_dict(cls, data: dict) -> BalanceSnapshot:
        try:
            balance = data.get("addressBalance", data.get("balance"))
            pre_balance = data.get("addressPreBalance", data.get("preBalance"))
            return cls(to_decimal(balance), to_decimal(pre_balance))
        except (AttributeError, ValueError) as exc:
            raise ServiceResponseError(f"Malformed balance entry: {data!r}") from exc


class WalletService(abc.ABC):
    """Interface to the services that hold the wallet's external truth."""

    @abc.abstractmethod
    async def check_balances(self, address_hexes: list[str],
                             wallet: BaseWallet) -> dict[str, BalanceSnapshot]:
        """Balance snapshot keyed by address hex."""

    @abc.abstractmethod
    async def get_transactions_history(self, address_hexes: list[str],
                                       wallet: BaseWallet) -> list[TransactionData]:
        """Every transaction touching any of *address_hexes*."""

    @abc.abstractmethod
    async def get_addresses_of_wallet(self, wallet: IndexedWallet) -> list[BaseAddress]:
        """Addresses currently known to belong to *wallet*."""

    @abc.abstractmethod
    async def get_user_trust_score(self, wallet: IndexedWallet) -> dict:
        """Raw response; ``{"data": {"trustScore": ...}}`` on success."""


class HttpWalletService(WalletService):
    """JSON/HTTP client for a full node and a trust-score node."""

    def __init__(
        self,
        full_node_url: str,
        trust_score_url: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        discovery_batch_size: int = DEFAULT_DISCOVERY_BATCH,
        max_gap_batches: int = 1,
        session: aiohttp.ClientSession | None = None,
    ):
        if discovery_batch_size < 1:
            raise ValueError("discovery_batch_size must be at least 1")
        if max_gap_batches < 1:
            raise ValueError("max_gap_batches must be at least 1")
        self.full_node_url = full_node_url.rstrip("/")
        self.trust_score_url = trust_score_url.rstrip("/")
        self.timeout = timeout
        self.discovery_batch_size = discovery_batch_size
        self.max_gap_batches = max_gap_batches
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, cfg: HDWalletConfig) -> HttpWalletService:
        return cls(
            full_node_url=cfg.network.full_node_url,
            trust_score_url=cfg.network.trust_score_url,
            timeout=cfg.network.request_timeout,
            discovery_batch_size=cfg.discovery.batch_size,
            max_gap_batches=cfg.discovery.max_gap_batches,
        )

    # ---- session lifecycle ----

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> HttpWalletService:
        self._get_session()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _post(self, url: str, payload: dict) -> dict:
        session = self._get_session()
        async with session.post(url, json=payload) as resp:
            if resp.status >= 400:
                text = await resp.text()
                raise ServiceResponseError(f"{url} returned HTTP {resp.status}: {text[:200]}")
            try:
                body = await resp.json(content_type=None)
            except ValueError as exc:
                raise ServiceResponseError(f"{url} returned a non-JSON body") from exc
        if not isinstance(body, dict):
            raise ServiceResponseError(f"{url} returned {type(body).__name__}, expected an object")
        return body

    # ---- WalletService ----

    async def check_balances(self, address_hexes: list[str],
                             wallet: BaseWallet) -> dict[str, BalanceSnapshot]:
        body = await self._post(f"{self.full_node_url}/balance", {"addresses": address_hexes})
        balances = body.get("addressesBalance")
        if not isinstance(balances, dict):
            raise ServiceResponseError("Balance response has no addressesBalance object")
        return {hex_: BalanceSnapshot.from_dict(entry) for hex_, entry in balances.items()}

    async def get_transactions_history(self, address_hexes: list[str],
                                       wallet: BaseWallet) -> list[TransactionData]:
        body = await self._post(
            f"{self.full_node_url}/transaction/addressTransactions/batch",
            {"addresses": address_hexes},
        )
        records = body.get("transactionsData", [])
        if not isinstance(records, list):
            raise ServiceResponseError("History response transactionsData is not a list")
        try:
            transactions = [TransactionData.from_dict(r) for r in records]
        except (TypeError, ValueError) as exc:
            raise ServiceResponseError(f"Malformed transaction record: {exc}") from exc
        # The batch endpoint repeats a transaction once per matching address.
        return list({tx.hash: tx for tx in transactions}.values())

    async def get_addresses_of_wallet(self, wallet: IndexedWallet) -> list[BaseAddress]:
        """
        Scan indices from 0 in batches, keeping addresses the node knows.

        Scanning stops after ``max_gap_batches`` consecutive batches with
        no known address.  Addresses are derived but not cached here; the
        caller's balance reconciliation inserts them.
        """
        found: list[BaseAddress] = []
        next_index = 0
        empty_batches = 0
        while empty_batches < self.max_gap_batches:
            batch = [
                await wallet.generate_address_by_index(i)
                for i in range(next_index, next_index + self.discovery_batch_size)
            ]
            next_index += self.discovery_batch_size
            body = await self._post(
                f"{self.full_node_url}/address",
                {"addresses": [a.address_hex for a in batch]},
            )
            existing = body.get("addresses")
            if not isinstance(existing, dict):
                raise ServiceResponseError("Address response has no addresses object")
            hits = [a for a in batch if existing.get(a.address_hex)]
            log.debug("Discovery batch ending at index %d: %d known", next_index - 1, len(hits))
            if hits:
                found.extend(hits)
                empty_batches = 0
            else:
                empty_batches += 1
        return found

    async def get_user_trust_score(self, wallet: IndexedWallet) -> dict:
        if not self.trust_score_url:
            raise ServiceResponseError("No trust score URL configured")
        user_hash = wallet.get_public_hash()
        signature = await wallet.sign_message(bytes.fromhex(user_hash))
        payload: dict[str, Any] = {
            "userHash": user_hash,
            "networkType": wallet.get_network().value,
            "signature": signature.to_dict(),
        }
        return await self._post(f"{self.trust_score_url}/usertrustscore", payload)
