"""
Wallet stores for the HD wallet core.

Three layers:
  - ``BaseWallet``    — address and transaction caches, balance
                        reconciliation, transaction merge, change events
  - ``IndexedWallet`` — index -> address lookup, lazy derivation, variant
                        guard on every insert
  - ``Wallet``        — binds a seed to an ``EcdsaDerivation`` and
                        implements derivation and signing

All external truth comes from an injected ``WalletService``.  Every await
on the service happens before the caches are touched, so a mutation is
never interleaved with another coroutine's.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable

from hdwallet_core.address import Address, AddressKind, BaseAddress, IndexedAddress
from hdwallet_core.crypto_utils import KeyPair, SignatureData, generate_seed
from hdwallet_core.derivation import EcdsaDerivation
from hdwallet_core.errors import (
    AddressNotFoundError,
    AddressNotIndexedError,
    AddressTypeError,
    InvalidWalletParametersError,
    SeedFormatError,
    ServiceResponseError,
    TrustScoreError,
    WalletError,
)
from hdwallet_core.events import Listener, WalletEvent, WalletEvents
from hdwallet_core.precision import exact_sum
from hdwallet_core.service import WalletService
from hdwallet_core.transaction import ReducedTransaction, TransactionData

log = logging.getLogger("hdwallet_core.wallet")

SEED_LENGTH = 64


class Network(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"


@dataclass(frozen=True)
class TotalBalance:
    balance: Decimal
    pre_balance: Decimal

    def to_dict(self) -> dict:
        return {"balance": str(self.balance), "pre_balance": str(self.pre_balance)}


# ===================================================================
#  Base wallet store
# ===================================================================

class BaseWallet:
    """Address / transaction caches of an un-indexed wallet."""

    def __init__(
        self,
        network: Network | str | None = None,
        service: WalletService | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self.network = Network(network) if network else Network.MAINNET
        self.service = service
        self.log = logger or log
        self.events = WalletEvents()
        self.address_map: dict[str, BaseAddress] = {}
        self.transaction_map: dict[str, ReducedTransaction] = {}

    # ---- events ----

    def on_balance_change(self, listener: Callable[[BaseAddress], None]) -> Listener:
        return self.events.subscribe(WalletEvent.BALANCE_CHANGE, listener)

    def on_generate_address(self, listener: Callable[[str], None]) -> Listener:
        return self.events.subscribe(WalletEvent.GENERATE_ADDRESS, listener)

    def on_received_transaction(self, listener: Callable[[TransactionData], None]) -> Listener:
        return self.events.subscribe(WalletEvent.RECEIVED_TRANSACTION, listener)

    def _require_service(self) -> WalletService:
        if self.service is None:
            raise WalletError("No wallet service configured")
        return self.service

    # ---- addresses ----

    def load_addresses(self, addresses: Iterable[BaseAddress] | None) -> None:
        """Cold-start hydration; emits no events."""
        if not addresses:
            return
        for address in addresses:
            self._set_initial_address_to_map(address)

    def get_network(self) -> Network:
        return self.network

    def is_address_exists(self, address_hex: str) -> bool:
        return address_hex in self.address_map

    def get_address_map(self) -> dict[str, BaseAddress]:
        return self.address_map

    def get_address_hexes(self) -> list[str]:
        return list(self.address_map)

    def get_address_by_address_hex(self, address_hex: str) -> BaseAddress | None:
        return self.address_map.get(address_hex)

    def _set_initial_address_to_map(self, address: BaseAddress) -> None:
        self._set_address_to_map(address, notify=False)

    def _set_address_to_map(self, address: BaseAddress, notify: bool = True) -> None:
        # Every cache write completes before any listener runs.
        is_new = self._store_address(address)
        if is_new and notify:
            self.events.emit(WalletEvent.GENERATE_ADDRESS, address.address_hex)

    def _store_address(self, address: BaseAddress) -> bool:
        """Write *address* into the caches; True if its hex was not cached yet."""
        is_new = address.address_hex not in self.address_map
        self.address_map[address.address_hex] = address
        return is_new

    # ---- balances ----

    async def check_balances_of_addresses(self, addresses: Iterable[BaseAddress]) -> None:
        """
        Reconcile *addresses* against a fresh balance snapshot.

        An address is written back (and ``balance_change`` emitted) only if
        it is not cached yet or its balance or pre-balance differs from the
        snapshot; equality is exact decimal equality.
        """
        addresses = list(addresses)
        if not addresses:
            return
        snapshot = await self._require_service().check_balances(
            [address.address_hex for address in addresses], self
        )
        missing = [a.address_hex for a in addresses if snapshot.get(a.address_hex) is None]
        if missing:
            raise ServiceResponseError(
                f"Balance snapshot has no entry for {', '.join(missing)}"
            )
        for address in addresses:
            entry = snapshot[address.address_hex]
            existing = self.address_map.get(address.address_hex)
            if (
                existing is None
                or existing.balance != entry.balance
                or existing.pre_balance != entry.pre_balance
            ):
                self.set_address_with_balance(address, entry.balance, entry.pre_balance)

    def set_address_with_balance(self, address: BaseAddress, balance: Decimal,
                                 pre_balance: Decimal) -> None:
        address.balance = balance
        address.pre_balance = pre_balance
        self._set_address_to_map(address)
        self.events.emit(WalletEvent.BALANCE_CHANGE, address)

    def get_total_balance(self) -> TotalBalance:
        addresses = list(self.address_map.values())
        return TotalBalance(
            balance=exact_sum(a.balance for a in addresses),
            pre_balance=exact_sum(a.pre_balance for a in addresses),
        )

    # ---- transactions ----

    def load_transaction_history(self, transactions: Iterable[ReducedTransaction] | None) -> None:
        """Cold-start hydration; overwrites by hash and emits no events."""
        if not transactions:
            return
        for tx in transactions:
            self.transaction_map[tx.hash] = tx

    def get_transaction_by_hash(self, tx_hash: str) -> ReducedTransaction | None:
        return self.transaction_map.get(tx_hash)

    async def get_transaction_history(self) -> None:
        self.log.info("Starting to get transaction history")
        transactions = await self._require_service().get_transactions_history(
            self.get_address_hexes(), self
        )
        for tx in transactions:
            self.set_transaction(tx)
        self.log.info(
            "Finished to get transaction history. Total transactions: %d", len(transactions),
            extra={"count": len(transactions)},
        )

    def set_transaction(self, transaction: TransactionData) -> bool:
        """
        Merge one transaction; returns True if it was accepted.

        A cached entry with the same hash and the same consensus-update time
        (compared exactly through ``consensus_time_key``)
        means the transaction is already fully processed: nothing is stored
        and nothing is emitted.
        """
        existing = self.transaction_map.get(transaction.hash)
        if (
            existing is not None
            and existing.consensus_time_key == transaction.consensus_time_key
        ):
            self.log.debug("Transaction already processed", extra={"tx_hash": transaction.hash})
            return False

        self.transaction_map[transaction.hash] = transaction.reduce()
        self.events.emit(WalletEvent.RECEIVED_TRANSACTION, transaction)
        return True

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(network={self.network.value}, "
            f"addresses={len(self.address_map)}, transactions={len(self.transaction_map)})"
        )


# ===================================================================
#  Indexed wallet store
# ===================================================================

class IndexedWallet(BaseWallet, abc.ABC):
    """
    Index-addressed wallet store.

    Subclasses set ``address_kind`` to the single address variant they
    accept and implement derivation, conversion and signing.  Every insert
    goes through :meth:`_set_address_to_map`, which keeps
    ``index_to_address_hex_map`` in step with ``address_map``.
    """

    address_kind: AddressKind = AddressKind.INDEXED

    def __init__(
        self,
        network: Network | str | None = None,
        service: WalletService | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        super().__init__(network, service, logger)
        self.index_to_address_hex_map: dict[int, str] = {}
        self.public_hash: str | None = None
        self.trust_score: Any = None

    async def init(self) -> IndexedWallet:
        """Ensure the public hash is set; safe to await more than once."""
        if self.public_hash is None:
            self.set_public_hash()
        return self

    @abc.abstractmethod
    def set_public_hash(self) -> None:
        """Compute and store ``public_hash`` from the wallet's key material."""

    def get_public_hash(self) -> str | None:
        return self.public_hash

    # ---- variant guards ----

    def check_address_type(self, address: BaseAddress) -> None:
        match getattr(address, "kind", None):
            case self.address_kind:
                return
            case AddressKind.PLAIN | AddressKind.INDEXED | AddressKind.KEYED:
                raise AddressTypeError(
                    f"Wrong address type: expected {self.address_kind.value}, "
                    f"got {address.kind.value}"
                )
            case _:
                raise AddressTypeError(f"Not an address: {type(address).__name__}")

    @staticmethod
    def _check_address_indexed(address: BaseAddress) -> None:
        match getattr(address, "kind", None):
            case AddressKind.INDEXED | AddressKind.KEYED:
                return
            case _:
                raise AddressNotIndexedError("Address should be indexed")

    @staticmethod
    def _check_index(index: int) -> None:
        if not isinstance(index, int) or isinstance(index, bool) or index < 0:
            raise ValueError(f"Address index must be a non-negative integer, got {index!r}")

    # ---- inserts ----

    def _store_address(self, address: BaseAddress) -> bool:
        self.check_address_type(address)
        is_new = super()._store_address(address)
        self.index_to_address_hex_map[address.index] = address.address_hex
        return is_new

    def _set_initial_address_to_map(self, address: BaseAddress) -> None:
        self._check_address_indexed(address)
        typed_address = self.get_address_from_indexed_address(address)
        self._set_address_to_map(typed_address, notify=False)

    @abc.abstractmethod
    def get_address_from_indexed_address(self, indexed_address: IndexedAddress) -> IndexedAddress:
        """Re-derive the concrete address for an index, keeping its balances."""

    # ---- lookups ----

    def get_index_by_address(self, address_hex: str) -> int | None:
        address = self.address_map.get(address_hex)
        return address.index if address is not None else None

    async def get_address_by_index(self, index: int) -> IndexedAddress:
        """Cached address at *index*, deriving and caching it on first use."""
        self._check_index(index)
        address_hex = self.index_to_address_hex_map.get(index)
        address = self.address_map.get(address_hex) if address_hex is not None else None
        if address is None:
            return await self.generate_and_set_address_by_index(index)
        self.log.debug("Address cache hit", extra={"index": index})
        return address

    async def generate_and_set_address_by_index(self, index: int) -> IndexedAddress:
        """Derive fresh (no cache check), insert and return."""
        self._check_index(index)
        address = await self.generate_address_by_index(index)
        self._set_address_to_map(address)
        return address

    @abc.abstractmethod
    async def generate_address_by_index(self, index: int) -> IndexedAddress:
        """Derive the address at *index* without caching it."""

    @abc.abstractmethod
    async def sign_message(self, message: bytes, address_hex: str | None = None) -> SignatureData:
        """Sign with the key of *address_hex*, or the root key when omitted."""

    # ---- external queries ----

    async def auto_discover_addresses(self) -> dict[str, BaseAddress]:
        self.log.info("Starting to discover addresses")
        addresses = await self._require_service().get_addresses_of_wallet(self)
        if addresses:
            await self.check_balances_of_addresses(addresses)
        else:
            self.log.info("No addresses")
        self.log.info(
            "Finished to discover addresses. Total addresses: %d", len(addresses),
            extra={"count": len(addresses)},
        )
        return self.get_address_map()

    async def get_user_trust_score(self) -> Any:
        response = await self._require_service().get_user_trust_score(self)
        data = response.get("data") if isinstance(response, dict) else None
        if data is None:
            raise TrustScoreError("Error getting user trust score, received no data")
        trust_score = data.get("trustScore") if isinstance(data, dict) else None
        if trust_score is None:
            raise TrustScoreError(f"Error getting user trust score, unexpected response: {data!r}")
        self.trust_score = trust_score
        return self.trust_score


# ===================================================================
#  Concrete wallet
# ===================================================================

class Wallet(IndexedWallet):
    """
    Seed-bound HD wallet on secp256k1.

    Construct with exactly one of:
      - ``seed``                       64-character seed string
      - ``user_secret`` + ``server_key``  seed = generate_seed(secret + hex(key))

    The public hash is computed during construction, so the wallet is usable
    as soon as ``__init__`` returns.
    """

    address_kind = AddressKind.KEYED

    def __init__(
        self,
        seed: str | None = None,
        user_secret: str | None = None,
        server_key: int | None = None,
        network: Network | str | None = None,
        service: WalletService | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        super().__init__(network, service, logger)
        has_secret = bool(user_secret) and server_key is not None
        if seed and (user_secret or server_key is not None):
            raise InvalidWalletParametersError(
                "Pass either a seed or a user secret and server key, not both"
            )
        if seed:
            if not self.check_seed_format(seed):
                raise SeedFormatError(f"Seed must be {SEED_LENGTH} characters long")
            self._seed = seed
        elif has_secret:
            self._seed = self.generate_seed(user_secret, server_key)
        else:
            raise InvalidWalletParametersError("Invalid parameters for Wallet")

        self._derivation = EcdsaDerivation(self._seed)
        self.set_public_hash()

    @classmethod
    async def create(cls, **kwargs: Any) -> Wallet:
        """Construct and await :meth:`init` before returning."""
        wallet = cls(**kwargs)
        await wallet.init()
        return wallet

    @staticmethod
    def check_seed_format(seed: str) -> bool:
        return isinstance(seed, str) and len(seed) == SEED_LENGTH

    @staticmethod
    def generate_seed(user_secret: str, server_key: int) -> str:
        if not isinstance(server_key, int) or server_key < 0:
            raise InvalidWalletParametersError("server_key must be a non-negative integer")
        hex_server_key = format(server_key, "x")
        if len(hex_server_key) % 2:
            hex_server_key = "0" + hex_server_key
        return generate_seed(f"{user_secret}{hex_server_key}")

    def set_public_hash(self) -> None:
        self.public_hash = self._derivation.public_hash()

    def get_key_pair(self) -> KeyPair:
        return self._derivation.derive_key_pair()

    async def generate_address_by_index(self, index: int) -> Address:
        self._check_index(index)
        return Address(self._derivation.derive_key_pair(index), index)

    def get_address_from_indexed_address(self, indexed_address: IndexedAddress) -> Address:
        key_pair = self._derivation.derive_key_pair(indexed_address.index)
        return Address(
            key_pair,
            indexed_address.index,
            balance=indexed_address.balance,
            pre_balance=indexed_address.pre_balance,
        )

    async def sign_message(self, message: bytes, address_hex: str | None = None) -> SignatureData:
        if address_hex:
            address = self.get_address_by_address_hex(address_hex)
            if address is None:
                raise AddressNotFoundError("Wallet doesn't contain the address")
            key_pair = address.get_address_key_pair()
        else:
            key_pair = self.get_key_pair()
        return self._derivation.sign(message, key_pair)

    def __repr__(self) -> str:
        return f"Wallet({(self.public_hash or '')[:16]}..., network={self.network.value})"
