"""
Address entities.

Three closed variants, tagged by :class:`AddressKind`:

* ``PLAIN``   — :class:`BaseAddress`, an address hex with balances
* ``INDEXED`` — :class:`IndexedAddress`, adds the derivation index
* ``KEYED``   — :class:`Address`, an indexed address that also carries the
  key pair it was derived from

Only balance and pre-balance are mutable; the address hex and index are
fixed at creation.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any

from hdwallet_core.crypto_utils import KeyPair, derive_address_hex
from hdwallet_core.precision import ZERO, to_decimal


class AddressKind(str, Enum):
    PLAIN = "plain"
    INDEXED = "indexed"
    KEYED = "keyed"


class BaseAddress:
    """An address known to the wallet, with its current and previous balance."""

    kind = AddressKind.PLAIN

    def __init__(self, address_hex: str, balance: Any = ZERO, pre_balance: Any = ZERO):
        if not address_hex:
            raise ValueError("address_hex must be a non-empty string")
        self._address_hex = address_hex
        self._balance = to_decimal(balance)
        self._pre_balance = to_decimal(pre_balance)

    @property
    def address_hex(self) -> str:
        return self._address_hex

    @property
    def balance(self) -> Decimal:
        return self._balance

    @balance.setter
    def balance(self, value: Any) -> None:
        self._balance = to_decimal(value)

    @property
    def pre_balance(self) -> Decimal:
        return self._pre_balance

    @pre_balance.setter
    def pre_balance(self, value: Any) -> None:
        self._pre_balance = to_decimal(value)

    def set_balance(self, value: Any) -> None:
        self.balance = value

    def set_pre_balance(self, value: Any) -> None:
        self.pre_balance = value

    @property
    def index(self) -> int | None:
        return None

    def to_dict(self) -> dict:
        return {
            "address_hex": self._address_hex,
            "balance": str(self._balance),
            "pre_balance": str(self._pre_balance),
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._address_hex[:16]}..., balance={self._balance})"


class IndexedAddress(BaseAddress):
    """An address bound to a derivation index."""

    kind = AddressKind.INDEXED

    def __init__(self, address_hex: str, index: int, balance: Any = ZERO,
                 pre_balance: Any = ZERO):
        if not isinstance(index, int) or isinstance(index, bool) or index < 0:
            raise ValueError(f"Address index must be a non-negative integer, got {index!r}")
        super().__init__(address_hex, balance, pre_balance)
        self._index = index

    @property
    def index(self) -> int:
        return self._index

    @classmethod
    def from_dict(cls, data: dict) -> IndexedAddress:
        """Build from a wire/storage dict (camelCase or snake_case keys)."""
        return cls(
            address_hex=data.get("addressHex", data.get("address_hex", "")),
            index=data["index"],
            balance=data.get("balance", ZERO),
            pre_balance=data.get("preBalance", data.get("pre_balance", ZERO)),
        )

    def to_dict(self) -> dict:
        d = super().to_dict()
        d["index"] = self._index
        return d


class Address(IndexedAddress):
    """Indexed address whose hex is computed from its own key pair."""

    kind = AddressKind.KEYED

    def __init__(self, key_pair: KeyPair, index: int, balance: Any = ZERO,
                 pre_balance: Any = ZERO):
        super().__init__(derive_address_hex(key_pair.public_key), index, balance, pre_balance)
        self._key_pair = key_pair

    @property
    def key_pair(self) -> KeyPair:
        return self._key_pair

    def get_address_key_pair(self) -> KeyPair:
        return self._key_pair
