"""
Key-derivation strategies.

A strategy owns the key material of one wallet kind and answers three
questions: which key pair lives at index N, what the wallet's public hash
is, and how a message is signed.  ``Wallet`` composes one; the indexed
reconciliation engine never touches key material directly.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from hdwallet_core.crypto_utils import (
    KeyPair,
    SignatureData,
    generate_key_pair_from_seed,
    get_public_key_by_key_pair,
    sign_byte_array_message,
)


@runtime_checkable
class DerivationStrategy(Protocol):
    """Derive-by-index, public-hash and signing for one key scheme."""

    def derive_key_pair(self, index: int | None = None) -> KeyPair: ...

    def public_hash(self) -> str: ...

    def sign(self, message: bytes, key_pair: KeyPair | None = None) -> SignatureData: ...


class EcdsaDerivation:
    """secp256k1 HD derivation from a hex seed."""

    def __init__(self, seed: str):
        self._seed = seed
        self._root = generate_key_pair_from_seed(seed)

    @property
    def root_key_pair(self) -> KeyPair:
        return self._root

    def derive_key_pair(self, index: int | None = None) -> KeyPair:
        if index is None:
            return self._root
        return generate_key_pair_from_seed(self._seed, index)

    def public_hash(self) -> str:
        return get_public_key_by_key_pair(self._root)

    def sign(self, message: bytes, key_pair: KeyPair | None = None) -> SignatureData:
        return sign_byte_array_message(message, key_pair or self._root)

    def __repr__(self) -> str:
        return f"EcdsaDerivation(public_hash={self.public_hash()[:16]}...)"
