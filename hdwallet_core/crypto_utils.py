"""
Cryptographic primitives for the wallet core.

Provides:
  - Seed generation from a combined user secret / server key string
  - BIP-32-style HD key derivation on secp256k1 (HMAC-SHA512)
  - Public-key fingerprints and checksummed address hexes
  - Deterministic (RFC 6979) ECDSA signing and verification
"""

from __future__ import annotations

import hashlib
import hmac
import struct
from dataclasses import dataclass

from Crypto.Hash import keccak
from ecdsa import SECP256k1, BadSignatureError, SigningKey, VerifyingKey
from ecdsa.errors import MalformedPointError
from ecdsa.util import MalformedSignature, sigdecode_strings, sigencode_strings_canonize

# Child indices at or above this value are hardened.
HARDENED = 0x80000000

# Highest index reachable by normal (non-hardened) derivation.
MAX_INDEX = HARDENED - 1

# Bytes of Keccak-256 appended to the public key to form an address.
ADDRESS_CHECKSUM_BYTES = 4

_MASTER_HMAC_KEY = b"HD wallet seed"


# ===================================================================
#  Hashing
# ===================================================================

def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def keccak256(data: bytes) -> bytes:
    return keccak.new(digest_bits=256, data=data).digest()


def generate_seed(combined: str) -> str:
    """Derive a 64-hex-character seed from an arbitrary secret string."""
    return sha256(combined.encode("utf-8")).hex()


# ===================================================================
#  Key pairs and signatures
# ===================================================================

@dataclass(frozen=True)
class KeyPair:
    """secp256k1 key pair; ``public_key`` is the raw 64-byte X||Y point."""
    private_key: bytes
    public_key: bytes

    @classmethod
    def from_private_key(cls, private_key: bytes) -> KeyPair:
        sk = SigningKey.from_string(private_key, curve=SECP256k1)
        return cls(private_key, sk.get_verifying_key().to_string())

    @property
    def public_key_hex(self) -> str:
        return self.public_key.hex()

    def signing_key(self) -> SigningKey:
        return SigningKey.from_string(self.private_key, curve=SECP256k1)

    def __repr__(self) -> str:
        return f"KeyPair(public_key={self.public_key_hex[:16]}...)"


@dataclass(frozen=True)
class SignatureData:
    """ECDSA signature as hex-encoded ``r`` and ``s`` components."""
    r: str
    s: str

    def to_dict(self) -> dict:
        return {"r": self.r, "s": self.s}


# ===================================================================
#  HD derivation
# ===================================================================

class HDNode:
    """
    Hierarchical Deterministic key derivation node.

    Master key and chain code come from HMAC-SHA512 over the seed; each
    child is derived from the parent's chain code and compressed public
    key (or private key, for hardened indices).
    """

    def __init__(self, private_key: bytes, chain_code: bytes, depth: int = 0,
                 index: int = 0):
        self.private_key = private_key
        self.chain_code = chain_code
        self.depth = depth
        self.index = index

    @classmethod
    def from_seed(cls, seed: bytes) -> HDNode:
        """Create the master node from raw seed bytes."""
        digest = hmac.new(_MASTER_HMAC_KEY, seed, hashlib.sha512).digest()
        return cls(private_key=digest[:32], chain_code=digest[32:])

    def _compressed_public_key(self) -> bytes:
        sk = SigningKey.from_string(self.private_key, curve=SECP256k1)
        raw = sk.get_verifying_key().to_string()
        x, y = raw[:32], raw[32:]
        prefix = b"\x02" if y[-1] % 2 == 0 else b"\x03"
        return prefix + x

    def derive_child(self, index: int) -> HDNode:
        """Derive a child node at the given index."""
        if not 0 <= index <= 0xFFFFFFFF:
            raise ValueError(f"Child index out of range: {index}")
        if index >= HARDENED:
            data = b"\x00" + self.private_key + struct.pack(">I", index)
        else:
            data = self._compressed_public_key() + struct.pack(">I", index)

        digest = hmac.new(self.chain_code, data, hashlib.sha512).digest()
        child_key_int = (int.from_bytes(digest[:32], "big") +
                         int.from_bytes(self.private_key, "big"))
        child_key_int %= SECP256k1.order

        return HDNode(
            private_key=child_key_int.to_bytes(32, "big"),
            chain_code=digest[32:],
            depth=self.depth + 1,
            index=index,
        )

    def key_pair(self) -> KeyPair:
        return KeyPair.from_private_key(self.private_key)


def _seed_bytes(seed: str) -> bytes:
    try:
        return bytes.fromhex(seed)
    except ValueError:
        return seed.encode("utf-8")


def generate_key_pair_from_seed(seed: str, index: int | None = None) -> KeyPair:
    """
    Derive a key pair from *seed*.

    With ``index=None`` the master (root) key pair is returned; otherwise
    the normal child at *index*.  The result is a pure function of
    ``(seed, index)``.
    """
    master = HDNode.from_seed(_seed_bytes(seed))
    if index is None:
        return master.key_pair()
    if not 0 <= index <= MAX_INDEX:
        raise ValueError(f"Address index must be between 0 and {MAX_INDEX}, got {index}")
    return master.derive_child(index).key_pair()


def get_public_key_by_key_pair(key_pair: KeyPair) -> str:
    """Return the hex public key used as the wallet's public hash."""
    return key_pair.public_key_hex


def derive_address_hex(public_key: bytes) -> str:
    """Public key hex followed by a 4-byte Keccak-256 checksum."""
    checksum = keccak256(public_key)[-ADDRESS_CHECKSUM_BYTES:]
    return public_key.hex() + checksum.hex()


# ===================================================================
#  Signing
# ===================================================================

def sign_byte_array_message(message: bytes, key_pair: KeyPair) -> SignatureData:
    """Sign the SHA-256 digest of *message* (RFC 6979, low-S)."""
    r, s = key_pair.signing_key().sign_digest_deterministic(
        sha256(message),
        hashfunc=hashlib.sha256,
        sigencode=sigencode_strings_canonize,
    )
    return SignatureData(r=r.hex(), s=s.hex())


def verify_byte_array_message(message: bytes, signature: SignatureData,
                              public_key_hex: str) -> bool:
    """Verify *signature* over *message* against a hex public key."""
    try:
        vk = VerifyingKey.from_string(bytes.fromhex(public_key_hex), curve=SECP256k1)
        return vk.verify_digest(
            (bytes.fromhex(signature.r), bytes.fromhex(signature.s)),
            sha256(message),
            sigdecode=sigdecode_strings,
        )
    except (BadSignatureError, MalformedPointError, MalformedSignature, ValueError):
        return False
