"""
Test suite for hdwallet_core.crypto_utils — seed, derivation and signing primitives.

Covers:
  - generate_seed output shape and determinism
  - HDNode master / child derivation (normal + hardened)
  - generate_key_pair_from_seed determinism and index bounds
  - Address hex layout (public key + Keccak checksum)
  - Deterministic signing, verification, and rejection of bad input
"""

import hashlib
import unittest

from hdwallet_core.crypto_utils import (
    HARDENED,
    MAX_INDEX,
    HDNode,
    KeyPair,
    SignatureData,
    derive_address_hex,
    generate_key_pair_from_seed,
    generate_seed,
    get_public_key_by_key_pair,
    keccak256,
    sha256,
    sign_byte_array_message,
    verify_byte_array_message,
)

SEED = "5f3a" * 16


class TestHashing(unittest.TestCase):

    def test_sha256_matches_hashlib(self):
        self.assertEqual(sha256(b"hello"), hashlib.sha256(b"hello").digest())

    def test_keccak256_is_not_sha3(self):
        self.assertEqual(len(keccak256(b"")), 32)
        self.assertNotEqual(keccak256(b""), hashlib.sha3_256(b"").digest())

    def test_keccak256_empty_vector(self):
        self.assertEqual(
            keccak256(b"").hex(),
            "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470",
        )


class TestGenerateSeed(unittest.TestCase):

    def test_seed_is_64_hex_chars(self):
        seed = generate_seed("secret" + "0a1b")
        self.assertEqual(len(seed), 64)
        int(seed, 16)

    def test_seed_deterministic(self):
        self.assertEqual(generate_seed("abc"), generate_seed("abc"))

    def test_seed_differs_per_input(self):
        self.assertNotEqual(generate_seed("abc"), generate_seed("abd"))


class TestHDNode(unittest.TestCase):

    def setUp(self):
        self.master = HDNode.from_seed(bytes.fromhex(SEED))

    def test_master_shape(self):
        self.assertEqual(self.master.depth, 0)
        self.assertEqual(len(self.master.private_key), 32)
        self.assertEqual(len(self.master.chain_code), 32)

    def test_derive_child_normal(self):
        child = self.master.derive_child(0)
        self.assertEqual(child.depth, 1)
        self.assertEqual(child.index, 0)
        self.assertNotEqual(child.private_key, self.master.private_key)

    def test_derive_child_hardened(self):
        hardened = self.master.derive_child(HARDENED)
        normal = self.master.derive_child(0)
        self.assertNotEqual(hardened.private_key, normal.private_key)

    def test_derive_child_out_of_range(self):
        with self.assertRaises(ValueError):
            self.master.derive_child(-1)
        with self.assertRaises(ValueError):
            self.master.derive_child(2 ** 32)


class TestKeyPairDerivation(unittest.TestCase):

    def test_root_key_pair_deterministic(self):
        a = generate_key_pair_from_seed(SEED)
        b = generate_key_pair_from_seed(SEED)
        self.assertEqual(a, b)
        self.assertEqual(len(a.private_key), 32)
        self.assertEqual(len(a.public_key), 64)

    def test_indexed_key_pair_deterministic(self):
        self.assertEqual(
            generate_key_pair_from_seed(SEED, 7),
            generate_key_pair_from_seed(SEED, 7),
        )

    def test_indices_yield_distinct_keys(self):
        keys = {generate_key_pair_from_seed(SEED, i).public_key for i in range(5)}
        self.assertEqual(len(keys), 5)

    def test_index_zero_differs_from_root(self):
        self.assertNotEqual(
            generate_key_pair_from_seed(SEED),
            generate_key_pair_from_seed(SEED, 0),
        )

    def test_index_bounds(self):
        generate_key_pair_from_seed(SEED, MAX_INDEX)
        with self.assertRaises(ValueError):
            generate_key_pair_from_seed(SEED, MAX_INDEX + 1)
        with self.assertRaises(ValueError):
            generate_key_pair_from_seed(SEED, -1)

    def test_non_hex_seed_accepted(self):
        seed = "z" * 64
        self.assertEqual(
            generate_key_pair_from_seed(seed, 1),
            generate_key_pair_from_seed(seed, 1),
        )

    def test_from_private_key_round_trip(self):
        kp = generate_key_pair_from_seed(SEED, 3)
        self.assertEqual(KeyPair.from_private_key(kp.private_key), kp)

    def test_repr_hides_private_key(self):
        kp = generate_key_pair_from_seed(SEED)
        self.assertNotIn(kp.private_key.hex(), repr(kp))


class TestAddressHex(unittest.TestCase):

    def test_layout(self):
        kp = generate_key_pair_from_seed(SEED, 0)
        address_hex = derive_address_hex(kp.public_key)
        self.assertEqual(len(address_hex), 136)
        self.assertTrue(address_hex.startswith(kp.public_key_hex))
        self.assertEqual(address_hex[128:], keccak256(kp.public_key)[-4:].hex())

    def test_public_hash_is_public_key_hex(self):
        kp = generate_key_pair_from_seed(SEED)
        self.assertEqual(get_public_key_by_key_pair(kp), kp.public_key.hex())


class TestSigning(unittest.TestCase):

    def setUp(self):
        self.kp = generate_key_pair_from_seed(SEED, 2)

    def test_sign_verify(self):
        sig = sign_byte_array_message(b"hello", self.kp)
        self.assertTrue(verify_byte_array_message(b"hello", sig, self.kp.public_key_hex))

    def test_signature_deterministic(self):
        self.assertEqual(
            sign_byte_array_message(b"msg", self.kp),
            sign_byte_array_message(b"msg", self.kp),
        )

    def test_signature_components_are_32_bytes(self):
        sig = sign_byte_array_message(b"msg", self.kp)
        self.assertEqual(len(bytes.fromhex(sig.r)), 32)
        self.assertEqual(len(bytes.fromhex(sig.s)), 32)
        self.assertEqual(sig.to_dict(), {"r": sig.r, "s": sig.s})

    def test_wrong_message_rejected(self):
        sig = sign_byte_array_message(b"right", self.kp)
        self.assertFalse(verify_byte_array_message(b"wrong", sig, self.kp.public_key_hex))

    def test_wrong_key_rejected(self):
        other = generate_key_pair_from_seed(SEED, 3)
        sig = sign_byte_array_message(b"msg", self.kp)
        self.assertFalse(verify_byte_array_message(b"msg", sig, other.public_key_hex))

    def test_malformed_inputs_rejected(self):
        sig = sign_byte_array_message(b"msg", self.kp)
        self.assertFalse(verify_byte_array_message(b"msg", sig, "zz"))
        self.assertFalse(verify_byte_array_message(b"msg", sig, "00" * 10))
        bad = SignatureData(r="00", s=sig.s)
        self.assertFalse(verify_byte_array_message(b"msg", bad, self.kp.public_key_hex))


if __name__ == "__main__":
    unittest.main()
