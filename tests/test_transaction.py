"""
Tests for hdwallet_core.transaction — full and reduced transaction records.
"""

import unittest
from datetime import datetime, timezone
from decimal import Decimal

from hdwallet_core.transaction import (
    ReducedTransaction,
    TransactionData,
    parse_timestamp,
    timestamp_key,
)


class TestParseTimestamp(unittest.TestCase):

    def test_none_and_empty(self):
        self.assertIsNone(parse_timestamp(None))
        self.assertIsNone(parse_timestamp(""))

    def test_epoch_seconds(self):
        self.assertEqual(parse_timestamp(100), datetime(1970, 1, 1, 0, 1, 40, tzinfo=timezone.utc))

    def test_numeric_string(self):
        self.assertEqual(parse_timestamp("100.5"), parse_timestamp(100.5))

    def test_iso_with_z(self):
        self.assertEqual(
            parse_timestamp("2024-03-01T12:00:00Z"),
            datetime(2024, 3, 1, 12, tzinfo=timezone.utc),
        )

    def test_naive_datetime_becomes_utc(self):
        ts = parse_timestamp(datetime(2024, 1, 1))
        self.assertEqual(ts.tzinfo, timezone.utc)

    def test_millisecond_epoch(self):
        expected = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
        self.assertEqual(parse_timestamp(1_700_000_000_000), expected)
        self.assertEqual(parse_timestamp("1700000000123"), expected.replace(microsecond=123000))
        self.assertEqual(parse_timestamp(1_700_000_000), expected)

    def test_fractional_seconds_without_float_drift(self):
        self.assertEqual(parse_timestamp("0.000001").microsecond, 1)
        self.assertEqual(parse_timestamp(1.1).microsecond, 100000)

    def test_non_finite_rejected(self):
        for value in ("inf", "-Infinity", "nan", float("inf")):
            with self.assertRaises(ValueError):
                parse_timestamp(value)

    def test_out_of_range_rejected(self):
        with self.assertRaises(ValueError):
            parse_timestamp(10 ** 30)

    def test_garbage_rejected(self):
        with self.assertRaises(ValueError):
            parse_timestamp("yesterday")
        with self.assertRaises(ValueError):
            parse_timestamp(object())


class TestTimestampKey(unittest.TestCase):

    def test_exact_below_microseconds(self):
        self.assertNotEqual(
            timestamp_key("1700000000.0000001"),
            timestamp_key("1700000000.0000002"),
        )

    def test_units_and_forms_agree(self):
        key = timestamp_key(1_700_000_000)
        self.assertEqual(timestamp_key(1_700_000_000_000), key)
        self.assertEqual(timestamp_key("2023-11-14T22:13:20Z"), key)
        self.assertEqual(timestamp_key(parse_timestamp(1_700_000_000)), key)

    def test_none(self):
        self.assertIsNone(timestamp_key(None))


class TestTransactionData(unittest.TestCase):

    WIRE = {
        "hash": "h1",
        "createTime": 50,
        "transactionConsensusUpdateTime": 100,
        "amount": "12.5",
        "type": "Transfer",
        "senderHash": "s" * 8,
        "status": "CONFIRMED",
        "baseTransactions": [{"addressHash": "ab", "amount": "-12.5"}],
        "trustChainConsensus": True,
    }

    def test_from_dict(self):
        tx = TransactionData.from_dict(self.WIRE)
        self.assertEqual(tx.hash, "h1")
        self.assertEqual(tx.amount, Decimal("12.5"))
        self.assertEqual(tx.sender_hash, "s" * 8)
        self.assertEqual(tx.transaction_consensus_update_time, parse_timestamp(100))
        self.assertEqual(tx.extra, {"trustChainConsensus": True})
        self.assertEqual(len(tx.base_transactions), 1)

    def test_to_dict_keeps_extra_fields(self):
        d = TransactionData.from_dict(self.WIRE).to_dict()
        self.assertTrue(d["trustChainConsensus"])
        self.assertEqual(d["amount"], "12.5")
        self.assertEqual(d["senderHash"], "s" * 8)

    def test_reduce(self):
        tx = TransactionData.from_dict(self.WIRE)
        reduced = tx.reduce()
        self.assertIsInstance(reduced, ReducedTransaction)
        self.assertEqual(reduced.hash, "h1")
        self.assertEqual(reduced.create_time, tx.create_time)
        self.assertEqual(reduced.transaction_consensus_update_time,
                         tx.transaction_consensus_update_time)

    def test_missing_hash(self):
        with self.assertRaises(ValueError):
            TransactionData.from_dict({"createTime": 1})
        with self.assertRaises(ValueError):
            TransactionData(hash="")

    def test_infinite_timestamp_is_value_error(self):
        with self.assertRaises(ValueError):
            TransactionData.from_dict({"hash": "h", "createTime": "inf"})

    def test_reduce_keeps_exact_consensus_key(self):
        tx = TransactionData(hash="h", transaction_consensus_update_time="1700000000.0000001")
        self.assertEqual(tx.reduce().consensus_time_key, tx.consensus_time_key)

    def test_optional_consensus_time(self):
        tx = TransactionData.from_dict({"hash": "h2", "createTime": 1})
        self.assertIsNone(tx.transaction_consensus_update_time)


class TestReducedTransaction(unittest.TestCase):

    def test_from_dict_snake_case(self):
        r = ReducedTransaction.from_dict(
            {"hash": "h", "create_time": 1, "transaction_consensus_update_time": 2}
        )
        self.assertEqual(r.transaction_consensus_update_time, parse_timestamp(2))

    def test_to_dict_iso(self):
        r = ReducedTransaction("h", 0, None)
        self.assertEqual(r.to_dict(), {
            "hash": "h",
            "createTime": "1970-01-01T00:00:00+00:00",
            "transactionConsensusUpdateTime": None,
        })


if __name__ == "__main__":
    unittest.main()
