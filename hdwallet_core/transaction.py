"""
Transaction records.

``TransactionData`` is the full record as delivered by the history service;
``ReducedTransaction`` is what the wallet keeps once a record has been
merged: the hash plus the two timestamps needed for dedup and ordering.

Numeric wire timestamps are epoch seconds, or epoch milliseconds when their
magnitude is at least ``MILLISECOND_THRESHOLD``.  Each record also keeps
``consensus_time_key``, the exact epoch-seconds ``Decimal`` of its
consensus-update time, so dedup is not limited to ``datetime``'s
microsecond resolution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import ROUND_FLOOR, ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import Any

from hdwallet_core.precision import ZERO, to_decimal

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Epoch values this large are milliseconds; as seconds they would be past year 5000.
MILLISECOND_THRESHOLD = Decimal(100_000_000_000)

# Wire keys consumed into named fields; everything else lands in ``extra``.
_KNOWN_KEYS = {
    "hash",
    "createTime",
    "create_time",
    "transactionConsensusUpdateTime",
    "transaction_consensus_update_time",
    "amount",
    "type",
    "senderHash",
    "sender_hash",
    "status",
    "baseTransactions",
    "base_transactions",
}


def _epoch_seconds(value: Any) -> Decimal | None:
    """Exact epoch seconds of a numeric timestamp; None if *value* is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        number = Decimal(repr(value))
    elif isinstance(value, (int, Decimal)):
        number = Decimal(value)
    elif isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            return None
    else:
        return None
    if not number.is_finite():
        raise ValueError(f"Timestamp must be finite: {value!r}")
    if abs(number) >= MILLISECOND_THRESHOLD:
        number = number.scaleb(-3)
    return number


def _from_epoch(seconds: Decimal, value: Any) -> datetime:
    whole = seconds.to_integral_value(rounding=ROUND_FLOOR)
    micros = ((seconds - whole) * 1_000_000).to_integral_value(rounding=ROUND_HALF_EVEN)
    try:
        return _EPOCH + timedelta(seconds=int(whole), microseconds=int(micros))
    except (OverflowError, OSError) as exc:
        raise ValueError(f"Timestamp out of range: {value!r}") from exc


def parse_timestamp(value: Any) -> datetime | None:
    """
    Normalise a wire timestamp to an aware UTC ``datetime``.

    Accepts ``datetime`` objects, epoch seconds or milliseconds (int /
    float / numeric string) and ISO-8601 strings (a trailing ``Z`` is
    understood).  Anything unparseable or out of range raises ``ValueError``.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    seconds = _epoch_seconds(value)
    if seconds is not None:
        return _from_epoch(seconds, value)
    if isinstance(value, str):
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"Unrecognised timestamp: {value!r}") from exc
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"Unrecognised timestamp: {value!r}")


def timestamp_key(value: Any) -> Decimal | None:
    """Exact epoch seconds of a wire timestamp, for equality checks."""
    if value is None or value == "":
        return None
    seconds = _epoch_seconds(value)
    if seconds is not None:
        return seconds
    delta = parse_timestamp(value) - _EPOCH
    return Decimal(delta.days * 86400 + delta.seconds) + Decimal(delta.microseconds).scaleb(-6)


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass
class ReducedTransaction:
    """Hash + creation time + last consensus-update time."""
    hash: str
    create_time: datetime | None = None
    transaction_consensus_update_time: datetime | None = None
    consensus_time_key: Decimal | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        self.consensus_time_key = timestamp_key(self.transaction_consensus_update_time)
        self.create_time = parse_timestamp(self.create_time)
        self.transaction_consensus_update_time = parse_timestamp(
            self.transaction_consensus_update_time
        )

    @classmethod
    def from_dict(cls, data: dict) -> ReducedTransaction:
        return cls(
            hash=data["hash"],
            create_time=data.get("createTime", data.get("create_time")),
            transaction_consensus_update_time=data.get(
                "transactionConsensusUpdateTime",
                data.get("transaction_consensus_update_time"),
            ),
        )

    def to_dict(self) -> dict:
        return {
            "hash": self.hash,
            "createTime": _isoformat(self.create_time),
            "transactionConsensusUpdateTime": _isoformat(self.transaction_consensus_update_time),
        }


@dataclass
class TransactionData:
    """A full transaction record touching one of the wallet's addresses."""
    hash: str
    create_time: datetime | None = None
    transaction_consensus_update_time: datetime | None = None
    amount: Decimal = ZERO
    type: str = ""
    sender_hash: str = ""
    status: str = ""
    base_transactions: list[dict] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)
    consensus_time_key: Decimal | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.hash:
            raise ValueError("Transaction hash is required")
        self.consensus_time_key = timestamp_key(self.transaction_consensus_update_time)
        self.create_time = parse_timestamp(self.create_time)
        self.transaction_consensus_update_time = parse_timestamp(
            self.transaction_consensus_update_time
        )
        self.amount = to_decimal(self.amount)

    @classmethod
    def from_dict(cls, data: dict) -> TransactionData:
        """Build from a wire record; camelCase and snake_case keys are accepted."""
        if "hash" not in data:
            raise ValueError("Transaction record has no hash")
        return cls(
            hash=data["hash"],
            create_time=data.get("createTime", data.get("create_time")),
            transaction_consensus_update_time=data.get(
                "transactionConsensusUpdateTime",
                data.get("transaction_consensus_update_time"),
            ),
            amount=data.get("amount", ZERO),
            type=data.get("type", ""),
            sender_hash=data.get("senderHash", data.get("sender_hash", "")),
            status=data.get("status", ""),
            base_transactions=list(data.get("baseTransactions", data.get("base_transactions", []))),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )

    def reduce(self) -> ReducedTransaction:
        reduced = ReducedTransaction(
            self.hash,
            self.create_time,
            self.transaction_consensus_update_time,
        )
        reduced.consensus_time_key = self.consensus_time_key
        return reduced

    def to_dict(self) -> dict:
        d = dict(self.extra)
        d.update({
            "hash": self.hash,
            "createTime": _isoformat(self.create_time),
            "transactionConsensusUpdateTime": _isoformat(self.transaction_consensus_update_time),
            "amount": str(self.amount),
            "type": self.type,
            "senderHash": self.sender_hash,
            "status": self.status,
            "baseTransactions": list(self.base_transactions),
        })
        return d
