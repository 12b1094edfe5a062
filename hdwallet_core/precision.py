"""
Exact decimal helpers for wallet balances.

Balances are carried as :class:`decimal.Decimal` end to end.  Values coming
off the wire (strings, ints, floats) are converted through their string
form so that ``0.1`` stays ``Decimal("0.1")`` rather than its binary
approximation.  Summation runs in a context with unbounded precision and
``Inexact`` trapped, so a total can never be silently rounded.
"""

from __future__ import annotations

from decimal import MAX_PREC, Decimal, Inexact, InvalidOperation, localcontext
from typing import Any, Iterable

# Number of decimal places used when formatting amounts for display.
DISPLAY_DECIMALS: int = 8

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Convert *value* to a ``Decimal`` without binary floating-point drift.

    >>> to_decimal("1.50")
    Decimal('1.50')
    >>> to_decimal(0.1)
    Decimal('0.1')
    """
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValueError(f"Not a decimal amount: {value!r}")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a decimal amount: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Amount must be finite: {value!r}")
    return result


def exact_sum(values: Iterable[Decimal]) -> Decimal:
    """Sum *values* exactly; returns ``ZERO`` for an empty iterable."""
    total = ZERO
    with localcontext() as ctx:
        ctx.prec = MAX_PREC
        ctx.traps[Inexact] = True
        for value in values:
            total = total + value
    return total


def format_amount(value: Decimal, currency: str | None = None) -> str:
    """Return a human-readable string with ``DISPLAY_DECIMALS`` places.

    The *currency* code, when given, is appended after a space.
    """
    text = f"{value:.{DISPLAY_DECIMALS}f}"
    return f"{text} {currency}" if currency else text
