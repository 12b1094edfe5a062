"""
Exception hierarchy for the wallet core.

Every error is raised from the call that triggered it; nothing here is
retried or deferred.  The concrete classes also derive from the matching
built-in (``ValueError``, ``TypeError``, ``LookupError``) so callers that
only know the built-ins still catch them.
"""

from __future__ import annotations


class WalletError(Exception):
    """Base class for all wallet-core errors."""


# ---- input validation ----

class SeedFormatError(WalletError, ValueError):
    """Seed is not a 64-character string."""


class InvalidWalletParametersError(WalletError, ValueError):
    """Neither (or both) of the seed / (user_secret, server_key) modes given."""


class AddressTypeError(WalletError, TypeError):
    """Address of the wrong variant passed to an indexed store."""


class AddressNotIndexedError(WalletError, TypeError):
    """Address carries no index where one is required."""


# ---- lookups ----

class AddressNotFoundError(WalletError, LookupError):
    """The wallet does not contain the requested address."""


# ---- external data ----

class TrustScoreError(WalletError):
    """Trust-score response is missing its data payload or score field."""


class ServiceResponseError(WalletError):
    """An external service replied with an error status or malformed body."""
