"""
Wallet change notifications.

Push-only observer: listeners are plain callables invoked synchronously, in
subscription order, at the moment the wallet emits.  There is no
acknowledgement or backpressure, and a listener that raises propagates its
exception to the wallet operation that emitted.

Events
------
* ``balance_change``       — payload: the updated address entity
* ``generate_address``     — payload: the address hex newly cached
* ``received_transaction`` — payload: the full ``TransactionData``
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable

Listener = Callable[[Any], None]


class WalletEvent(str, Enum):
    BALANCE_CHANGE = "balance_change"
    GENERATE_ADDRESS = "generate_address"
    RECEIVED_TRANSACTION = "received_transaction"


class WalletEvents:
    """Per-wallet listener registry."""

    def __init__(self):
        self._listeners: dict[WalletEvent, list[Listener]] = {e: [] for e in WalletEvent}

    def subscribe(self, event: WalletEvent | str, listener: Listener) -> Listener:
        """Register *listener* and return it."""
        if not callable(listener):
            raise TypeError("listener must be callable")
        self._listeners[WalletEvent(event)].append(listener)
        return listener

    def unsubscribe(self, event: WalletEvent | str, listener: Listener) -> bool:
        listeners = self._listeners[WalletEvent(event)]
        if listener in listeners:
            listeners.remove(listener)
            return True
        return False

    def emit(self, event: WalletEvent | str, payload: Any) -> bool:
        """Call every listener for *event*; True if there was at least one."""
        listeners = list(self._listeners[WalletEvent(event)])
        for listener in listeners:
            listener(payload)
        return bool(listeners)

    def listener_count(self, event: WalletEvent | str) -> int:
        return len(self._listeners[WalletEvent(event)])

    def clear(self) -> None:
        for listeners in self._listeners.values():
            listeners.clear()
