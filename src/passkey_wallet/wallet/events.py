"""Wallet event subscription."""

import logging
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class WalletEvent(str, Enum):
    """Events emitted by the wallet kit."""

    CREDENTIAL_CREATED = "credential_created"
    WALLET_CONNECTED = "wallet_connected"
    TRANSACTION_SUBMITTED = "transaction_submitted"
    SESSION_EXPIRED = "session_expired"


Handler = Callable[[dict[str, Any]], None]


class EventEmitter:
    """Synchronous publish/subscribe for wallet events.

    A failing handler is logged and does not stop delivery to the others.
    """

    def __init__(self):
        self._handlers: dict[WalletEvent, list[Handler]] = {event: [] for event in WalletEvent}

    def on(self, event: WalletEvent, handler: Handler) -> Callable[[], None]:
        """Subscribe to an event.

        Returns:
            Callable that removes the subscription
        """
        event = WalletEvent(event)
        self._handlers[event].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event]:
                self._handlers[event].remove(handler)

        return unsubscribe

    def emit(self, event: WalletEvent, payload: dict[str, Any]) -> None:
        event = WalletEvent(event)
        for handler in list(self._handlers[event]):
            try:
                handler(payload)
            except Exception as e:
                logger.error(f"Handler for {event.value} failed: {e}")

    def listener_count(self, event: WalletEvent) -> int:
        return len(self._handlers[WalletEvent(event)])
