"""
Event bus for session notifications.

Delivers connection state changes and raw write/read traces to subscribers
in a thread-safe, fire-and-forget manner.
"""

import logging
import threading
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

# Event names
STATE_CHANGE = "state_change"   # payload: ConnectionState
WRITE = "write"                 # payload: command text sent
READ = "read"                   # payload: raw text received

EVENTS = (STATE_CHANGE, WRITE, READ)

# Type alias for event callbacks
EventCallback = Callable[[Any], None]


class EventBus:
    """
    Publish/subscribe channel for session events.

    Features:
    - Several callbacks per event, called in subscription order
    - Thread-safe subscription management
    - At-most-once synchronous delivery, no replay for late subscribers
    - Error isolation for misbehaving callbacks
    """

    def __init__(self) -> None:
        self._callbacks: Dict[str, List[EventCallback]] = {name: [] for name in EVENTS}
        self._lock = threading.Lock()

    def subscribe(self, event: str, callback: EventCallback) -> None:
        """
        Register a callback for an event.

        Args:
            event: One of "state_change", "write", "read"
            callback: Function called with the event payload

        Example:

        .. code-block:: python

            bus.subscribe("read", lambda text: print(f"<< {text!r}"))
        """
        if event not in self._callbacks:
            raise ValueError(f"Unknown event: {event}")
        with self._lock:
            self._callbacks[event].append(callback)
            logger.debug(f"Subscribed to {event}")

    def unsubscribe(self, event: str, callback: EventCallback) -> bool:
        """
        Remove a callback.

        Returns:
            True if callback was removed, False if not found
        """
        with self._lock:
            callbacks = self._callbacks.get(event, [])
            if callback in callbacks:
                callbacks.remove(callback)
                logger.debug(f"Unsubscribed from {event}")
                return True
            return False

    def clear(self) -> None:
        """Remove all callbacks."""
        with self._lock:
            for callbacks in self._callbacks.values():
                callbacks.clear()

    def emit(self, event: str, payload: Any) -> None:
        """
        Deliver an event to its subscribers.

        Args:
            event: Event name
            payload: Event payload
        """
        # Copy under lock, call outside it so slow callbacks cannot deadlock
        with self._lock:
            callbacks = list(self._callbacks.get(event, []))

        for callback in callbacks:
            try:
                callback(payload)
            except Exception as e:
                logger.error(f"Callback for '{event}' failed: {e}", exc_info=True)

    def subscriber_count(self, event: str) -> int:
        with self._lock:
            return len(self._callbacks.get(event, []))
