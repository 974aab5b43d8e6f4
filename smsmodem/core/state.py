"""
Connection state machine.

Tracks connecting / connected / disconnected and announces every transition.
"""

import logging
import threading
from typing import Optional

from .events import STATE_CHANGE, EventBus
from ..exceptions import InvalidStateTransition
from ..types import ConnectionState

logger = logging.getLogger(__name__)

# Allowed moves; DISCONNECTED is terminal
_TRANSITIONS = {
    ConnectionState.CONNECTING: {ConnectionState.CONNECTED, ConnectionState.DISCONNECTED},
    ConnectionState.CONNECTED: {ConnectionState.DISCONNECTED},
    ConnectionState.DISCONNECTED: set(),
}


class ConnectionStateMachine:
    """
    State of one modem session.

    A session starts in CONNECTING. Re-entering the current state does
    nothing; leaving DISCONNECTED is refused.
    """

    def __init__(self, events: Optional[EventBus] = None) -> None:
        self._events = events
        self._state = ConnectionState.CONNECTING
        self._lock = threading.Lock()

    @property
    def state(self) -> ConnectionState:
        return self._state

    def announce(self) -> None:
        """Emit the current state (used when a connection attempt starts)."""
        self._emit(self._state)

    def transition(self, new_state: ConnectionState) -> bool:
        """
        Move to ``new_state``.

        Returns:
            True if the state changed, False if already in it

        Raises:
            InvalidStateTransition: If the move is not allowed
        """
        with self._lock:
            old_state = self._state
            if new_state == old_state:
                return False
            if new_state not in _TRANSITIONS[old_state]:
                raise InvalidStateTransition(
                    f"Cannot move from {old_state.value} to {new_state.value}"
                )
            self._state = new_state

        logger.info(f"Connection state: {old_state.value} -> {new_state.value}")
        self._emit(new_state)
        return True

    def _emit(self, state: ConnectionState) -> None:
        if self._events is not None:
            self._events.emit(STATE_CHANGE, state)
