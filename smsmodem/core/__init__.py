"""
Core modem infrastructure.

Provides low-level building blocks for modem communication:
- Transport: Serial communication abstraction
- ResponseBuffer: Terminal marker detection
- Protocol: Command/response correlation
- Events: State change and trace notifications
- BootSequencer: Ordered configuration sequence
- ModemSession: Coordination of all core components
"""

from .transport import Transport, SerialTransport, MockTransport
from .buffer import Boundary, BoundaryKind, ResponseBuffer, detect_boundary
from .protocol import ATProtocol
from .events import EventBus, EventCallback, STATE_CHANGE, WRITE, READ
from .state import ConnectionStateMachine
from .boot import BootSequencer
from .modem import ModemSession

__all__ = [
    "Transport",
    "SerialTransport",
    "MockTransport",
    "Boundary",
    "BoundaryKind",
    "ResponseBuffer",
    "detect_boundary",
    "ATProtocol",
    "EventBus",
    "EventCallback",
    "STATE_CHANGE",
    "WRITE",
    "READ",
    "ConnectionStateMachine",
    "BootSequencer",
    "ModemSession",
]
