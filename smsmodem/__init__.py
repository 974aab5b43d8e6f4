"""
SMSModem - Python library for sending and receiving SMS through AT modems.
"""

from .version import __version__
from .modem import SMSModem
from .core import MockTransport, SerialTransport, Transport

from .types import (
    BootReport,
    ConnectionState,
    ErrorCategory,
    ErrorInfo,
    LogicalMessage,
    MessageStatus,
    Response,
    ResponseItem,
    SegmentMetadata,
    SendResult,
    SMSEncoding,
    Storage,
)

from .exceptions import (
    ModemError,
    DeviceError,
    ATTimeoutError,
    TransportError,
    DeviceDisconnectedError,
    BootError,
    CodecError,
    CommandInProgressError,
    ModemNotConnectedError,
    InvalidStateTransition,
)

__all__ = [
    "__version__",
    "SMSModem",
    "MockTransport",
    "SerialTransport",
    "Transport",
    "BootReport",
    "ConnectionState",
    "ErrorCategory",
    "ErrorInfo",
    "LogicalMessage",
    "MessageStatus",
    "Response",
    "ResponseItem",
    "SegmentMetadata",
    "SendResult",
    "SMSEncoding",
    "Storage",
    "ModemError",
    "DeviceError",
    "ATTimeoutError",
    "TransportError",
    "DeviceDisconnectedError",
    "BootError",
    "CodecError",
    "CommandInProgressError",
    "ModemNotConnectedError",
    "InvalidStateTransition",
]
