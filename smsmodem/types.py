"""
Data types and structures for SMSModem.

Provides type-safe representations of modem responses and messages.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional

from .exceptions import ATTimeoutError, DeviceError


class ConnectionState(Enum):
    """Connection states of a modem session."""
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ErrorCategory(Enum):
    """Device error domains."""
    GENERIC = "generic"    # Bare "ERROR"
    CME = "cme"            # +CME ERROR (equipment)
    CMS = "cms"            # +CMS ERROR (message service)
    TIMEOUT = "timeout"    # No terminal marker in time


class MessageFormat(IntEnum):
    """SMS message format modes."""
    PDU_MODE = 0
    TEXT_MODE = 1


class ErrorVerbosity(IntEnum):
    """Error report verbosity (AT+CMEE)."""
    DISABLED = 0
    NUMERIC = 1
    VERBOSE = 2


class MessageStatus(IntEnum):
    """SMS status filter for PDU-mode listing (AT+CMGL)."""
    REC_UNREAD = 0
    REC_READ = 1
    STO_UNSENT = 2
    STO_SENT = 3
    ALL = 4


class Storage(Enum):
    """Message storage areas (AT+CPMS)."""
    SM = "SM"  # SIM card
    ME = "ME"  # Mobile equipment
    MT = "MT"  # ME + SIM
    BM = "BM"  # Broadcast messages
    SR = "SR"  # Status reports
    TA = "TA"  # Terminal adaptor


class SMSEncoding(Enum):
    """SMS encoding types."""
    GSM7 = "gsm7"       # 7-bit GSM alphabet (160 chars)
    UCS2 = "ucs2"       # Unicode UCS2 (70 chars)


_ERROR_RE = re.compile(r"\+(CME|CMS) ERROR:\s*([^\r\n]*)")


@dataclass(frozen=True)
class ErrorInfo:
    """
    Failed outcome of one request.

    Produced when the modem output holds an error marker before a success
    marker, or when no terminal marker arrives in time.
    """
    category: ErrorCategory
    code: str
    raw_text: str

    @classmethod
    def from_text(cls, raw_text: str) -> "ErrorInfo":
        """Classify raw modem output containing an error marker."""
        match = _ERROR_RE.search(raw_text)
        if match:
            category = ErrorCategory[match.group(1)]
            return cls(category, match.group(2).strip(), raw_text.strip())
        return cls(ErrorCategory.GENERIC, "", raw_text.strip())

    @classmethod
    def timeout(cls, message: str = "ERROR: Request Timed Out") -> "ErrorInfo":
        return cls(ErrorCategory.TIMEOUT, "", message)

    @property
    def is_timeout(self) -> bool:
        return self.category is ErrorCategory.TIMEOUT

    def raise_for_error(self, command: Optional[str] = None) -> None:
        """Raise the matching exception for callers preferring exceptions."""
        if self.is_timeout:
            raise ATTimeoutError(self.raw_text, command=command)
        raise DeviceError(
            f"Device returned {self.category.value} error {self.code}".rstrip(),
            category=self.category.value,
            code=self.code,
            command=command,
            response=self.raw_text
        )

    def __str__(self) -> str:
        if self.code:
            return f"{self.category.value} error {self.code}"
        return f"{self.category.value} error: {self.raw_text}"


@dataclass(frozen=True)
class ResponseItem:
    """
    One logical line-group inside a response.

    Example: "+CMGL: 1,0,,24" followed by a PDU line gives
    command_echo="+CMGL", args=[1, 0, None, 24] and the PDU as data.
    """
    command_echo: Optional[str]
    args: list[Optional[int]]
    data: Optional[str]
    raw_text: str


@dataclass(frozen=True)
class Response:
    """Successful, terminated modem response."""
    ok: bool
    items: list[ResponseItem]
    raw_text: str

    @property
    def first(self) -> Optional[ResponseItem]:
        """First item, if any."""
        return self.items[0] if self.items else None


@dataclass(frozen=True)
class SegmentMetadata:
    """Concatenation info of one SMS segment."""
    reference: int
    sequence: int
    total: int


@dataclass(frozen=True)
class DecodedPDU:
    """Fields decoded from an SMS PDU."""
    sender: str                           # Originating (or destination) address
    timestamp: Optional[datetime]         # Service centre time stamp
    text: str                             # Decoded user data
    kind: str                             # "SMS-DELIVER" or "SMS-SUBMIT"
    encoding: str                         # "gsm7", "ucs2" or "8bit"
    concat: Optional[SegmentMetadata] = None
    smsc: Optional[str] = None


@dataclass(frozen=True)
class SubmitPDU:
    """One encoded SMS-SUBMIT segment ready for AT+CMGS."""
    hex: str
    length: int  # Octets excluding the SMSC part


@dataclass(frozen=True)
class MessageSegment:
    """A listed response item paired with its decoded PDU."""
    item: ResponseItem
    pdu: DecodedPDU

    @property
    def index(self) -> Optional[int]:
        """Storage index reported by AT+CMGL."""
        return self.item.args[0] if self.item.args else None


@dataclass(frozen=True)
class LogicalMessage:
    """
    A complete message rebuilt from one or more segments.

    Segments share one concatenation reference and are ordered by their
    sequence number.
    """
    segments: list[ResponseItem]
    sender: str
    timestamp: Optional[datetime]
    text: str
    kind: str
    encoding: str = "gsm7"
    indexes: list[Optional[int]] = field(default_factory=list)
    reference: Optional[int] = None
    total: int = 1
    smsc: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        """Check if every announced segment is present."""
        return len(self.segments) >= self.total


@dataclass
class SendResult:
    """
    Outcome of sending a (possibly multi-part) message.

    On failure, failed_segment is the 1-based segment that failed and
    len(responses) is the number of segments already sent.
    """
    total_segments: int
    responses: list[Response] = field(default_factory=list)
    error: Optional[ErrorInfo] = None
    failed_segment: Optional[int] = None
    message_references: list[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Check if every segment was accepted by the modem."""
        return self.error is None and len(self.responses) == self.total_segments

    @property
    def sent_segments(self) -> int:
        return len(self.responses)


@dataclass
class BootReport:
    """Result of a completed boot sequence."""
    steps: list[str] = field(default_factory=list)
    module_id: Optional[str] = None
    device_id: Optional[str] = None
