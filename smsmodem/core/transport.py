"""
Transport layer abstraction for modem communication.

Provides abstractions for serial communication with dependency injection support.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Optional, Union

import serial
from serial import SerialException

from ..exceptions import DeviceDisconnectedError, TransportError

logger = logging.getLogger(__name__)

_DISCONNECT_PHRASES = (
    "device disconnected",
    "device reports readiness to read but returned no data",
    "no such device",
    "device not configured",
    "input/output error",
)


class Transport(ABC):
    """Abstract base class for modem transport."""

    @abstractmethod
    def open(self) -> None:
        """
        Open the transport.

        Raises:
            TransportError: If the link cannot be opened
        """
        pass

    @abstractmethod
    def write(self, data: bytes) -> int:
        """
        Write data to the transport.

        Args:
            data: Bytes to write

        Returns:
            Number of bytes written

        Raises:
            TransportError: If write fails
        """
        pass

    @abstractmethod
    def read(self, size: int = 256) -> bytes:
        """
        Read whatever is available, up to ``size`` bytes.

        Blocks for at most the transport's read timeout.

        Returns:
            Bytes read, empty if nothing arrived

        Raises:
            TransportError: If read fails
        """
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """Check if transport is open."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the transport."""
        pass


def _classify_serial_error(action: str, port: str, e: SerialException) -> TransportError:
    error_str = str(e).lower()
    if any(phrase in error_str for phrase in _DISCONNECT_PHRASES):
        logger.error(f"Device disconnected: {e}")
        return DeviceDisconnectedError(f"Serial device {port} disconnected: {e}", response=str(e))
    logger.error(f"Serial {action} failed: {e}")
    return TransportError(f"Serial {action} failed on {port}: {e}")


class SerialTransport(Transport):
    """Serial port transport implementation."""

    def __init__(
        self,
        port: str,
        baudrate: int = 115200,
        timeout: float = 0.1
    ) -> None:
        """
        Initialize serial transport.

        The port is opened by open().

        Args:
            port: Serial port path (e.g., /dev/ttyUSB2)
            baudrate: Baud rate for serial communication
            timeout: Read timeout in seconds (bounds each read())
        """
        self.port = port
        self.baudrate = baudrate
        self.timeout = timeout
        self._serial: Optional[serial.Serial] = None

    def open(self) -> None:
        """Open the serial port."""
        if self.is_open():
            return
        try:
            self._serial = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                timeout=self.timeout
            )
            logger.info(f"Opened serial port {self.port} at {self.baudrate} baud")
        except SerialException as e:
            logger.error(f"Failed to open serial port {self.port}: {e}")
            raise TransportError(f"Failed to open serial port {self.port}: {e}") from e

    def write(self, data: bytes) -> int:
        """Write data to serial port."""
        if not self.is_open():
            raise TransportError(f"Serial port {self.port} is not open")
        try:
            written = self._serial.write(data)
            self._serial.flush()
            logger.debug(f"Wrote {written} bytes: {data}")
            return written
        except SerialException as e:
            raise _classify_serial_error("write", self.port, e) from e

    def read(self, size: int = 256) -> bytes:
        """Read available bytes from serial port."""
        if not self.is_open():
            raise DeviceDisconnectedError(f"Serial port {self.port} is not open")
        try:
            waiting = self._serial.in_waiting
            data = self._serial.read(min(max(1, waiting), size))
            if data:
                logger.debug(f"Read {len(data)} bytes: {data}")
            return data
        except SerialException as e:
            raise _classify_serial_error("read", self.port, e) from e

    def is_open(self) -> bool:
        """Check if serial port is open."""
        return bool(self._serial and self._serial.is_open)

    def close(self) -> None:
        """Close the serial port."""
        if self._serial and self._serial.is_open:
            self._serial.close()
            logger.info(f"Closed serial port {self.port}")


class MockTransport(Transport):
    """
    Mock transport for testing.

    Simulates a modem: each write releases the next queued reply, so a
    reply never arrives before the command that triggers it.
    """

    def __init__(self, read_timeout: float = 0.01) -> None:
        """Initialize mock transport."""
        self._open = True
        self._read_timeout = read_timeout
        self._readable: Deque[bytes] = deque()
        self._replies: Deque[list[bytes]] = deque()
        self._cond = threading.Condition()
        self.written: list[str] = []
        logger.info("Initialized MockTransport")

    def add_response(self, *chunks: Union[str, bytes]) -> None:
        """
        Queue a reply released by the next write.

        Several chunks simulate a reply split across reads.

        Args:
            chunks: Reply text (e.g., "\\r\\n+CSQ: 24,99\\r\\n", "\\r\\nOK\\r\\n")
        """
        reply = [c.encode("utf-8") if isinstance(c, str) else c for c in chunks]
        with self._cond:
            self._replies.append(reply)
            logger.debug(f"Added mock response: {reply}")

    def add_silence(self) -> None:
        """Queue a write that gets no reply at all."""
        with self._cond:
            self._replies.append([])

    def feed(self, data: Union[str, bytes]) -> None:
        """Make data readable immediately (unsolicited output)."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        with self._cond:
            self._readable.append(data)
            self._cond.notify_all()

    def open(self) -> None:
        self._open = True

    def write(self, data: bytes) -> int:
        """Simulate writing data."""
        if not self._open:
            raise DeviceDisconnectedError(
                "MockTransport is closed (simulating device disconnection)",
                response="MockTransport closed"
            )

        logger.debug(f"Mock write: {data}")
        with self._cond:
            self.written.append(data.decode("utf-8", errors="ignore"))
            if self._replies:
                self._readable.extend(self._replies.popleft())
                self._cond.notify_all()
        return len(data)

    def read(self, size: int = 256) -> bytes:
        """Return the next readable chunk, or b"" after the read timeout."""
        if not self._open:
            raise DeviceDisconnectedError(
                "MockTransport is closed (simulating device disconnection)",
                response="MockTransport closed"
            )

        with self._cond:
            if not self._readable:
                self._cond.wait(self._read_timeout)
            if not self._readable:
                return b""
            chunk = self._readable.popleft()
            if len(chunk) > size:
                self._readable.appendleft(chunk[size:])
                chunk = chunk[:size]
            logger.debug(f"Mock read: {chunk}")
            return chunk

    def is_open(self) -> bool:
        """Check if mock transport is open."""
        return self._open

    def close(self) -> None:
        """Close mock transport."""
        self._open = False
        with self._cond:
            self._cond.notify_all()
        logger.info("Closed MockTransport")

    def clear_responses(self) -> None:
        """Clear all queued replies (useful for testing)."""
        with self._cond:
            self._replies.clear()
            self._readable.clear()
            logger.debug("Cleared mock response queue")
