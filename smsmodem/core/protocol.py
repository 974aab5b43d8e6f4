"""
AT command protocol handler.

Correlates one outstanding command with the next terminal response or timeout.
"""

import logging
import threading
import time
from typing import Optional, Tuple

from .buffer import BoundaryKind, ResponseBuffer
from .events import WRITE, EventBus
from .transport import Transport
from ..commands import ERROR, OK
from ..exceptions import CommandInProgressError, TransportError
from ..parsers.response import parse_response
from ..types import ErrorInfo, Response

logger = logging.getLogger(__name__)

Result = Tuple[Optional[Response], Optional[ErrorInfo]]


class _PendingRequest:
    """Listener state for the single in-flight command."""

    def __init__(self, command: str, terminator: str) -> None:
        self.command = command
        self.buffer = ResponseBuffer(success_marker=terminator, error_marker=ERROR)
        self.done = threading.Event()
        self.response: Optional[Response] = None
        self.error: Optional[ErrorInfo] = None
        self.exception: Optional[TransportError] = None


class ATProtocol:
    """
    AT command correlator.

    Pairs one outstanding command with the next terminal response (success
    or error marker) or with its timeout, whichever comes first. The reader
    thread hands every received chunk to feed().

    Only one command may be in flight: the send slot is an exclusive lock
    taken without blocking, so overlapping sends fail fast instead of
    queuing.
    """

    def __init__(
        self,
        transport: Transport,
        default_timeout: float = 5.0,
        events: Optional[EventBus] = None
    ) -> None:
        """
        Initialize AT protocol handler.

        Args:
            transport: Transport instance for communication
            default_timeout: Default timeout for AT commands in seconds
            events: Optional event bus receiving "write" traces
        """
        self.transport = transport
        self.default_timeout = default_timeout
        self._events = events

        # Single-flight slot, held for the whole send() call
        self._slot = threading.Lock()

        # Guards the listener registration
        self._pending_lock = threading.Lock()
        self._pending: Optional[_PendingRequest] = None

        logger.info("Initialized AT protocol handler")

    def send(
        self,
        command: str,
        terminator: str = OK,
        timeout: Optional[float] = None
    ) -> Result:
        """
        Send a command and wait for its outcome.

        Args:
            command: Encoded command text, terminators included
            terminator: Success marker ending the response (OK or input prompt)
            timeout: Timeout in seconds (uses default if None)

        Returns:
            (Response, None) on success or (None, ErrorInfo) on device error
            or timeout

        Raises:
            CommandInProgressError: If another command is outstanding
            TransportError: If the command cannot be written, or the link
                fails while waiting
        """
        if not self._slot.acquire(blocking=False):
            raise CommandInProgressError(
                "Another command is still outstanding",
                command=command.strip()
            )

        try:
            timeout_val = timeout if timeout is not None else self.default_timeout
            pending = _PendingRequest(command, terminator)

            # Register before writing so a fast reply cannot be missed
            with self._pending_lock:
                self._pending = pending
            deadline = time.monotonic() + timeout_val

            logger.debug(f"Sending AT command: {command.strip()!r}")
            if self._events is not None:
                self._events.emit(WRITE, command)

            try:
                written = self.transport.write(command.encode("utf-8"))
            except TransportError:
                self._deregister(pending)
                raise
            if not written:
                self._deregister(pending)
                raise TransportError(f"Failed to write AT command: {command.strip()}")

            # Wall clock from registration; trickling data never extends it
            while not pending.done.is_set():
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    if self._resolve(pending, error=ErrorInfo.timeout()):
                        logger.error(f"AT command timed out: {command.strip()!r}")
                    break
                pending.done.wait(remaining)

            if pending.exception is not None:
                raise pending.exception

            if pending.error is not None and not pending.error.is_timeout:
                logger.warning(f"AT command {command.strip()!r} returned {pending.error}")
            else:
                logger.debug(f"Received response: {pending.buffer.text!r}")

            return pending.response, pending.error
        finally:
            self._slot.release()

    def feed(self, chunk: str) -> None:
        """
        Deliver a chunk of modem output to the pending request.

        Chunks arriving while nothing is pending are dropped.

        Args:
            chunk: Decoded text from the transport
        """
        with self._pending_lock:
            pending = self._pending
            if pending is None:
                logger.debug(f"No pending command, dropping {chunk!r}")
                return

            boundary = pending.buffer.on_chunk(chunk)
            if not boundary.is_terminal:
                return

            if boundary.kind is BoundaryKind.SUCCESS:
                pending.response = parse_response(boundary.raw_text, pending.buffer.success_marker)
            else:
                pending.error = ErrorInfo.from_text(boundary.raw_text)

            self._pending = None
            pending.done.set()

    def abort(self, exception: Optional[TransportError] = None) -> bool:
        """
        Resolve the pending command, if any.

        Without an exception the waiting caller gets a timeout-class
        ErrorInfo; with one, its send() raises it.

        Returns:
            True if a pending command was resolved
        """
        with self._pending_lock:
            pending = self._pending
        if pending is None:
            return False

        if exception is not None:
            resolved = self._resolve(pending, exception=exception)
        else:
            resolved = self._resolve(pending, error=ErrorInfo.timeout("ERROR: Request cancelled"))

        if resolved:
            logger.info(f"Aborted pending command {pending.command.strip()!r}")
        return resolved

    def is_busy(self) -> bool:
        """Check if a command is outstanding."""
        return self._slot.locked()

    def _resolve(
        self,
        pending: _PendingRequest,
        error: Optional[ErrorInfo] = None,
        exception: Optional[TransportError] = None
    ) -> bool:
        """First resolution wins; later ones are no-ops."""
        with self._pending_lock:
            if pending.done.is_set():
                return False
            pending.error = error
            pending.exception = exception
            if self._pending is pending:
                self._pending = None
            pending.done.set()
        return True

    def _deregister(self, pending: _PendingRequest) -> None:
        with self._pending_lock:
            if self._pending is pending:
                self._pending = None
