"""
Modem session coordinating transport, protocol, boot sequence and state.

This is the foundation that feature managers build upon.
"""

import codecs
import logging
import threading
from typing import Callable, Optional

from .boot import BootSequencer
from .events import READ, EventBus, EventCallback
from .protocol import ATProtocol, Result
from .state import ConnectionStateMachine
from .transport import Transport
from ..commands import OK
from ..exceptions import (
    BootError,
    DeviceDisconnectedError,
    ModemNotConnectedError,
    TransportError,
)
from ..types import BootReport, ConnectionState, Storage

logger = logging.getLogger(__name__)


class ModemSession:
    """
    One modem session.

    Coordinates:
    - Transport layer (serial communication)
    - Protocol layer (command/response correlation)
    - Reader thread (continuous chunk delivery)
    - Boot sequence and connection state

    A session is single use: once DISCONNECTED, build a new one.
    """

    def __init__(
        self,
        transport: Transport,
        timeout: float = 5.0,
        storage: Storage = Storage.ME,
        read_size: int = 256,
        on_disconnect: Optional[Callable[[Exception], None]] = None
    ) -> None:
        """
        Initialize modem session.

        Args:
            transport: Transport instance for communication
            timeout: Default timeout for AT commands
            storage: Storage area selected during boot
            read_size: Maximum bytes per transport read
            on_disconnect: Optional callback for device disconnection
        """
        self.transport = transport
        self.events = EventBus()
        self.protocol = ATProtocol(transport, default_timeout=timeout, events=self.events)
        self.state_machine = ConnectionStateMachine(self.events)
        self.sequencer = BootSequencer(self.protocol, storage=storage)
        self.read_size = read_size

        self.module_id: Optional[str] = None
        self.device_id: Optional[str] = None

        # Reader thread management
        self._reader_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._running = False
        self._on_disconnect = on_disconnect
        self._teardown_lock = threading.Lock()
        self._fatal_lock = threading.Lock()
        self._failed = False

        # Error handling
        self._consecutive_errors = 0
        self._max_consecutive_errors = 5

        logger.info("Initialized ModemSession")

    @property
    def state(self) -> ConnectionState:
        return self.state_machine.state

    def connect(self) -> BootReport:
        """
        Open the transport, start reading and run the boot sequence.

        Returns:
            BootReport of the boot sequence

        Raises:
            BootError: If a boot step fails (session ends DISCONNECTED)
            TransportError: If the link fails (session ends DISCONNECTED)
        """
        if self.state is not ConnectionState.CONNECTING:
            raise ModemNotConnectedError(f"Cannot connect a {self.state.value} session")

        self.state_machine.announce()
        try:
            if not self.transport.is_open():
                self.transport.open()
            self.start_reader()
            report = self._boot()
        except (BootError, TransportError):
            self.disconnect()
            raise

        # A concurrent disconnect() may have ended the session during boot
        with self._teardown_lock:
            if self.state is ConnectionState.DISCONNECTED:
                raise ModemNotConnectedError("Session was closed during boot")
            self.state_machine.transition(ConnectionState.CONNECTED)
        return report

    def reboot(self) -> BootReport:
        """
        Re-run the boot sequence without reopening the transport.

        Raises:
            ModemNotConnectedError: If the session is not connected
            BootError: If a boot step fails (session ends DISCONNECTED)
        """
        self._require_connected()
        logger.info("Rebooting modem session")
        try:
            return self._boot()
        except (BootError, TransportError):
            self.disconnect()
            raise

    def _boot(self) -> BootReport:
        report = self.sequencer.boot()
        self.module_id = report.module_id
        self.device_id = report.device_id
        return report

    def disconnect(self) -> None:
        """
        Tear down the session.

        Any pending command resolves with a timeout-class error. Safe to
        call more than once.
        """
        with self._teardown_lock:
            if self.state is ConnectionState.DISCONNECTED and not self._running:
                return

            logger.info("Closing modem session")
            self.protocol.abort()
            self.stop_reader()
            self.transport.close()
            self.state_machine.transition(ConnectionState.DISCONNECTED)
            logger.info("Modem session closed")

    def send(self, command: str, terminator: str = OK, timeout: Optional[float] = None) -> Result:
        """
        Send a command on a connected session.

        Raises:
            ModemNotConnectedError: If the session is not connected
            TransportError: If the link fails (session ends DISCONNECTED)
        """
        self._require_connected()
        try:
            return self.protocol.send(command, terminator=terminator, timeout=timeout)
        except TransportError as e:
            if self.state is not ConnectionState.DISCONNECTED:
                logger.error(f"Link failed during {command.strip()!r}, closing session")
                self.stop_reader()
                self._handle_fatal(e)
            raise

    def _require_connected(self) -> None:
        if self.state is not ConnectionState.CONNECTED:
            raise ModemNotConnectedError(f"Modem session is {self.state.value}")

    def subscribe(self, event: str, callback: EventCallback) -> None:
        self.events.subscribe(event, callback)

    def unsubscribe(self, event: str, callback: EventCallback) -> bool:
        return self.events.unsubscribe(event, callback)

    def start_reader(self) -> None:
        """
        Start the reader thread.

        The reader continuously pulls chunks from the transport and feeds
        them to the protocol handler.
        """
        if self._running:
            logger.warning("Reader already started")
            return

        self._consecutive_errors = 0
        self._stop_event.clear()
        self._reader_thread = threading.Thread(
            target=self._reader_loop,
            daemon=True,
            name="ModemReaderThread"
        )
        self._running = True
        self._reader_thread.start()
        logger.info("Started modem reader thread")

    def stop_reader(self) -> None:
        """Stop the reader thread and wait for it to terminate."""
        if not self._running:
            return

        logger.info("Stopping modem reader thread...")
        self._stop_event.set()

        if self._reader_thread and self._reader_thread is not threading.current_thread():
            self._reader_thread.join(timeout=1.0)
            if self._reader_thread.is_alive():
                logger.warning("Reader thread did not terminate in time")

        self._running = False
        logger.info("Stopped modem reader thread")

    def _reader_loop(self) -> None:
        """
        Continuously read chunks from the modem.

        Multi-byte characters split across reads are reassembled by an
        incremental decoder before the text reaches the protocol handler.
        """
        logger.debug("Reader thread started")
        decoder = codecs.getincrementaldecoder("utf-8")(errors="ignore")

        while not self._stop_event.is_set():
            try:
                data = self.transport.read(self.read_size)

                # Reset error counter on successful read
                self._consecutive_errors = 0

                if not data:
                    continue

                text = decoder.decode(data)
                if not text:
                    continue

                self.events.emit(READ, text)
                self.protocol.feed(text)

            except DeviceDisconnectedError as e:
                if self._stop_event.is_set():
                    break
                logger.error("Device disconnected, stopping reader thread")
                self._handle_fatal(e)
                break
            except TransportError as e:
                # Handle consecutive errors with backoff
                self._consecutive_errors += 1
                logger.error(f"Error in reader loop ({self._consecutive_errors}/{self._max_consecutive_errors}): {e}")

                if self._consecutive_errors >= self._max_consecutive_errors:
                    logger.error(f"Too many consecutive errors ({self._consecutive_errors}), stopping reader thread")
                    self._handle_fatal(e)
                    break

                # Exponential backoff: 0.1s, 0.2s, 0.4s, 0.8s
                backoff_time = 0.1 * (2 ** (self._consecutive_errors - 1))
                self._stop_event.wait(backoff_time)

        logger.debug("Reader thread stopped")

    def _handle_fatal(self, error: TransportError) -> None:
        """Transport failures end the session."""
        with self._fatal_lock:
            if self._failed:
                return
            self._failed = True

        self._running = False
        self.protocol.abort(error)
        self.transport.close()
        if self.state is not ConnectionState.DISCONNECTED:
            self.state_machine.transition(ConnectionState.DISCONNECTED)

        if self._on_disconnect:
            try:
                self._on_disconnect(error)
            except Exception as e:
                logger.error(f"Disconnect callback failed: {e}", exc_info=True)

    def is_running(self) -> bool:
        """Check if the reader thread is running."""
        return self._running

    def is_disconnected(self) -> bool:
        """Check if the session has ended."""
        return self.state is ConnectionState.DISCONNECTED

    def __enter__(self):
        """Context manager entry."""
        if self.state is ConnectionState.CONNECTING:
            self.connect()
        return self

    def __exit__(self, *exc):
        """Context manager exit."""
        self.disconnect()
