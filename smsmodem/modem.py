"""
Main SMSModem class.

User-facing API that coordinates the modem session and message operations.
"""

import logging
from typing import Callable, Optional, Union

from . import commands
from .core import ModemSession, SerialTransport, Transport, EventCallback
from .core.protocol import Result
from .features import MessageManager
from .types import (
    BootReport,
    ConnectionState,
    ErrorInfo,
    LogicalMessage,
    MessageStatus,
    SendResult,
    SMSEncoding,
    Storage,
)

logger = logging.getLogger(__name__)


class SMSModem:
    """
    Main interface for SMS modem control.

    Example usage with context manager:

    .. code-block:: python

        with SMSModem(port="/dev/ttyUSB2") as modem:
            print(f"Module: {modem.module_id}, IMEI: {modem.device_id}")

            messages, error = modem.list_messages()
            for msg in messages:
                print(f"{msg.sender}: {msg.text}")

            result = modem.send_message("+1234567890", "Hello!")

    Example usage with manual lifecycle management:

    .. code-block:: python

        modem = SMSModem(port="/dev/ttyUSB2")
        modem.subscribe("state_change", lambda state: print(state))
        modem.connect()
        # ... use modem ...
        modem.disconnect()
    """

    def __init__(
        self,
        port: Optional[str] = None,
        transport: Optional[Transport] = None,
        baudrate: int = 115200,
        timeout: float = 5.0,
        send_timeout: float = 30.0,
        storage: Storage = Storage.ME,
        read_size: int = 256,
        on_disconnect: Optional[Callable[[Exception], None]] = None
    ) -> None:
        """
        Initialize SMSModem.

        Args:
            port: Serial port path (e.g., "/dev/ttyUSB2"). Either port or transport required.
            transport: Custom transport instance (for testing). Overrides port if provided.
            baudrate: Serial port baud rate (default: 115200)
            timeout: AT command timeout in seconds (default: 5.0)
            send_timeout: Timeout for the modem to accept a PDU body (default: 30.0)
            storage: Message storage selected at boot (default: ME)
            read_size: Maximum bytes per transport read (default: 256)
            on_disconnect: Optional callback function called when device disconnects.
                          Signature: callback(exception: Exception) -> None

        Raises:
            ValueError: If neither port nor transport is provided

        Example:

        .. code-block:: python

            # Using serial port
            modem = SMSModem(port="/dev/ttyUSB2")

            # Using custom transport (for testing)
            from smsmodem.core import MockTransport
            modem = SMSModem(transport=MockTransport())
        """
        if transport is None and port is None:
            raise ValueError("Either 'port' or 'transport' must be provided")

        if transport is None:
            transport = SerialTransport(port=port, baudrate=baudrate)
            logger.info(f"Created serial transport for {port}")

        self._session = ModemSession(
            transport=transport,
            timeout=timeout,
            storage=storage,
            read_size=read_size,
            on_disconnect=on_disconnect
        )
        self.sms = MessageManager(self._session, send_timeout=send_timeout)

        logger.info("Initialized SMSModem")

    def connect(self) -> BootReport:
        """
        Open the link and run the boot sequence.

        Raises:
            BootError: If a boot step fails
            TransportError: If the serial link fails
        """
        report = self._session.connect()
        logger.info("Modem connected")
        return report

    def reboot(self) -> BootReport:
        """Re-run the boot sequence on the open link."""
        return self._session.reboot()

    def disconnect(self) -> None:
        """Close the modem connection (idempotent)."""
        self._session.disconnect()
        logger.info("Modem disconnected")

    def list_messages(
        self,
        status: MessageStatus = MessageStatus.ALL
    ) -> tuple[list[LogicalMessage], Optional[ErrorInfo]]:
        """List stored messages; see MessageManager.list_messages."""
        return self.sms.list_messages(status)

    def delete_message(self, index: int) -> Result:
        """Delete a stored message; see MessageManager.delete_message."""
        return self.sms.delete_message(index)

    def send_message(
        self,
        number: str,
        text: str,
        encoding: Union[str, SMSEncoding, None] = None,
        request_status: bool = False
    ) -> SendResult:
        """Send a message; see MessageManager.send_message."""
        return self.sms.send_message(number, text, encoding=encoding, request_status=request_status)

    def send_raw(
        self,
        command: str,
        terminator: str = commands.OK,
        timeout: Optional[float] = None
    ) -> Result:
        """
        Send an arbitrary command.

        For advanced users who need commands not covered by the API.
        ``<crlf>`` and ``<ctrl-z>`` placeholders are expanded.

        Args:
            command: Command text (e.g., "AT+CSQ")
            terminator: Success marker to wait for
            timeout: Command timeout in seconds (uses default if None)

        Returns:
            (Response, None) or (None, ErrorInfo)

        Example:

        .. code-block:: python

            response, error = modem.send_raw("AT+CSQ")
            if response:
                print(response.items[0].args)
        """
        return self._session.send(commands.normalize_raw(command), terminator=terminator, timeout=timeout)

    def subscribe(self, event: str, callback: EventCallback) -> None:
        """
        Subscribe to session events.

        Events:
            - "state_change": callback(ConnectionState)
            - "write": callback(command text)
            - "read": callback(raw text received)

        Example:

        .. code-block:: python

            modem.subscribe("read", lambda text: print(f"<< {text!r}"))
        """
        self._session.subscribe(event, callback)

    def unsubscribe(self, event: str, callback: EventCallback) -> bool:
        """Remove an event callback."""
        return self._session.unsubscribe(event, callback)

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._session.state

    @property
    def module_id(self) -> Optional[str]:
        """Module identification read at boot (None if unavailable)."""
        return self._session.module_id

    @property
    def device_id(self) -> Optional[str]:
        """Device identification (IMEI) read at boot (None if unavailable)."""
        return self._session.device_id

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def __enter__(self):
        """
        Context manager entry.

        Connects the modem if not already connected.
        """
        if self.state is ConnectionState.CONNECTING:
            self.connect()
        return self

    def __exit__(self, *exc):
        """
        Context manager exit.

        Closes the modem connection.
        """
        self.disconnect()

    def __repr__(self) -> str:
        """String representation of modem."""
        return f"<SMSModem state={self.state.value}>"
