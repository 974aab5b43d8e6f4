"""
Exceptions for SMSModem library.

Provides detailed error information for debugging modem communication issues.
"""

from typing import Optional


class ModemError(Exception):
    """
    Base exception for modem errors.

    All SMSModem exceptions inherit from this class.
    """

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        response: Optional[str] = None
    ) -> None:
        """
        Initialize exception with context.

        Args:
            message: Error description
            command: AT command that caused the error (if applicable)
            response: Raw modem response (if applicable)
        """
        self.command = command
        self.response = response
        super().__init__(message)

    def __str__(self) -> str:
        """Format error message with context."""
        parts = [super().__str__()]

        if self.command:
            parts.append(f"Command: {self.command!r}")

        if self.response:
            parts.append(f"Response: {self.response!r}")

        return " | ".join(parts)


class DeviceError(ModemError):
    """
    Raised when the device answered with an error marker.

    Carries the error category (CME, CMS or generic) and the device code.
    """

    def __init__(
        self,
        message: str,
        category: Optional[str] = None,
        code: str = "",
        command: Optional[str] = None,
        response: Optional[str] = None
    ) -> None:
        self.category = category
        self.code = code
        super().__init__(message, command=command, response=response)


class ATTimeoutError(ModemError):
    """
    Raised when an AT command times out.

    This typically indicates:
    - Modem is not responding
    - Serial connection issue
    - Command takes longer than timeout
    """
    pass


class TransportError(ModemError):
    """
    Raised when transport layer fails.

    This indicates:
    - Serial port issues
    - Connection lost
    - Hardware communication failure
    """
    pass


class DeviceDisconnectedError(TransportError):
    """
    Raised when device is disconnected during operation.

    This is a fatal error that requires closing and reopening the connection.
    """
    pass


class BootError(ModemError):
    """
    Raised when a step of the boot sequence fails.

    Attributes:
        step: Name of the configuration step that failed
        cause: ErrorInfo returned for that step
    """

    def __init__(self, step: str, cause) -> None:
        self.step = step
        self.cause = cause
        super().__init__(
            f"Boot step '{step}' failed: {cause}",
            response=getattr(cause, "raw_text", None)
        )


class CodecError(ModemError):
    """
    Raised when a PDU cannot be encoded or decoded.

    This indicates:
    - Characters outside the selected alphabet
    - Truncated or malformed PDU data
    - Unsupported PDU type or encoding
    """
    pass


class CommandInProgressError(ModemError):
    """
    Raised when a command is sent while another one is still outstanding.

    Only one command may be correlated against the modem output at a time.
    """
    pass


class ModemNotConnectedError(ModemError):
    """
    Raised when attempting to use a session that is not connected.
    """
    pass


class InvalidStateTransition(ModemError):
    """
    Raised when the connection state machine is asked for a forbidden move.
    """
    pass
