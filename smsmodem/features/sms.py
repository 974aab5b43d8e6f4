"""
SMS manager.

Handles SMS messaging operations (list, delete, send) in PDU mode.
"""

import logging
from typing import TYPE_CHECKING, Optional, Union

from .. import commands
from ..exceptions import CodecError
from ..parsers.pdu import encode_sms_submit
from ..types import (
    ErrorInfo,
    LogicalMessage,
    MessageStatus,
    Response,
    SendResult,
    SMSEncoding,
    SubmitPDU,
)
from .reassembly import decode_items, group

if TYPE_CHECKING:
    from ..core import ModemSession
    from ..core.protocol import Result

logger = logging.getLogger(__name__)


def _message_reference(response: Response) -> Optional[int]:
    """Extract the reference from a "+CMGS: <mr>" answer."""
    for item in response.items:
        if item.command_echo == "+CMGS" and item.args and item.args[0] is not None:
            return item.args[0]
    return None


class MessageManager:
    """
    Manages SMS messaging operations.

    Features:
    - List messages, with multi-part messages reassembled
    - Delete messages by storage index
    - Send messages, split into segments as needed
    - Encoding fallback to UCS2 when GSM 7-bit cannot encode the text
    """

    def __init__(
        self,
        session: "ModemSession",
        send_timeout: float = 30.0
    ) -> None:
        """
        Initialize SMS manager.

        Args:
            session: ModemSession used for AT command execution
            send_timeout: Timeout for a PDU body to be accepted (seconds)
        """
        self.session = session
        self.send_timeout = send_timeout

        logger.debug("Initialized MessageManager")

    def list_messages(
        self,
        status: MessageStatus = MessageStatus.ALL
    ) -> tuple[list[LogicalMessage], Optional[ErrorInfo]]:
        """
        List stored messages.

        Args:
            status: Message status filter (default: ALL)

        Returns:
            (messages, None) on success, ([], ErrorInfo) on failure

        Example:

        .. code-block:: python

            messages, error = modem.list_messages()
            for msg in messages:
                print(f"{msg.sender} @ {msg.timestamp}: {msg.text}")
        """
        logger.info(f"Listing messages with status: {status.name}")

        response, error = self.session.send(commands.list_messages(status))
        if error is not None:
            logger.warning(f"Listing messages failed: {error}")
            return [], error

        messages = group(decode_items(response.items))
        logger.info(f"Found {len(messages)} message(s)")
        return messages, None

    def delete_message(self, index: int) -> "Result":
        """
        Delete a message by storage index.

        Args:
            index: Message index to delete

        Returns:
            (Response, None) on success, (None, ErrorInfo) on failure

        Example:

        .. code-block:: python

            response, error = modem.delete_message(5)
        """
        logger.info(f"Deleting message at index {index}")

        response, error = self.session.send(commands.delete_message(index))
        if error is not None:
            logger.warning(f"Failed to delete message {index}: {error}")
        else:
            logger.info(f"Deleted message {index}")
        return response, error

    def delete_logical_message(self, message: LogicalMessage) -> Optional[ErrorInfo]:
        """
        Delete every stored segment of a logical message.

        Returns:
            The first error met, or None
        """
        for index in message.indexes:
            if index is None:
                continue
            _, error = self.delete_message(index)
            if error is not None:
                return error
        return None

    def send_message(
        self,
        number: str,
        text: str,
        encoding: Union[str, SMSEncoding, None] = None,
        request_status: bool = False
    ) -> SendResult:
        """
        Send an SMS message.

        Long messages are split into concatenated segments. Each segment is
        announced with AT+CMGS, then its PDU body is sent once the modem
        shows the input prompt. Sending stops at the first failing segment.

        An explicit encoding is used as given. Without one, GSM 7-bit is
        tried first and, if it cannot encode the text, the whole message is
        encoded again as UCS2.

        Args:
            number: Recipient phone number (with or without +)
            text: Message text
            encoding: "gsm7", "ucs2" or None
            request_status: Request delivery status report

        Returns:
            SendResult with per-segment responses, or the failing segment
            and its error

        Raises:
            CodecError: If the text cannot be encoded

        Example:

        .. code-block:: python

            result = modem.send_message("+1234567890", "Hello!")
            if not result.ok:
                print(f"Segment {result.failed_segment} failed: {result.error}")
        """
        logger.info(f"Sending SMS to {number}")

        pdus = self._encode(number, text, encoding, request_status)
        result = SendResult(total_segments=len(pdus))
        logger.debug(f"Message will be sent as {len(pdus)} part(s)")

        for sequence, pdu in enumerate(pdus, start=1):
            response, error = self._send_segment(pdu)
            if error is not None:
                result.error = error
                result.failed_segment = sequence
                logger.error(
                    f"Segment {sequence}/{len(pdus)} failed after "
                    f"{result.sent_segments} sent: {error}"
                )
                return result

            result.responses.append(response)
            reference = _message_reference(response)
            if reference is not None:
                result.message_references.append(reference)

        logger.info(f"SMS sent successfully, references: {result.message_references}")
        return result

    def _encode(
        self,
        number: str,
        text: str,
        encoding: Union[str, SMSEncoding, None],
        request_status: bool
    ) -> list[SubmitPDU]:
        try:
            return encode_sms_submit(number, text, encoding=encoding, request_status=request_status)
        except CodecError as e:
            if encoding is not None:
                raise
            logger.warning(f"GSM 7-bit encoding failed ({e}), retrying with UCS2")

        return encode_sms_submit(number, text, encoding=SMSEncoding.UCS2, request_status=request_status)

    def _send_segment(self, pdu: SubmitPDU) -> "Result":
        _, error = self.session.send(
            commands.begin_send(pdu.length),
            terminator=commands.INPUT_PROMPT
        )
        if error is not None:
            return None, error

        return self.session.send(commands.message_body(pdu.hex), timeout=self.send_timeout)
