"""
AT command encoder.

Renders logical modem operations into the exact command text the modem
expects, including line terminators and control bytes.
"""

import re

from .types import ErrorVerbosity, MessageFormat, MessageStatus, Storage

CRLF = "\r\n"

# Terminal markers
OK = f"{CRLF}OK{CRLF}"
ERROR = "ERROR"

# Prompt sent by the modem before it accepts a PDU body
INPUT_PROMPT = "> "

CTRL_Z = "\x1a"

_PLACEHOLDERS = re.compile(r"<(crlf|ctrl-z)>", re.IGNORECASE)


def check_ok() -> str:
    """Verify the device is present."""
    return f"AT{CRLF}"


def set_message_format(mode: MessageFormat) -> str:
    """Select PDU (0) or text (1) mode."""
    return f"AT+CMGF={MessageFormat(mode).value}{CRLF}"


def set_error_verbosity(level: ErrorVerbosity) -> str:
    """Select how errors are reported (AT+CMEE)."""
    return f"AT+CMEE={ErrorVerbosity(level).value}{CRLF}"


def set_echo(enabled: bool) -> str:
    return f"ATE{1 if enabled else 0}{CRLF}"


def set_preferred_storage(storage: Storage) -> str:
    """Use one storage area for reading/deleting and for writing/sending."""
    mem = Storage(storage).value
    return f'AT+CPMS="{mem}","{mem}"{CRLF}'


def get_module_id() -> str:
    return f"AT+CGMM{CRLF}"


def get_device_id() -> str:
    return f"AT+GSN{CRLF}"


def list_messages(status: MessageStatus = MessageStatus.ALL) -> str:
    return f"AT+CMGL={MessageStatus(status).value}{CRLF}"


def delete_message(index: int) -> str:
    if index < 0:
        raise ValueError(f"Invalid message index: {index}")
    return f"AT+CMGD={index}{CRLF}"


def begin_send(length: int) -> str:
    """
    Announce a PDU of ``length`` octets (SMSC part excluded).

    The modem answers with the input prompt.
    """
    if length <= 0:
        raise ValueError(f"Invalid PDU length: {length}")
    return f"AT+CMGS={length}{CRLF}"


def message_body(pdu_hex: str) -> str:
    """PDU body terminated by Ctrl-Z."""
    if not pdu_hex:
        raise ValueError("Empty PDU")
    return f"{pdu_hex}{CTRL_Z}"


def normalize_raw(command: str) -> str:
    """
    Prepare user-typed command text.

    Expands ``<crlf>`` and ``<ctrl-z>`` placeholders and terminates the
    line when the text does not already end in CRLF or Ctrl-Z.

    Example:
        >>> normalize_raw("AT+CSQ")
        'AT+CSQ\\r\\n'
    """
    command = _PLACEHOLDERS.sub(
        lambda m: CRLF if m.group(1).lower() == "crlf" else CTRL_Z,
        command
    )
    if not command.endswith((CRLF, CTRL_Z)):
        command += CRLF
    return command
