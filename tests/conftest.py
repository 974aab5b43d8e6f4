"""
Pytest configuration and fixtures.

Provides shared test fixtures for SMSModem tests.
"""

import pytest
import logging
from datetime import datetime, timezone

from smsmodem.core import MockTransport, ModemSession
from smsmodem import SMSModem
from smsmodem.parsers.pdu import (
    _pack_septets,
    _text_to_septets,
    encode_phone_number,
    encode_timestamp,
    encode_ucs2,
)


# Enable logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

OK = "\r\nOK\r\n"

MODULE_ID = "EC25"
DEVICE_ID = "867200061927693"


def _queue_boot(transport, module_id=MODULE_ID, device_id=DEVICE_ID):
    transport.add_response("AT\r" + OK)                  # AT (echo still on)
    transport.add_response("AT+CMGF=0\r" + OK)           # AT+CMGF=0
    transport.add_response("AT+CMEE=1\r" + OK)           # AT+CMEE=1
    transport.add_response("ATE0\r" + OK)                # ATE0
    transport.add_response("\r\n+CPMS: 0,50,0,50\r\n" + OK)
    transport.add_response(f"\r\n{module_id}\r\n" + OK)
    transport.add_response(f"\r\n{device_id}\r\n" + OK)


def _build_deliver(
    sender="+1234567890",
    text="Hello",
    concat=None,
    timestamp=datetime(2023, 1, 15, 10, 30, 45, tzinfo=timezone.utc),
    encoding="gsm7",
    wide_reference=False
):
    """concat is (reference, sequence, total)."""
    addr, toa = encode_phone_number(sender)
    digits = len(sender.lstrip("+"))

    first = 0x04
    udh = b""
    if concat is not None:
        reference, sequence, total = concat
        first |= 0x40
        if wide_reference:
            udh = bytes([6, 0x08, 4, reference >> 8, reference & 0xFF, total, sequence])
        else:
            udh = bytes([5, 0x00, 3, reference, total, sequence])

    if encoding == "gsm7":
        dcs = 0x00
        septets = _text_to_septets(text)
        header_septets = (len(udh) * 8 + 6) // 7
        fill_bits = header_septets * 7 - len(udh) * 8
        user_data = udh + _pack_septets(septets, fill_bits=fill_bits)
        udl = header_septets + len(septets)
    else:
        dcs = 0x08
        user_data = udh + encode_ucs2(text)
        udl = len(user_data)

    pdu = (
        bytes([0x00, first, digits, toa]) + addr
        + bytes([0x00, dcs]) + encode_timestamp(timestamp)
        + bytes([udl]) + user_data
    )
    return pdu.hex().upper()


def _cmgl_response(entries):
    body = "".join(
        f"\r\n+CMGL: {index},1,,{len(pdu) // 2 - 1}\r\n{pdu}"
        for index, pdu in entries
    )
    return body + "\r\n" + OK


@pytest.fixture
def mock_transport():
    """
    Create a MockTransport instance for testing.

    Example:
        def test_something(mock_transport):
            mock_transport.add_response("\\r\\nOK\\r\\n")
            # ... test code ...
    """
    transport = MockTransport()
    yield transport
    transport.close()


@pytest.fixture
def queue_boot():
    """Queue the replies of a successful boot sequence on a transport."""
    return _queue_boot


@pytest.fixture
def deliver_pdu():
    """Build SMS-DELIVER PDU hex strings."""
    return _build_deliver


@pytest.fixture
def cmgl_response():
    """Build an AT+CMGL reply from (index, pdu) pairs."""
    return _cmgl_response


@pytest.fixture
def session(mock_transport):
    """
    Create a ModemSession with its reader running but not booted.

    Example:
        def test_send(session, mock_transport):
            mock_transport.add_response("\\r\\nOK\\r\\n")
            response, error = session.protocol.send("AT\\r\\n")
    """
    modem_session = ModemSession(transport=mock_transport, timeout=1.0)
    modem_session.start_reader()
    yield modem_session
    modem_session.disconnect()


@pytest.fixture
def modem(mock_transport):
    """
    Create a connected SMSModem instance with MockTransport.

    Example:
        def test_list(modem, mock_transport):
            mock_transport.add_response("\\r\\nOK\\r\\n")
            messages, error = modem.list_messages()
    """
    _queue_boot(mock_transport)
    modem_instance = SMSModem(transport=mock_transport, timeout=1.0, send_timeout=1.0)
    modem_instance.connect()
    mock_transport.written.clear()
    yield modem_instance
    modem_instance.disconnect()
