"""
Tests for SMS manager.
"""

import pytest

from smsmodem import SMSModem, MockTransport
from smsmodem.exceptions import CodecError, ModemNotConnectedError
from smsmodem.parsers.pdu import decode_pdu
from smsmodem.types import ErrorCategory, MessageStatus

PROMPT = "\r\n> "


def _accepted(reference):
    return f"\r\n+CMGS: {reference}\r\n\r\nOK\r\n"


def _body_pdu(written):
    """PDU hex from a written body command."""
    assert written.endswith("\x1a")
    return written[:-1]


class TestListMessages:
    """Test listing and reassembly."""

    def test_list_single_message(self, modem, mock_transport, deliver_pdu, cmgl_response):
        mock_transport.add_response(cmgl_response([(1, deliver_pdu(text="Hello"))]))

        messages, error = modem.list_messages()

        assert error is None
        assert mock_transport.written == ["AT+CMGL=4\r\n"]
        assert len(messages) == 1
        assert messages[0].text == "Hello"
        assert messages[0].sender == "+1234567890"
        assert messages[0].indexes == [1]

    def test_list_reassembles_multipart(self, modem, mock_transport, deliver_pdu, cmgl_response):
        """Test that concatenated segments come back as one message."""
        mock_transport.add_response(cmgl_response([
            (1, deliver_pdu(text="world", concat=(7, 2, 2))),
            (2, deliver_pdu(text="Standalone", sender="+1987654321")),
            (3, deliver_pdu(text="hello ", concat=(7, 1, 2))),
        ]))

        messages, error = modem.list_messages()

        assert error is None
        assert [m.text for m in messages] == ["Standalone", "hello world"]
        assert messages[1].indexes == [3, 1]
        assert messages[1].is_complete

    def test_list_chunked_response(self, modem, mock_transport, deliver_pdu, cmgl_response):
        """Test a listing that arrives in small pieces."""
        raw = cmgl_response([(1, deliver_pdu(text="Hello")), (2, deliver_pdu(text="again"))])
        chunks = [raw[i:i + 16] for i in range(0, len(raw), 16)]
        mock_transport.add_response(*chunks)

        messages, error = modem.list_messages()

        assert error is None
        assert [m.text for m in messages] == ["Hello", "again"]

    def test_list_empty(self, modem, mock_transport):
        mock_transport.add_response("\r\nOK\r\n")

        messages, error = modem.list_messages()

        assert messages == []
        assert error is None

    def test_list_unread(self, modem, mock_transport):
        mock_transport.add_response("\r\nOK\r\n")

        modem.list_messages(MessageStatus.REC_UNREAD)

        assert mock_transport.written == ["AT+CMGL=0\r\n"]

    def test_list_skips_malformed(self, modem, mock_transport, deliver_pdu, cmgl_response):
        mock_transport.add_response(cmgl_response([
            (1, "00040B91"),
            (2, deliver_pdu(text="Hello")),
        ]))

        messages, error = modem.list_messages()

        assert error is None
        assert len(messages) == 1
        assert messages[0].indexes == [2]

    def test_list_error(self, modem, mock_transport):
        mock_transport.add_response("\r\n+CMS ERROR: 321\r\n")

        messages, error = modem.list_messages()

        assert messages == []
        assert error.category is ErrorCategory.CMS
        assert error.code == "321"


class TestDeleteMessages:
    """Test message deletion."""

    def test_delete_message(self, modem, mock_transport):
        mock_transport.add_response("\r\nOK\r\n")

        response, error = modem.delete_message(3)

        assert error is None
        assert response.ok is True
        assert mock_transport.written == ["AT+CMGD=3\r\n"]

    def test_delete_error(self, modem, mock_transport):
        mock_transport.add_response("\r\n+CMS ERROR: 321\r\n")

        response, error = modem.delete_message(99)

        assert response is None
        assert error.code == "321"

    def test_delete_logical_message(self, modem, mock_transport, deliver_pdu, cmgl_response):
        """Test deleting every stored segment of a message."""
        mock_transport.add_response(cmgl_response([
            (4, deliver_pdu(text="world", concat=(7, 2, 2))),
            (5, deliver_pdu(text="hello ", concat=(7, 1, 2))),
        ]))
        messages, _ = modem.list_messages()
        mock_transport.written.clear()

        mock_transport.add_response("\r\nOK\r\n")
        mock_transport.add_response("\r\nOK\r\n")
        error = modem.sms.delete_logical_message(messages[0])

        assert error is None
        assert mock_transport.written == ["AT+CMGD=5\r\n", "AT+CMGD=4\r\n"]


class TestSendSMS:
    """Test message sending."""

    def test_send_single(self, modem, mock_transport):
        mock_transport.add_response(PROMPT)
        mock_transport.add_response(_accepted(12))

        result = modem.send_message("+1234567890", "Hello")

        assert result.ok is True
        assert result.total_segments == 1
        assert result.message_references == [12]
        assert mock_transport.written == [
            "AT+CMGS=17\r\n",
            "0001000A912143658709000005C8329BFD06\x1a",
        ]

    def test_send_multipart(self, modem, mock_transport):
        """Test that each segment is announced and sent in order."""
        for reference in (12, 13):
            mock_transport.add_response(PROMPT)
            mock_transport.add_response(_accepted(reference))

        result = modem.send_message("+1234567890", "A" * 200)

        assert result.ok is True
        assert result.total_segments == 2
        assert result.sent_segments == 2
        assert result.message_references == [12, 13]

        assert mock_transport.written[0].startswith("AT+CMGS=")
        assert mock_transport.written[2].startswith("AT+CMGS=")
        first = decode_pdu(_body_pdu(mock_transport.written[1]))
        second = decode_pdu(_body_pdu(mock_transport.written[3]))
        assert first.concat.sequence == 1
        assert second.concat.sequence == 2
        assert first.concat.reference == second.concat.reference
        assert first.text + second.text == "A" * 200

    def test_announced_length_matches_body(self, modem, mock_transport):
        mock_transport.add_response(PROMPT)
        mock_transport.add_response(_accepted(1))

        modem.send_message("+1234567890", "Length check")

        announced = int(mock_transport.written[0][len("AT+CMGS="):-2])
        body = _body_pdu(mock_transport.written[1])
        assert announced == len(body) // 2 - 1

    def test_send_stops_at_failing_segment(self, modem, mock_transport):
        """Test the report when the second segment is refused."""
        mock_transport.add_response(PROMPT)
        mock_transport.add_response(_accepted(12))
        mock_transport.add_response(PROMPT)
        mock_transport.add_response("\r\n+CMS ERROR: 500\r\n")

        result = modem.send_message("+1234567890", "A" * 400)

        assert result.ok is False
        assert result.total_segments == 3
        assert result.failed_segment == 2
        assert result.sent_segments == 1
        assert result.error.category is ErrorCategory.CMS
        assert len(mock_transport.written) == 4

    def test_prompt_refused(self, modem, mock_transport):
        """Test that no body is written when the prompt never comes."""
        mock_transport.add_response("\r\nERROR\r\n")

        result = modem.send_message("+1234567890", "Hello")

        assert result.failed_segment == 1
        assert result.sent_segments == 0
        assert mock_transport.written == ["AT+CMGS=17\r\n"]

    def test_send_timeout(self, mock_transport, queue_boot):
        """Test a body the network never confirms."""
        queue_boot(mock_transport)
        modem = SMSModem(transport=mock_transport, timeout=1.0, send_timeout=0.2)
        modem.connect()
        mock_transport.add_response(PROMPT)
        mock_transport.add_silence()

        result = modem.send_message("+1234567890", "Hello")

        assert result.failed_segment == 1
        assert result.error.is_timeout
        modem.disconnect()

    def test_ucs2_fallback(self, modem, mock_transport):
        """Test that text outside GSM 7-bit is sent as UCS2."""
        mock_transport.add_response(PROMPT)
        mock_transport.add_response(_accepted(1))

        result = modem.send_message("+1234567890", "Привет")

        assert result.ok is True
        decoded = decode_pdu(_body_pdu(mock_transport.written[1]))
        assert decoded.encoding == "ucs2"
        assert decoded.text == "Привет"

    def test_extension_characters_stay_gsm7(self, modem, mock_transport):
        mock_transport.add_response(PROMPT)
        mock_transport.add_response(_accepted(1))

        modem.send_message("+1234567890", "Price: 5€ [net]")

        decoded = decode_pdu(_body_pdu(mock_transport.written[1]))
        assert decoded.encoding == "gsm7"
        assert decoded.text == "Price: 5€ [net]"

    def test_explicit_encoding_not_replaced(self, modem, mock_transport):
        """Test that an explicit encoding is never silently changed."""
        with pytest.raises(CodecError):
            modem.send_message("+1234567890", "Привет", encoding="gsm7")

        assert mock_transport.written == []

    def test_status_report_request(self, modem, mock_transport):
        mock_transport.add_response(PROMPT)
        mock_transport.add_response(_accepted(1))

        modem.send_message("+1234567890", "Hello", request_status=True)

        assert _body_pdu(mock_transport.written[1])[2:4] == "21"


def test_requires_connection():
    modem = SMSModem(transport=MockTransport())

    with pytest.raises(ModemNotConnectedError):
        modem.list_messages()
    with pytest.raises(ModemNotConnectedError):
        modem.send_message("+1234567890", "Hello")
