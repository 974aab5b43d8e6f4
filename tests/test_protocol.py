"""
Tests for command/response correlation.
"""

import threading
import time

import pytest

from smsmodem.core import ATProtocol, MockTransport
from smsmodem.exceptions import CommandInProgressError, TransportError
from smsmodem.types import ErrorCategory


def _wait_for_write(transport, count=1, timeout=1.0):
    deadline = time.monotonic() + timeout
    while len(transport.written) < count and time.monotonic() < deadline:
        time.sleep(0.005)
    assert len(transport.written) >= count


def _send_in_thread(protocol, command, **kwargs):
    result = {}

    def run():
        try:
            result["value"] = protocol.send(command, **kwargs)
        except Exception as e:
            result["exception"] = e

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread, result


class TestSend:
    """Test resolution of a single command."""

    def test_success(self, session, mock_transport):
        mock_transport.add_response("\r\n+CSQ: 24,99\r\n\r\nOK\r\n")

        response, error = session.protocol.send("AT+CSQ\r\n")

        assert error is None
        assert response.ok is True
        assert response.items[0].args == [24, 99]
        assert mock_transport.written == ["AT+CSQ\r\n"]

    def test_device_error(self, session, mock_transport):
        """Test that an error marker resolves with error info."""
        mock_transport.add_response("\r\n+CME ERROR: 10\r\n")

        response, error = session.protocol.send("AT+CPIN?\r\n")

        assert response is None
        assert error.category is ErrorCategory.CME
        assert error.code == "10"
        assert "+CME ERROR: 10" in error.raw_text

    def test_generic_error(self, session, mock_transport):
        mock_transport.add_response("\r\nERROR\r\n")

        _, error = session.protocol.send("AT+FOO\r\n")

        assert error.category is ErrorCategory.GENERIC
        assert error.code == ""

    def test_chunked_response(self, session, mock_transport):
        """Test that a response split across reads is reassembled."""
        mock_transport.add_response("\r\n+CS", "Q: 24,99\r\n", "\r\nO", "K\r\n")

        response, error = session.protocol.send("AT+CSQ\r\n")

        assert error is None
        assert response.raw_text == "\r\n+CSQ: 24,99\r\n\r\nOK\r\n"

    def test_multibyte_split_across_reads(self, session, mock_transport):
        """Test that a UTF-8 character split across reads survives."""
        mock_transport.add_response(b"\r\n+COPS: 0,0,\"Caf\xc3", b"\xa9\"\r\n\r\nOK\r\n")

        response, error = session.protocol.send("AT+COPS?\r\n")

        assert error is None
        assert "Café" in response.raw_text

    def test_custom_terminator(self, session, mock_transport):
        """Test waiting for the input prompt instead of OK."""
        mock_transport.add_response("\r\n> ")

        response, error = session.protocol.send("AT+CMGS=17\r\n", terminator="> ")

        assert error is None
        assert response.ok is True

    def test_sequential_commands(self, session, mock_transport):
        """Test that each command gets its own response."""
        mock_transport.add_response("\r\n+CGMM: EC25\r\n\r\nOK\r\n")
        mock_transport.add_response("\r\nERROR\r\n")
        mock_transport.add_response("\r\nOK\r\n")

        first, _ = session.protocol.send("AT+CGMM\r\n")
        _, second = session.protocol.send("AT+FOO\r\n")
        third, _ = session.protocol.send("AT\r\n")

        assert first.items[0].command_echo == "+CGMM"
        assert second is not None
        assert third.items == []


class TestTimeout:
    """Test timeout handling."""

    def test_timeout_not_before_deadline(self, session, mock_transport):
        """Test that a silent modem times out, never early."""
        mock_transport.add_silence()

        start = time.monotonic()
        response, error = session.protocol.send("AT\r\n", timeout=0.2)
        elapsed = time.monotonic() - start

        assert response is None
        assert error.is_timeout
        assert error.category is ErrorCategory.TIMEOUT
        assert elapsed >= 0.2
        assert elapsed < 1.0

    def test_trickling_data_does_not_extend_deadline(self, session, mock_transport):
        """Test that non-terminal chunks do not reset the timeout."""
        mock_transport.add_silence()
        stop = threading.Event()

        def trickle():
            while not stop.wait(0.05):
                mock_transport.feed("x")

        feeder = threading.Thread(target=trickle, daemon=True)
        feeder.start()
        try:
            start = time.monotonic()
            _, error = session.protocol.send("AT\r\n", timeout=0.3)
            elapsed = time.monotonic() - start
        finally:
            stop.set()
            feeder.join()

        assert error.is_timeout
        assert 0.3 <= elapsed < 1.0

    def test_late_response_dropped(self, session, mock_transport):
        """Test that output arriving after a timeout is not paired with the next command."""
        mock_transport.add_silence()
        _, error = session.protocol.send("AT+SLOW\r\n", timeout=0.1)
        assert error.is_timeout

        mock_transport.feed("\r\n+SLOW: 1\r\n\r\nOK\r\n")
        time.sleep(0.1)

        mock_transport.add_response("\r\n+CSQ: 24,99\r\n\r\nOK\r\n")
        response, error = session.protocol.send("AT+CSQ\r\n")

        assert error is None
        assert response.items[0].command_echo == "+CSQ"

    def test_feed_without_pending_is_ignored(self):
        protocol = ATProtocol(MockTransport())
        protocol.feed("\r\nRING\r\n")
        assert protocol.is_busy() is False


class TestSingleFlight:
    """Test that only one command may be outstanding."""

    def test_overlapping_send_rejected(self, session, mock_transport):
        mock_transport.add_silence()
        thread, result = _send_in_thread(session.protocol, "AT+SLOW\r\n", timeout=0.5)
        _wait_for_write(mock_transport)

        assert session.protocol.is_busy()
        with pytest.raises(CommandInProgressError):
            session.protocol.send("AT\r\n")

        thread.join()
        _, error = result["value"]
        assert error.is_timeout
        assert mock_transport.written == ["AT+SLOW\r\n"]

    def test_slot_released_after_completion(self, session, mock_transport):
        mock_transport.add_response("\r\nOK\r\n")
        session.protocol.send("AT\r\n")

        assert session.protocol.is_busy() is False


class TestAbort:
    """Test resolving a pending command from outside."""

    def test_abort_resolves_with_timeout_error(self, session, mock_transport):
        mock_transport.add_silence()
        thread, result = _send_in_thread(session.protocol, "AT\r\n", timeout=5.0)
        _wait_for_write(mock_transport)

        assert session.protocol.abort() is True
        thread.join(1.0)

        _, error = result["value"]
        assert error.is_timeout
        assert "cancelled" in error.raw_text

    def test_abort_with_exception(self, session, mock_transport):
        """Test that the waiting caller receives a given transport error."""
        mock_transport.add_silence()
        thread, result = _send_in_thread(session.protocol, "AT\r\n", timeout=5.0)
        _wait_for_write(mock_transport)

        session.protocol.abort(TransportError("link lost"))
        thread.join(1.0)

        assert isinstance(result["exception"], TransportError)

    def test_abort_without_pending(self, session):
        assert session.protocol.abort() is False

    def test_abort_after_resolution_is_noop(self, session, mock_transport):
        """Test that the first resolution wins."""
        mock_transport.add_response("\r\nOK\r\n")
        response, error = session.protocol.send("AT\r\n")

        assert session.protocol.abort() is False
        assert response.ok is True
        assert error is None


def test_write_failure_raises(mock_transport):
    """Test that a failed write raises and frees the slot."""
    protocol = ATProtocol(mock_transport)
    mock_transport.close()

    with pytest.raises(TransportError):
        protocol.send("AT\r\n")

    assert protocol.is_busy() is False
