"""
CLI REPL (Read-Eval-Print Loop) for SMSModem.

Provides an interactive AT command terminal with SMS shortcuts.
"""

import sys
import logging
from typing import Optional

from .modem import SMSModem
from .version import __version__
from .exceptions import ModemError, TransportError
from .types import ConnectionState


class SMSModemCLI:
    """Interactive AT command REPL."""

    def __init__(self, port: str, baudrate: int = 115200, trace: bool = False):
        """
        Initialize CLI.

        Args:
            port: Serial port path
            baudrate: Baud rate
            trace: Display raw traffic in real-time
        """
        self.port = port
        self.baudrate = baudrate
        self.trace = trace
        self.modem: Optional[SMSModem] = None

    def _show_write(self, text: str):
        if self.trace:
            print(f">> {text!r}")

    def _show_read(self, text: str):
        if self.trace:
            print(f"<< {text!r}")

    def _show_state(self, state: ConnectionState):
        print(f"[{state.value}]")

    def run(self):
        """Run the REPL."""
        print(f"SMSModem CLI v{__version__}")
        print(f"Connecting to {self.port} at {self.baudrate} baud...")
        print("Type 'help' for commands, 'quit' to exit\n")

        try:
            self.modem = SMSModem(port=self.port, baudrate=self.baudrate)
            self.modem.subscribe("state_change", self._show_state)
            self.modem.subscribe("write", self._show_write)
            self.modem.subscribe("read", self._show_read)
            self.modem.connect()

            print("Connected! Ready for AT commands.\n")

            while self.modem.is_connected:
                try:
                    line = input("> ").strip()

                    if not line:
                        continue
                    if not self._dispatch(line):
                        break

                except KeyboardInterrupt:
                    print("\nUse 'quit' to exit")
                    continue
                except EOFError:
                    break

        except ModemError as e:
            print(f"\nError: {e}")
            return 1
        finally:
            if self.modem:
                print("\nClosing connection...")
                self.modem.disconnect()
                print("Goodbye!")

        return 0

    def _dispatch(self, line: str) -> bool:
        """
        Run one REPL line.

        Errors from a single command are printed and the session goes on;
        a link failure ends the REPL.

        Returns:
            False when the user asked to quit
        """
        cmd, _, rest = line.partition(" ")
        cmd = cmd.lower()

        if cmd in ("quit", "exit", "q"):
            return False

        try:
            if cmd == "help":
                self._print_help()
            elif cmd == "trace":
                self.trace = not self.trace
                print(f"Trace: {'on' if self.trace else 'off'}")
            elif cmd == "info":
                self._show_modem_info()
            elif cmd == "list":
                self._list_messages()
            elif cmd == "delete":
                self._delete_message(rest)
            elif cmd == "send":
                self._send_message(rest)
            else:
                self._send_command(line)
        except TransportError:
            raise
        except (ValueError, ModemError) as e:
            print(f"Error: {e}")
        return True

    def _send_command(self, cmd: str):
        """Send AT command and display response."""
        response, error = self.modem.send_raw(cmd)
        if error:
            print(f"Error: {error}")
            return
        for item in response.items:
            print(item.raw_text)
        print("OK" if response.ok else "")

    def _list_messages(self):
        messages, error = self.modem.list_messages()
        if error:
            print(f"Error: {error}")
            return
        if not messages:
            print("No messages")
        for msg in messages:
            indexes = ",".join(str(i) for i in msg.indexes)
            partial = "" if msg.is_complete else f" (partial {len(msg.segments)}/{msg.total})"
            print(f"[{indexes}] {msg.sender} {msg.timestamp or ''}{partial}")
            print(f"    {msg.text}")

    def _delete_message(self, arg: str):
        try:
            index = int(arg)
        except ValueError:
            print("Usage: delete <index>")
            return
        _, error = self.modem.delete_message(index)
        print(f"Error: {error}" if error else f"Deleted {index}")

    def _send_message(self, arg: str):
        number, _, text = arg.partition(" ")
        if not number or not text:
            print("Usage: send <number> <text>")
            return
        result = self.modem.send_message(number, text)
        if result.ok:
            print(f"Sent {result.total_segments} segment(s), references: {result.message_references}")
        else:
            print(
                f"Segment {result.failed_segment}/{result.total_segments} failed "
                f"after {result.sent_segments} sent: {result.error}"
            )

    def _print_help(self):
        """Print help message."""
        print("""
Available commands:
  <AT command>          - Send AT command to modem (e.g., AT+CSQ)
                          <crlf> and <ctrl-z> are expanded
  list                  - List stored messages
  delete <index>        - Delete message at storage index
  send <number> <text>  - Send a message
  info                  - Show modem identity
  trace                 - Toggle raw traffic display
  help                  - Show this help message
  quit/exit/q           - Exit CLI
        """)

    def _show_modem_info(self):
        """Show modem information."""
        print(f"\nModule: {self.modem.module_id or 'unknown'}")
        print(f"IMEI: {self.modem.device_id or 'unknown'}")
        print(f"State: {self.modem.state.value}")


def main():
    """Main entry point for CLI."""
    import argparse

    parser = argparse.ArgumentParser(
        description="SMSModem CLI - Interactive AT command terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  smsmodem-cli /dev/ttyUSB2
  smsmodem-cli /dev/ttyUSB2 --baudrate 9600
  smsmodem-cli /dev/ttyUSB2 --trace
        """
    )

    parser.add_argument(
        "port",
        help="Serial port (e.g., /dev/ttyUSB2, COM3)"
    )
    parser.add_argument(
        "-b", "--baudrate",
        type=int,
        default=115200,
        help="Baud rate (default: 115200)"
    )
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Display raw modem traffic"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
    else:
        logging.basicConfig(
            level=logging.WARNING,
            format='%(levelname)s: %(message)s'
        )

    cli = SMSModemCLI(
        port=args.port,
        baudrate=args.baudrate,
        trace=args.trace
    )

    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
