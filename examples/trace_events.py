"""
Trace events example.

Demonstrates subscribing to raw modem traffic while sending commands.
"""

import time
from smsmodem import SMSModem

# Replace with your serial port
PORT = "/dev/ttyUSB2"


def on_write(text: str):
    print(f">> {text!r}")


def on_read(text: str):
    print(f"<< {text!r}")


def on_disconnect(error: Exception):
    print(f"\n[DEVICE LOST] {error}")


def main():
    """Main function."""
    print("SMSModem - Trace Events Example\n")

    with SMSModem(port=PORT, on_disconnect=on_disconnect) as modem:
        modem.subscribe("write", on_write)
        modem.subscribe("read", on_read)

        response, error = modem.send_raw("AT+CSQ")
        if error:
            print(f"Error: {error}")
        else:
            print(f"Signal: {response.first.args if response.first else []}")

        # Unsolicited output is traced but not paired with any command
        print("\nWatching traffic for 30 seconds (Ctrl+C to stop)...")
        try:
            time.sleep(30)
        except KeyboardInterrupt:
            pass

        modem.unsubscribe("write", on_write)
        modem.unsubscribe("read", on_read)


if __name__ == "__main__":
    main()
