"""
Basic connection example.

Demonstrates connecting to a modem and reading the identity fetched at boot.
"""

from smsmodem import SMSModem, BootError

# Replace with your serial port
PORT = "/dev/ttyUSB2"


def main():
    """Main function."""
    print("SMSModem - Basic Connection Example\n")

    modem = SMSModem(port=PORT)
    modem.subscribe("state_change", lambda state: print(f"[{state.value}]"))

    # connect() runs the boot sequence and raises on the first failing step
    try:
        report = modem.connect()
    except BootError as e:
        print(f"Boot failed at step '{e.step}': {e.cause}")
        return

    print("\n=== Device Information ===")
    print(f"Boot steps: {', '.join(report.steps)}")
    print(f"Module: {modem.module_id or 'unknown'}")
    print(f"IMEI: {modem.device_id or 'unknown'}")

    modem.disconnect()
    print("\nConnection closed.")


if __name__ == "__main__":
    main()
