#!/usr/bin/env python3
"""
SMS Operations Example

Demonstrates SMS functionality:
- Sending SMS (text and Unicode, multi-part)
- Listing messages with multi-part reassembly
- Deleting messages

Usage:
    python examples/sms_operations.py /dev/ttyUSB2
"""

import sys
from smsmodem import SMSModem, ModemError
from smsmodem.parsers import calculate_sms_parts
from smsmodem.types import MessageStatus


def send_sms_example(modem: SMSModem):
    """Demonstrate sending SMS."""
    print("\n" + "="*50)
    print("SENDING SMS")
    print("="*50)

    recipient = input("Enter recipient number (e.g., +1234567890): ").strip()
    message = input("Enter message text: ").strip()
    if not recipient or not message:
        print("Skipped - no input provided")
        return

    print(f"Message needs {calculate_sms_parts(message)} part(s)")
    report = input("Request delivery report? (y/n): ").strip().lower() == 'y'

    result = modem.send_message(recipient, message, request_status=report)
    if result.ok:
        print(f"SMS sent! References: {result.message_references}")
    else:
        print(
            f"Segment {result.failed_segment}/{result.total_segments} failed "
            f"({result.sent_segments} sent): {result.error}"
        )


def list_messages_example(modem: SMSModem):
    """Demonstrate listing messages."""
    print("\n" + "="*50)
    print("LISTING MESSAGES")
    print("="*50)

    status_options = {
        '1': MessageStatus.ALL,
        '2': MessageStatus.REC_UNREAD,
        '3': MessageStatus.REC_READ,
        '4': MessageStatus.STO_UNSENT,
        '5': MessageStatus.STO_SENT,
    }

    print("\nSelect status filter:")
    print("  1. All messages")
    print("  2. Unread messages")
    print("  3. Read messages")
    print("  4. Unsent messages")
    print("  5. Sent messages")

    choice = input("\nChoice (1-5): ").strip()
    status = status_options.get(choice, MessageStatus.ALL)

    messages, error = modem.list_messages(status)
    if error:
        print(f"Failed to list messages: {error}")
        return

    if not messages:
        print(f"\n No messages with status: {status.name}")
        return

    print(f"\n Found {len(messages)} message(s):\n")

    for msg in messages:
        print(f"  {msg.indexes} From: {msg.sender}")
        print(f"      Date: {msg.timestamp}")
        if not msg.is_complete:
            print(f"      Partial: {len(msg.segments)}/{msg.total} segments")
        print(f"      Preview: {msg.text[:50]}")
        print()


def delete_messages_example(modem: SMSModem):
    """Demonstrate deleting messages."""
    print("\n" + "="*50)
    print("DELETING MESSAGES")
    print("="*50)

    index = input("Enter message index to delete: ").strip()
    if not index:
        print("Skipped")
        return

    _, error = modem.delete_message(int(index))
    print(f"Delete failed: {error}" if error else f"Message {index} deleted")


def main():
    """Main example program."""
    if len(sys.argv) < 2:
        print("Usage: python sms_operations.py <serial_port>")
        print("Example: python sms_operations.py /dev/ttyUSB2")
        sys.exit(1)

    port = sys.argv[1]

    print("="*50)
    print("SMS OPERATIONS EXAMPLE")
    print("="*50)
    print(f"Port: {port}")

    modem = SMSModem(port=port)

    try:
        print("\nConnecting...")
        modem.connect()
        print(f"Connected to {modem.module_id} ({modem.device_id})")

        while modem.is_connected:
            print("\n" + "="*50)
            print("MENU")
            print("="*50)
            print("1. Send SMS")
            print("2. List messages")
            print("3. Delete message")
            print("4. Exit")

            choice = input("\nChoice (1-4): ").strip()

            if choice == '1':
                send_sms_example(modem)
            elif choice == '2':
                list_messages_example(modem)
            elif choice == '3':
                delete_messages_example(modem)
            elif choice == '4':
                break
            else:
                print("Invalid choice")

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")

    except (ModemError, ValueError) as e:
        print(f"\nError: {e}")

    finally:
        print("\nClosing modem...")
        modem.disconnect()
        print("Done")


if __name__ == "__main__":
    main()
