"""
Feature managers for modem functionality.

Provides high-level helpers built on a modem session:
- MessageManager: SMS listing, deletion and sending
- Reassembly: Grouping of concatenated message segments
"""

from .reassembly import build_message, decode_items, group
from .sms import MessageManager

__all__ = [
    "MessageManager",
    "build_message",
    "decode_items",
    "group",
]
