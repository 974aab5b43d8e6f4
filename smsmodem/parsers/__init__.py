"""
Parsers for modem output.

Provides structuring of AT command responses and the SMS PDU codec.
"""

from .response import parse_args, parse_item, parse_response
from .pdu import calculate_sms_parts, decode_pdu, encode_sms_submit

__all__ = [
    "parse_args",
    "parse_item",
    "parse_response",
    "calculate_sms_parts",
    "decode_pdu",
    "encode_sms_submit",
]
