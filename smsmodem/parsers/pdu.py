"""
PDU encoding and decoding for SMS messages.

Implements the GSM 03.40 SMS PDU format.
Supports:
- 7-bit GSM alphabet (160 chars)
- UCS2 Unicode (70 chars)
- Concatenated SMS (long messages) via user data header
- Flash SMS
- Validity period
- Status report requests
"""

import random
import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple, Union

from ..exceptions import CodecError
from ..types import DecodedPDU, SegmentMetadata, SMSEncoding, SubmitPDU


# GSM 7-bit default alphabet
GSM7_BASIC = (
    "@£$¥èéùìòÇ\nØø\rÅåΔ_ΦΓΛΩΠΨΣΘΞ\x1bÆæßÉ !\"#¤%&'()*+,-./0123456789:;<=>?"
    "¡ABCDEFGHIJKLMNOPQRSTUVWXYZÄÖÑÜ§¿abcdefghijklmnopqrstuvwxyzäöñüà"
)

# GSM 7-bit extended characters (escaped with 0x1B)
GSM7_EXTENDED = {
    "\f": 0x0A,  # Form feed
    "^": 0x14,   # Caret
    "{": 0x28,   # Left brace
    "}": 0x29,   # Right brace
    "\\": 0x2F,  # Backslash
    "[": 0x3C,   # Left bracket
    "~": 0x3D,   # Tilde
    "]": 0x3E,   # Right bracket
    "|": 0x40,   # Pipe
    "€": 0x65,   # Euro sign
}

# Reverse mapping for decoding
GSM7_EXTENDED_REV = {v: k for k, v in GSM7_EXTENDED.items()}

# Segment capacities
GSM7_SINGLE_SEPTETS = 160
GSM7_PART_SEPTETS = 153
UCS2_SINGLE_OCTETS = 140
UCS2_PART_OCTETS = 134

# Information element identifiers for concatenation
IEI_CONCAT_8BIT = 0x00
IEI_CONCAT_16BIT = 0x08

KIND_DELIVER = "SMS-DELIVER"
KIND_SUBMIT = "SMS-SUBMIT"


def _char_septets(char: str) -> list[int]:
    """Septets for one character (two for extension table characters)."""
    if char in GSM7_BASIC:
        return [GSM7_BASIC.index(char)]
    if char in GSM7_EXTENDED:
        return [0x1B, GSM7_EXTENDED[char]]
    raise CodecError(f"Character '{char}' not in GSM 7-bit alphabet")


def _text_to_septets(text: str) -> list[int]:
    septets = []
    for char in text:
        septets.extend(_char_septets(char))
    return septets


def encode_gsm7(text: str) -> bytes:
    """
    Encode text to 7-bit GSM alphabet.

    Args:
        text: Text to encode

    Returns:
        Encoded bytes (7-bit packed)

    Raises:
        CodecError: If text contains unsupported characters
    """
    return _pack_septets(_text_to_septets(text))


def decode_gsm7(data: bytes, length: int, fill_bits: int = 0) -> str:
    """
    Decode 7-bit GSM alphabet to text.

    Args:
        data: Packed 7-bit data
        length: Number of septets (not bytes!)
        fill_bits: Padding bits preceding the first septet

    Returns:
        Decoded text
    """
    septets = _unpack_septets(data, length, fill_bits)

    text = []
    i = 0
    while i < len(septets):
        if septets[i] == 0x1B:
            # Extended character escape
            if i + 1 < len(septets):
                i += 1
                text.append(GSM7_EXTENDED_REV.get(septets[i], "?"))
            i += 1
        else:
            text.append(GSM7_BASIC[septets[i]])
            i += 1

    return "".join(text)


def _pack_septets(septets: list[int], fill_bits: int = 0) -> bytes:
    """Pack 7-bit septets into 8-bit octets, after ``fill_bits`` zero bits."""
    if not septets:
        return b''

    octets = []
    bits = 0  # Accumulated bits
    bits_count = fill_bits  # Number of bits accumulated

    for septet in septets:
        bits |= (septet << bits_count)
        bits_count += 7

        while bits_count >= 8:
            octets.append(bits & 0xFF)
            bits >>= 8
            bits_count -= 8

    if bits_count > 0:
        octets.append(bits & 0xFF)

    return bytes(octets)


def _unpack_septets(octets: bytes, length: int, fill_bits: int = 0) -> list[int]:
    """Unpack 8-bit octets into 7-bit septets, skipping ``fill_bits`` first."""
    if not octets or length <= 0:
        return []

    septets = []
    bits = 0
    bits_count = 0
    skip = fill_bits

    for octet in octets:
        bits |= (octet << bits_count)
        bits_count += 8

        if skip:
            bits >>= skip
            bits_count -= skip
            skip = 0

        while bits_count >= 7 and len(septets) < length:
            septets.append(bits & 0x7F)
            bits >>= 7
            bits_count -= 7

        if len(septets) >= length:
            break

    return septets[:length]


def encode_ucs2(text: str) -> bytes:
    """Encode text to UCS2 (UTF-16 BE)."""
    return text.encode("utf-16-be")


def decode_ucs2(data: bytes) -> str:
    """
    Decode UCS2 (UTF-16 BE) to text.

    Raises:
        CodecError: If data is not valid UTF-16
    """
    try:
        return data.decode("utf-16-be")
    except UnicodeDecodeError as e:
        raise CodecError(f"Invalid UCS2 data: {e}") from e


def encode_phone_number(number: str) -> Tuple[bytes, int]:
    """
    Encode phone number to PDU format.

    Args:
        number: Phone number (may start with +)

    Returns:
        Tuple of (encoded bytes, type-of-address byte)
    """
    if number.startswith("+"):
        number = number[1:]
        type_of_addr = 0x91  # International, ISDN/telephone
    else:
        type_of_addr = 0x81  # Unknown, ISDN/telephone

    number = re.sub(r"[^0-9]", "", number)

    # Semi-octet format, padded with F if odd length
    if len(number) % 2:
        number += "F"

    octets = []
    for i in range(0, len(number), 2):
        octet = int(number[i+1], 16) << 4 | int(number[i], 16)
        octets.append(octet)

    return bytes(octets), type_of_addr


def decode_phone_number(data: bytes, length: int, type_of_addr: int) -> str:
    """
    Decode phone number from PDU format.

    Args:
        data: Encoded phone number
        length: Number of digits
        type_of_addr: Type-of-address byte

    Returns:
        Decoded phone number
    """
    if (type_of_addr & 0x70) == 0x50:
        # Alphanumeric sender ID, GSM 7-bit packed
        return decode_gsm7(data, length * 4 // 7)

    digits = []

    for octet in data:
        low = octet & 0x0F
        high = (octet >> 4) & 0x0F

        if low != 0xF:
            digits.append(f"{low:X}")
        if high != 0xF:
            digits.append(f"{high:X}")

    number = "".join(digits[:length])

    if (type_of_addr & 0x70) == 0x10:  # International
        number = "+" + number

    return number


def _semi_octet(value: int) -> int:
    return ((value % 10) << 4) | (value // 10)


def encode_timestamp(dt: Optional[datetime] = None) -> bytes:
    """
    Encode timestamp to PDU format (semi-octet).

    Args:
        dt: Datetime to encode (uses current time if None)

    Returns:
        7-byte timestamp
    """
    if dt is None:
        dt = datetime.now(timezone.utc)

    fields = [dt.year % 100, dt.month, dt.day, dt.hour, dt.minute, dt.second]
    octets = [_semi_octet(f) for f in fields]

    # Timezone in quarters of an hour, bit 3 carries the sign
    offset = dt.utcoffset() or timedelta(0)
    quarters = int(offset.total_seconds() // 900)
    tz = _semi_octet(abs(quarters))
    if quarters < 0:
        tz |= 0x08
    octets.append(tz)

    return bytes(octets)


def decode_timestamp(data: bytes) -> datetime:
    """
    Decode timestamp from PDU format.

    Args:
        data: 7-byte timestamp

    Returns:
        Timezone-aware datetime

    Raises:
        CodecError: If the timestamp is truncated or invalid
    """
    if len(data) < 7:
        raise CodecError(f"Invalid timestamp length: {len(data)}")

    def decode_semi_octet(octet: int) -> int:
        low = (octet >> 4) & 0x0F
        high = octet & 0x0F
        return high * 10 + low

    year, month, day, hour, minute, second = (decode_semi_octet(b) for b in data[:6])

    tz_octet = data[6]
    quarters = decode_semi_octet(tz_octet & 0xF7)  # Clear sign bit
    if tz_octet & 0x08:
        quarters = -quarters

    try:
        tz = timezone(timedelta(minutes=15 * quarters))
        return datetime(2000 + year, month, day, hour, minute, second, tzinfo=tz)
    except ValueError as e:
        raise CodecError(f"Invalid timestamp {data.hex()}: {e}") from e


def _resolve_encoding(encoding: Union[str, SMSEncoding, None]) -> str:
    if encoding is None:
        return SMSEncoding.GSM7.value
    try:
        return SMSEncoding(encoding).value
    except ValueError:
        raise CodecError(f"Unsupported encoding: {encoding}") from None


def _split_gsm7(text: str) -> list[list[int]]:
    """Split text into per-segment septet lists without breaking escapes."""
    per_char = [_char_septets(c) for c in text]
    if sum(len(s) for s in per_char) <= GSM7_SINGLE_SEPTETS:
        return [[s for group in per_char for s in group]]

    parts: list[list[int]] = [[]]
    for group in per_char:
        if len(parts[-1]) + len(group) > GSM7_PART_SEPTETS:
            parts.append([])
        parts[-1].extend(group)
    return parts


def _split_ucs2(text: str) -> list[bytes]:
    """Split text into per-segment UCS2 payloads without breaking surrogates."""
    per_char = [encode_ucs2(c) for c in text]
    if sum(len(b) for b in per_char) <= UCS2_SINGLE_OCTETS:
        return [b"".join(per_char)]

    parts: list[bytes] = [b""]
    for data in per_char:
        if len(parts[-1]) + len(data) > UCS2_PART_OCTETS:
            parts.append(b"")
        parts[-1] += data
    return parts


def _validity_octet(validity_period: int) -> int:
    """Convert minutes to relative TP-VP format."""
    if validity_period <= 720:  # 12 hours
        vp = (validity_period // 5) - 1
    elif validity_period <= 1440:  # 24 hours
        vp = ((validity_period - 720) // 30) + 143
    elif validity_period <= 43200:  # 30 days
        vp = (validity_period // 1440) + 166
    else:  # > 30 days
        vp = (validity_period // 10080) + 192
    return max(0, min(255, vp))


def encode_sms_submit(
    number: str,
    text: str,
    encoding: Union[str, SMSEncoding, None] = None,
    reference: Optional[int] = None,
    validity_period: Optional[int] = None,
    flash: bool = False,
    request_status: bool = False
) -> list[SubmitPDU]:
    """
    Encode SMS-SUBMIT PDUs, one per segment.

    Text longer than one SMS is split and every segment carries a
    concatenation header with a shared reference number.

    Args:
        number: Destination phone number
        text: Message text
        encoding: "gsm7" (default) or "ucs2"
        reference: Concatenation reference (random if None)
        validity_period: Validity period in minutes (None = max)
        flash: Flash SMS (class 0)
        request_status: Request status report

    Returns:
        List of SubmitPDU (hex string and length excluding SMSC)

    Raises:
        CodecError: If text cannot be represented in the encoding
    """
    encoding = _resolve_encoding(encoding)

    if encoding == SMSEncoding.GSM7.value:
        chunks = _split_gsm7(text)
        dcs = 0x00
    else:
        chunks = _split_ucs2(text)
        dcs = 0x08
    if flash:
        dcs |= 0x10  # Class 0 (flash)

    total = len(chunks)
    if total > 255:
        raise CodecError(f"Message too long: {total} segments")
    if total > 1 and reference is None:
        reference = random.randint(0, 255)

    phone_data, phone_type = encode_phone_number(number)
    digit_count = len(re.sub(r"[^0-9]", "", number))

    pdus = []
    for sequence, chunk in enumerate(chunks, start=1):
        pdu = [0x00]  # SMSC length (let modem use default)

        pdu_type = 0x01  # SMS-SUBMIT
        if validity_period is not None:
            pdu_type |= 0x10  # Validity Period Format: relative
        if request_status:
            pdu_type |= 0x20  # Status Report Request
        if total > 1:
            pdu_type |= 0x40  # User Data Header Indicator
        pdu.append(pdu_type)

        pdu.append(0x00)  # Message Reference (let modem assign)

        pdu.append(digit_count)
        pdu.append(phone_type)
        pdu.extend(phone_data)

        pdu.append(0x00)  # Protocol Identifier
        pdu.append(dcs)

        if validity_period is not None:
            pdu.append(_validity_octet(validity_period))

        udh = b""
        if total > 1:
            udh = bytes([5, IEI_CONCAT_8BIT, 3, reference & 0xFF, total, sequence])

        if encoding == SMSEncoding.GSM7.value:
            if udh:
                # 6 header octets + 1 fill bit = 7 septets
                user_data = udh + _pack_septets(chunk, fill_bits=1)
                user_data_length = 7 + len(chunk)
            else:
                user_data = _pack_septets(chunk)
                user_data_length = len(chunk)
        else:
            user_data = udh + chunk
            user_data_length = len(user_data)

        pdu.append(user_data_length)
        pdu.extend(user_data)

        pdus.append(SubmitPDU(
            hex="".join(f"{b:02X}" for b in pdu),
            length=len(pdu) - 1
        ))

    return pdus


def _parse_udh(header: bytes) -> Optional[SegmentMetadata]:
    """Extract concatenation info from a user data header."""
    i = 0
    while i + 1 < len(header):
        iei = header[i]
        iel = header[i + 1]
        value = header[i + 2:i + 2 + iel]
        if iei == IEI_CONCAT_8BIT and iel == 3 and len(value) == 3:
            return SegmentMetadata(reference=value[0], sequence=value[2], total=value[1])
        if iei == IEI_CONCAT_16BIT and iel == 4 and len(value) == 4:
            return SegmentMetadata(
                reference=(value[0] << 8) | value[1],
                sequence=value[3],
                total=value[2]
            )
        i += 2 + iel
    return None


def _decode_user_data(
    user_data: bytes,
    udl: int,
    dcs: int,
    has_header: bool
) -> Tuple[str, str, Optional[SegmentMetadata]]:
    """Decode user data; returns (text, encoding, concat)."""
    concat = None
    header_octets = 0
    if has_header and user_data:
        udhl = user_data[0]
        concat = _parse_udh(user_data[1:1 + udhl])
        header_octets = udhl + 1

    if (dcs & 0x0C) == 0x08:
        return decode_ucs2(user_data[header_octets:udl]), "ucs2", concat

    if (dcs & 0x0C) == 0x04:
        return user_data[header_octets:udl].decode("latin-1"), "8bit", concat

    # GSM 7-bit (default); header is padded to a septet boundary
    header_septets = (header_octets * 8 + 6) // 7
    fill_bits = header_septets * 7 - header_octets * 8
    text = decode_gsm7(user_data[header_octets:], udl - header_septets, fill_bits)
    return text, "gsm7", concat


def decode_pdu(pdu_hex: str) -> DecodedPDU:
    """
    Decode an SMS-DELIVER or stored SMS-SUBMIT PDU.

    Args:
        pdu_hex: Hex-encoded PDU string (with SMSC part)

    Returns:
        DecodedPDU with sender, timestamp, text, kind, encoding and
        concatenation metadata when present

    Raises:
        CodecError: If the PDU is malformed or of an unsupported type
    """
    try:
        pdu = bytes.fromhex(pdu_hex.strip())
    except ValueError as e:
        raise CodecError(f"PDU is not valid hex: {e}") from e

    try:
        return _decode(pdu)
    except IndexError as e:
        raise CodecError(f"Truncated PDU ({len(pdu)} octets)") from e


def _decode(pdu: bytes) -> DecodedPDU:
    idx = 0

    smsc_len = pdu[idx]
    smsc = None
    if smsc_len:
        smsc = decode_phone_number(pdu[idx + 2:idx + 1 + smsc_len], (smsc_len - 1) * 2, pdu[idx + 1])
    idx += 1 + smsc_len

    pdu_type = pdu[idx]
    idx += 1
    mti = pdu_type & 0x03
    has_header = bool(pdu_type & 0x40)

    if mti == 0x00:
        kind = KIND_DELIVER
    elif mti == 0x01:
        kind = KIND_SUBMIT
        idx += 1  # Message Reference
    else:
        raise CodecError(f"Unsupported PDU type: {pdu_type:02X}")

    addr_len = pdu[idx]
    idx += 1
    addr_type = pdu[idx]
    idx += 1
    addr_octets = (addr_len + 1) // 2
    address = decode_phone_number(pdu[idx:idx + addr_octets], addr_len, addr_type)
    idx += addr_octets

    idx += 1  # Protocol Identifier

    dcs = pdu[idx]
    idx += 1

    timestamp = None
    if kind == KIND_DELIVER:
        timestamp = decode_timestamp(pdu[idx:idx + 7])
        idx += 7
    else:
        vpf = (pdu_type >> 3) & 0x03
        if vpf == 0x02:
            idx += 1  # Relative
        elif vpf in (0x01, 0x03):
            idx += 7  # Enhanced or absolute

    udl = pdu[idx]
    idx += 1

    text, encoding, concat = _decode_user_data(pdu[idx:], udl, dcs, has_header)

    return DecodedPDU(
        sender=address,
        timestamp=timestamp,
        text=text,
        kind=kind,
        encoding=encoding,
        concat=concat,
        smsc=smsc
    )


def calculate_sms_parts(text: str, encoding: Union[str, SMSEncoding, None] = None) -> int:
    """
    Calculate number of SMS parts needed for text.

    Args:
        text: Message text
        encoding: "gsm7" or "ucs2"; None tries GSM 7-bit, then UCS2

    Returns:
        Number of SMS parts required
    """
    if encoding is None:
        try:
            return len(_split_gsm7(text))
        except CodecError:
            return len(_split_ucs2(text))

    encoding = _resolve_encoding(encoding)
    if encoding == SMSEncoding.GSM7.value:
        return len(_split_gsm7(text))
    return len(_split_ucs2(text))
