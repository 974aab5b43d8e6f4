"""
Response structurer.

Splits a terminated modem response into ordered, typed response items.
"""

import logging
import re
from typing import Optional

from ..commands import OK
from ..types import Response, ResponseItem

logger = logging.getLogger(__name__)

# Characters that open a structured (information) line
SENTINELS = ("+", "^")

# A line break followed by a sentinel starts a new item
_ITEM_BOUNDARY = re.compile(r"\r?\n(?=[+^])")

_LINE_BREAK = re.compile(r"\r*\n")

_NUMBER = re.compile(r"-?\d+")


def parse_args(arg_text: str) -> list[Optional[int]]:
    """
    Parse a comma-separated argument group.

    Numeric tokens become integers; empty or non-numeric tokens are None.

    Example:
        >>> parse_args("1,0,,24")
        [1, 0, None, 24]
    """
    args: list[Optional[int]] = []
    for token in arg_text.split(","):
        token = token.strip()
        args.append(int(token) if _NUMBER.fullmatch(token) else None)
    return args


def parse_item(text: str) -> Optional[ResponseItem]:
    """
    Parse one item substring.

    Returns:
        ResponseItem, or None if the text is only whitespace
    """
    text = text.strip()
    if not text:
        return None

    parts = _LINE_BREAK.split(text, maxsplit=1)
    header = parts[0].strip()
    payload = parts[1].strip() if len(parts) > 1 else ""
    data: Optional[str] = payload or None

    if ": " in header:
        command_echo, arg_text = header.split(": ", 1)
        args = parse_args(arg_text)
    elif header.startswith(SENTINELS) or header.upper().startswith("AT"):
        # Echoed command or bare information line
        command_echo, args = header, []
    else:
        # Plain value such as an IMEI
        command_echo, args, data = None, [], text

    return ResponseItem(
        command_echo=command_echo,
        args=args,
        data=data,
        raw_text=text
    )


def parse_response(raw_text: str, success_marker: str = OK) -> Response:
    """
    Structure a terminated response.

    Args:
        raw_text: Text accumulated up to and including the terminal marker
        success_marker: Marker that terminated the response

    Returns:
        Response with items in stream order

    Example:

    .. code-block:: python

        res = parse_response("\\r\\n+CSCA: 5\\r\\nhello\\r\\n\\r\\nOK\\r\\n")
        res.items[0].args   # [5]
        res.items[0].data   # "hello"
    """
    ok = raw_text.endswith(success_marker)
    body = raw_text[:-len(success_marker)] if ok and success_marker else raw_text

    items = []
    for chunk in _ITEM_BOUNDARY.split(body):
        item = parse_item(chunk)
        if item is not None:
            items.append(item)

    logger.debug(f"Parsed response: ok={ok}, {len(items)} item(s)")
    return Response(ok=ok, items=items, raw_text=raw_text)
