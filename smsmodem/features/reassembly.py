"""
Message reassembly.

Groups listed message segments that share a concatenation reference into
complete logical messages.
"""

import logging
from typing import Callable, Iterable, Sequence

from ..exceptions import CodecError
from ..parsers.pdu import decode_pdu
from ..types import DecodedPDU, LogicalMessage, MessageSegment, ResponseItem

logger = logging.getLogger(__name__)


def decode_items(
    items: Iterable[ResponseItem],
    decoder: Callable[[str], DecodedPDU] = decode_pdu
) -> list[MessageSegment]:
    """
    Decode the PDU carried by each listed item.

    Items without data (echo lines, status lines) are ignored; items whose
    PDU cannot be decoded are skipped with a warning.

    Args:
        items: Response items from AT+CMGL
        decoder: PDU decoder

    Returns:
        Segments in arrival order
    """
    segments = []
    for item in items:
        if not item.data:
            continue
        try:
            segments.append(MessageSegment(item=item, pdu=decoder(item.data)))
        except CodecError as e:
            logger.warning(f"Skipping malformed PDU at index {item.args[:1]}: {e}")
    return segments


def build_message(segments: Sequence[MessageSegment]) -> LogicalMessage:
    """
    Build one logical message from segments sharing a reference.

    Segments are sorted by sequence number when every one of them carries
    concatenation metadata; otherwise arrival order is kept.
    """
    if not segments:
        raise ValueError("Cannot build a message from zero segments")

    if all(s.pdu.concat is not None for s in segments):
        ordered = sorted(segments, key=lambda s: s.pdu.concat.sequence)
    else:
        ordered = list(segments)

    head = ordered[0]
    concat = head.pdu.concat

    return LogicalMessage(
        segments=[s.item for s in ordered],
        sender=head.pdu.sender,
        timestamp=head.pdu.timestamp,
        text="".join(s.pdu.text for s in ordered),
        kind=head.pdu.kind,
        encoding=head.pdu.encoding,
        indexes=[s.index for s in ordered],
        reference=concat.reference if concat else None,
        total=concat.total if concat else 1,
        smsc=head.pdu.smsc
    )


def group(segments: Iterable[MessageSegment]) -> list[LogicalMessage]:
    """
    Group segments into logical messages.

    Standalone segments become messages as they are met. Concatenated
    segments are collected per reference and emitted afterwards, in the
    order each reference was first seen.

    Example:

    .. code-block:: python

        messages = group(decode_items(response.items))
        for msg in messages:
            print(f"{msg.sender}: {msg.text}")
    """
    messages: list[LogicalMessage] = []
    buckets: dict[int, list[MessageSegment]] = {}

    for segment in segments:
        concat = segment.pdu.concat
        if concat is None:
            messages.append(build_message([segment]))
            continue
        buckets.setdefault(concat.reference, []).append(segment)

    for reference, bucket in buckets.items():
        message = build_message(bucket)
        if not message.is_complete:
            logger.warning(
                f"Message {reference} incomplete: {len(bucket)}/{message.total} segment(s)"
            )
        messages.append(message)

    return messages
