"""
Response buffer and terminator detection.

Accumulates text chunks from the modem and decides, once per chunk, whether
a terminal response has been reached.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from ..commands import ERROR, OK

logger = logging.getLogger(__name__)


class BoundaryKind(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class Boundary:
    """Result of one terminator check."""
    kind: BoundaryKind
    raw_text: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.kind is not BoundaryKind.PENDING


PENDING = Boundary(BoundaryKind.PENDING)


def detect_boundary(text: str, success_marker: str = OK, error_marker: str = ERROR) -> Boundary:
    """
    Check accumulated text for a terminal marker.

    "Ends with success" is tested before "contains error" so that an error
    substring inside echoed text does not mask a real success marker.

    Args:
        text: Text accumulated since the last boundary
        success_marker: Suffix that completes a successful response
        error_marker: Substring that marks a failed response

    Returns:
        Boundary of kind SUCCESS, FAILURE or PENDING
    """
    if text.endswith(success_marker):
        return Boundary(BoundaryKind.SUCCESS, text)
    if error_marker in text:
        return Boundary(BoundaryKind.FAILURE, text)
    return PENDING


class ResponseBuffer:
    """
    Accumulator for one outstanding request.

    Example:

    .. code-block:: python

        buf = ResponseBuffer()
        buf.on_chunk("\\r\\n+CSQ: 24,99\\r\\n")   # PENDING
        buf.on_chunk("\\r\\nOK\\r\\n")            # SUCCESS
    """

    def __init__(self, success_marker: str = OK, error_marker: str = ERROR) -> None:
        self.success_marker = success_marker
        self.error_marker = error_marker
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    def on_chunk(self, chunk: str) -> Boundary:
        """Append a chunk and run the terminator check once."""
        self._text += chunk
        boundary = detect_boundary(self._text, self.success_marker, self.error_marker)
        if boundary.is_terminal:
            logger.debug(f"Boundary reached ({boundary.kind.value}) after {len(self._text)} chars")
        return boundary

    def reset(self) -> None:
        self._text = ""
