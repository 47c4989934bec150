"""
HTTP byte-range parsing for audio streaming.

Only the single-range form with an explicit first byte is supported
(RFC 2616 section 14.35 subset):

    bytes=0-499     first 500 bytes
    bytes=500-      from byte 500 to the end

Suffix ranges ("bytes=-500"), multiple ranges and other units are reported
as "not a supported range" (None); the streaming route decides whether that
means serving the whole entity or answering 416.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# At most 19 digits per position; longer values are not a supported range.
_RANGE_PATTERN = re.compile(r"bytes=(\d{1,19})-(\d{0,19})", re.ASCII)


@dataclass(frozen=True, slots=True)
class ByteRange:
    """
    An inclusive byte range.

    `last_byte_pos` is None for open ranges ("bytes=500-"). `total_length`
    is the content length if known.
    """

    first_byte_pos: int
    last_byte_pos: int | None = None
    total_length: int | None = None

    @property
    def offset(self) -> int:
        return self.first_byte_pos

    @property
    def is_closed(self) -> bool:
        return self.last_byte_pos is not None

    @property
    def size(self) -> int:
        """Size in bytes of a closed range, -1 for open ranges."""
        if self.last_byte_pos is None:
            return -1
        return self.last_byte_pos - self.first_byte_pos + 1

    @property
    def length(self) -> int:
        """
        Number of bytes to send.

        -1 means "open range, unknown total": stream until the natural end.
        """
        if self.is_closed:
            return self.size
        if self.total_length is None:
            return -1
        return self.total_length - self.first_byte_pos

    def contains(self, pos: int) -> bool:
        """Whether byte position `pos` lies inside the range."""
        if pos < self.first_byte_pos:
            return False
        return self.last_byte_pos is None or pos <= self.last_byte_pos

    def __str__(self) -> str:
        last = "" if self.last_byte_pos is None else str(self.last_byte_pos)
        return f"{self.first_byte_pos}-{last}"


def parse_range(header: str | None, total_length: int | None = None) -> ByteRange | None:
    """
    Parse a Range header value.

    Returns None when there is no header, when the syntax is not supported,
    or when the range is inverted (first > last). Never raises for bad input.
    """
    if header is None:
        return None

    match = _RANGE_PATTERN.fullmatch(header)
    if match is None:
        return None

    first = int(match.group(1))
    last = int(match.group(2)) if match.group(2) else None

    if last is not None and first > last:
        return None

    return ByteRange(first_byte_pos=first, last_byte_pos=last, total_length=total_length)
