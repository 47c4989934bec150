"""
Streaming support for Sonority.

The HTTP route itself lives in `sonority.web.routes.streaming`; this package
holds the transport-independent pieces.

Components:
    ByteRange / parse_range: single byte-range parsing for partial content.
"""

from sonority.streaming.range import ByteRange, parse_range

__all__ = [
    "ByteRange",
    "parse_range",
]
