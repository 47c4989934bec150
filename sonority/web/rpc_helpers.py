"""
RPC Helper Functions.

This module provides utilities for service method processing:
- Parameter parsing (required strings, index/count windows)
- Item building (converting catalog entities to response items)
- Error objects
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sonority.core.media import MediaEntity, MediaKind
from sonority.core.paging import PageResult, Window

logger = logging.getLogger(__name__)

DEFAULT_PAGE_COUNT = 100

# Error codes (JSON-RPC 2.0 spec)
ERROR_INVALID_REQUEST = -32600
ERROR_METHOD_NOT_FOUND = -32601
ERROR_INVALID_PARAMS = -32602
ERROR_INTERNAL_ERROR = -32603

# Application faults (core errors) use the implementation-defined range.
ERROR_SERVICE_FAULT = -32000


class InvalidParamsError(ValueError):
    """Raised when a method's params are missing or malformed."""


# =============================================================================
# Parameter Parsing
# =============================================================================


def require_str(params: Mapping[str, Any], name: str) -> str:
    """Get a required string parameter."""
    value = params.get(name)
    if value is None:
        raise InvalidParamsError(f"Missing parameter: {name}")
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise InvalidParamsError(f"Parameter {name} must be a string")
    return str(value)


def _int_param(params: Mapping[str, Any], name: str, default: int) -> int:
    value = params.get(name, default)
    if isinstance(value, bool):
        raise InvalidParamsError(f"Parameter {name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidParamsError(f"Parameter {name} must be an integer") from None


def parse_window(params: Mapping[str, Any], default_count: int = DEFAULT_PAGE_COUNT) -> Window:
    """
    Parse index and count from method params.

    Raises:
        InvalidParamsError: non-integer values.
        InvalidWindowError: negative values.
    """
    index = _int_param(params, "index", 0)
    count = _int_param(params, "count", default_count)
    return Window(index, count)


# =============================================================================
# Item Building
# =============================================================================

# Containers a controller may queue as a whole.
_PLAYABLE_CONTAINERS = frozenset({MediaKind.ALBUM, MediaKind.PLAYLIST})


def build_media_item(entity: MediaEntity) -> dict[str, Any]:
    """
    Build a response item for a catalog entity.

    Containers become collection items; songs carry track metadata.
    """
    if entity.is_container:
        item: dict[str, Any] = {
            "id": entity.id,
            "title": entity.title,
            "itemType": entity.kind.value,
            "canEnumerate": True,
            "canPlay": entity.kind in _PLAYABLE_CONTAINERS,
        }
        if entity.artist:
            item["artist"] = entity.artist
        return item

    track: dict[str, Any] = {}
    if entity.artist:
        track["artist"] = entity.artist
    if entity.album:
        track["album"] = entity.album
    if entity.duration_ms is not None:
        track["duration"] = entity.duration_ms // 1000
    if entity.track_no is not None:
        track["trackNumber"] = entity.track_no
    if entity.year is not None:
        track["year"] = entity.year

    return {
        "id": entity.id,
        "title": entity.title,
        "itemType": "track",
        "mimeType": entity.content_type,
        "trackMetadata": track,
    }


def build_media_list(page: PageResult[MediaEntity]) -> dict[str, Any]:
    """Build the {index, count, total, items} result of a browse or search call."""
    return {
        "index": page.offset,
        "count": page.returned_count,
        "total": page.total,
        "items": [build_media_item(e) for e in page.items],
    }


def build_error_response(code: int, message: str, fault: str | None = None) -> dict[str, Any]:
    """
    Build an RPC error object.

    Args:
        code: Error code
        message: Error message
        fault: Service fault code (e.g. "Client.ItemNotFound"), if any

    Returns:
        Error object dictionary
    """
    error: dict[str, Any] = {"code": code, "message": message}
    if fault is not None:
        error["fault"] = fault
    return error
