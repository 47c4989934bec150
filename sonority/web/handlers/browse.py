"""
Browse Method Handlers.

Handles catalog browsing methods:
- getMetadata: List the children of a catalog container
- search: Search one category
- getMediaMetadata: Metadata of a single song
- getMediaURI: Stream location of a song
- getLastUpdate: Catalog/favorites change tokens
"""

from __future__ import annotations

import logging
import secrets
import string
from typing import Any

from sonority.core.library import media_entity
from sonority.web.handlers import CallContext
from sonority.web.rpc_helpers import (
    build_media_item,
    build_media_list,
    parse_window,
    require_str,
)

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-Id"

_TOKEN_ALPHABET = string.ascii_letters + string.digits


async def cmd_get_metadata(
    ctx: CallContext,
    params: dict[str, Any],
) -> dict[str, Any]:
    """
    Handle 'getMetadata'.

    Params: id, index (default 0), count (default 100).
    Personalized containers need credentials in the call headers.
    """
    identifier = require_str(params, "id")
    window = parse_window(params)

    page = await ctx.resolver.get_metadata(identifier, window, ctx.username)
    return build_media_list(page)


async def cmd_search(
    ctx: CallContext,
    params: dict[str, Any],
) -> dict[str, Any]:
    """
    Handle 'search'.

    Params: id (a search category such as "search-albums"), term, index, count.
    """
    category_id = require_str(params, "id")
    term = require_str(params, "term")
    window = parse_window(params)

    page = await ctx.resolver.search(category_id, term, window)
    return build_media_list(page)


async def cmd_get_media_metadata(
    ctx: CallContext,
    params: dict[str, Any],
) -> dict[str, Any]:
    """Handle 'getMediaMetadata'."""
    song = await ctx.library.get_song(require_str(params, "id"))
    return build_media_item(media_entity(song))


async def cmd_get_media_uri(
    ctx: CallContext,
    params: dict[str, Any],
) -> dict[str, Any]:
    """
    Handle 'getMediaURI'.

    The session token travels to the stream endpoint as an HTTP header, so
    the URI itself never carries credentials.
    """
    song = await ctx.library.get_song(require_str(params, "id"))
    song_id = str(song.id)

    result: dict[str, Any] = {"uri": ctx.stream_url(song_id), "httpHeaders": []}
    username = ctx.username
    if username is not None:
        result["httpHeaders"].append({"header": SESSION_HEADER, "value": username})
    return result


async def cmd_get_last_update(
    ctx: CallContext,
    params: dict[str, Any],
) -> dict[str, Any]:
    """
    Handle 'getLastUpdate'.

    Fresh random tokens on every call, so controllers never serve a cached
    catalog or favorites list.
    """
    return {"catalog": _random_token(), "favorites": _random_token()}


def _random_token(length: int = 8) -> str:
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(length))
