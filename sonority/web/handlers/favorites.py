"""
Favorites Method Handlers.

- createItem: Star an artist, album or song for the caller
- deleteItem: Remove a star
"""

from __future__ import annotations

from typing import Any

from sonority.web.handlers import CallContext
from sonority.web.rpc_helpers import require_str


async def cmd_create_item(
    ctx: CallContext,
    params: dict[str, Any],
) -> dict[str, Any]:
    """Handle 'createItem'. Returns the id of the starred item."""
    favorite = require_str(params, "favorite")
    await ctx.library.star(ctx.require_username(), favorite)
    return {"id": favorite}


async def cmd_delete_item(
    ctx: CallContext,
    params: dict[str, Any],
) -> dict[str, Any]:
    """Handle 'deleteItem'."""
    favorite = require_str(params, "favorite")
    removed = await ctx.library.unstar(ctx.require_username(), favorite)
    return {"id": favorite, "removed": removed}
