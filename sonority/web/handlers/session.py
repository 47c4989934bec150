"""
Session Method Handlers.

Handles login:
- getSessionId: Exchange username/password for a session id
"""

from __future__ import annotations

import logging
from typing import Any

from sonority.web.handlers import CallContext
from sonority.web.rpc_helpers import require_str

logger = logging.getLogger(__name__)


async def cmd_get_session_id(
    ctx: CallContext,
    params: dict[str, Any],
) -> dict[str, Any]:
    """
    Handle 'getSessionId'.

    The session id is the username; controllers send it back in the
    credentials header of every later call.
    """
    username = require_str(params, "username")
    password = require_str(params, "password")

    session_id = await ctx.library.authenticate(username, password)
    logger.info("Session established for %s", session_id)
    return {"sessionId": session_id}
