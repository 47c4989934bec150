"""
RPC Facade for Sonority.

This module provides the service endpoint logic that dispatches methods to
the appropriate handler modules. Requests are JSON objects:

    {"id": 1, "method": "getMetadata",
     "params": {"id": "root", "index": 0, "count": 100},
     "headers": [{"credentials": {"sessionId": "alice"}}]}

The facade keeps this module thin; all method logic is in handlers/.
Core errors are translated into error objects carrying their fault code.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Coroutine, Mapping

from sonority.core import CoreError, UnsupportedOperationError
from sonority.core.identity import Credentials
from sonority.web.handlers import CallContext
from sonority.web.handlers.browse import (
    cmd_get_last_update,
    cmd_get_media_metadata,
    cmd_get_media_uri,
    cmd_get_metadata,
    cmd_search,
)
from sonority.web.handlers.favorites import cmd_create_item, cmd_delete_item
from sonority.web.handlers.session import cmd_get_session_id
from sonority.web.rpc_helpers import (
    ERROR_INTERNAL_ERROR,
    ERROR_INVALID_PARAMS,
    ERROR_INVALID_REQUEST,
    ERROR_METHOD_NOT_FOUND,
    ERROR_SERVICE_FAULT,
    InvalidParamsError,
    build_error_response,
)

if TYPE_CHECKING:
    from sonority.core.catalog import CatalogResolver
    from sonority.core.library import MusicLibrary

logger = logging.getLogger(__name__)

# Type alias for method handlers
MethodHandler = Callable[[CallContext, dict[str, Any]], Coroutine[Any, Any, dict[str, Any]]]

# Method dispatch table
METHOD_HANDLERS: dict[str, MethodHandler] = {
    # Session
    "getSessionId": cmd_get_session_id,
    # Browsing
    "getMetadata": cmd_get_metadata,
    "search": cmd_search,
    "getMediaMetadata": cmd_get_media_metadata,
    "getMediaURI": cmd_get_media_uri,
    "getLastUpdate": cmd_get_last_update,
    # Favorites
    "createItem": cmd_create_item,
    "deleteItem": cmd_delete_item,
}

# Protocol methods we recognize but do not implement.
UNSUPPORTED_METHODS: frozenset[str] = frozenset(
    {
        "rateItem",
        "createContainer",
        "addToContainer",
        "renameContainer",
        "getStreamingMetadata",
        "reorderContainer",
        "getExtendedMetadataText",
        "getDeviceLinkCode",
        "reportAccountAction",
        "setPlayedSeconds",
        "reportPlaySeconds",
        "getDeviceAuthToken",
        "reportStatus",
        "getExtendedMetadata",
        "getScrollIndices",
        "deleteContainer",
        "reportPlayStatus",
        "getContentKey",
        "removeFromContainer",
    }
)


def normalize_headers(raw: Any) -> list[Any]:
    """
    Turn the request's "headers" array into what the identity extractor takes.

    `{"credentials": {...}}` objects become typed `Credentials`; strings are
    credentials markup and are passed through for the extractor to parse.
    Anything else is passed through and skipped later.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raw = [raw]

    headers: list[Any] = []
    for entry in raw:
        if isinstance(entry, Mapping) and isinstance(entry.get("credentials"), Mapping):
            try:
                headers.append(Credentials.from_mapping(entry["credentials"]))
            except CoreError as e:
                logger.error("Failed to unwrap credentials from header: %s", e)
            continue
        headers.append(entry)
    return headers


class ServiceRpcHandler:
    """
    Service request handler.

    Manages method dispatch and context creation for service requests.
    """

    def __init__(
        self,
        library: MusicLibrary,
        resolver: CatalogResolver,
        base_url: str = "http://127.0.0.1:8080",
    ) -> None:
        self.library = library
        self.resolver = resolver
        self.base_url = base_url

    async def handle_request(self, request: Any) -> dict[str, Any]:
        """
        Handle a single service request.

        Args:
            request: The decoded request object with id, method, params, headers.

        Returns:
            Response object with either "result" or "error".
        """
        if not isinstance(request, dict):
            return {
                "id": None,
                "error": build_error_response(
                    ERROR_INVALID_REQUEST, "Request must be a JSON object"
                ),
            }

        request_id = request.get("id")
        method = request.get("method", "")
        params = request.get("params") or {}

        response: dict[str, Any] = {"id": request_id, "method": method}

        if not isinstance(method, str) or not method:
            response["error"] = build_error_response(ERROR_INVALID_REQUEST, "Missing method")
            return response

        if not isinstance(params, dict):
            response["error"] = build_error_response(
                ERROR_INVALID_PARAMS, "params must be an object"
            )
            return response

        ctx = CallContext(
            library=self.library,
            resolver=self.resolver,
            headers=normalize_headers(request.get("headers")),
            base_url=self.base_url,
        )

        try:
            response["result"] = await self.execute_method(ctx, method, params)
        except _MethodNotFound:
            response["error"] = build_error_response(
                ERROR_METHOD_NOT_FOUND,
                f"Unknown method: {method}",
            )
        except InvalidParamsError as e:
            response["error"] = build_error_response(ERROR_INVALID_PARAMS, str(e))
        except CoreError as e:
            logger.debug("%s failed: %s (%s)", method, e, e.fault_code)
            response["error"] = build_error_response(ERROR_SERVICE_FAULT, str(e), e.fault_code)
        except Exception as e:
            logger.exception("Handler error for %s: %s", method, e)
            response["error"] = build_error_response(
                ERROR_INTERNAL_ERROR,
                str(e),
                "Server.InternalError",
            )

        return response

    async def execute_method(
        self,
        ctx: CallContext,
        method: str,
        params: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Execute a single service method.

        Raises:
            UnsupportedOperationError: recognized but unimplemented method.
            CoreError: any catalog/identity fault from the handler.
        """
        handler = METHOD_HANDLERS.get(method)
        if handler is None:
            if method in UNSUPPORTED_METHODS:
                raise UnsupportedOperationError(f"Operation not supported: {method}")
            logger.warning("Unknown method: %s", method)
            raise _MethodNotFound(method)

        return await handler(ctx, params)


class _MethodNotFound(LookupError):
    pass
