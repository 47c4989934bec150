"""
Service Method Handlers Package.

This package contains the handler modules for the service methods.
Each module handles a specific category of methods.

Modules:
- session: getSessionId
- browse: getMetadata, search, getMediaMetadata, getMediaURI, getLastUpdate
- favorites: createItem, deleteItem
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sonority.core import UnauthorizedError
from sonority.core.identity import extract_username

if TYPE_CHECKING:
    from sonority.core.catalog import CatalogResolver
    from sonority.core.library import MusicLibrary


@dataclass
class CallContext:
    """
    Context object passed to all method handlers.

    Carries the server components and the headers of the current call, so
    handlers are stateless functions and nothing about the caller outlives
    the request.
    """

    library: MusicLibrary
    """The music library for lookups, favorites and login."""

    resolver: CatalogResolver
    """Routes catalog identifiers to library lookups."""

    headers: list[Any] = field(default_factory=list)
    """Call headers (credentials objects or credentials markup)."""

    base_url: str = ""
    """Base URL controllers use to fetch streams."""

    @property
    def username(self) -> str | None:
        """The caller's username from the call headers, or None."""
        return extract_username(self.headers)

    def require_username(self) -> str:
        username = self.username
        if username is None:
            raise UnauthorizedError("This operation requires a session")
        return username

    def stream_url(self, song_id: str) -> str:
        return f"{self.base_url.rstrip('/')}/stream?id={song_id}"


__all__ = ["CallContext"]
