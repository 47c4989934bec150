"""
Internal DB subpackage for Sonority.

Splits the catalog store into models, schema/migrations and query groups while
keeping `LibraryDb` (in `sonority.core.library_db`) as the single public
interface the rest of the codebase imports.
"""

from __future__ import annotations

# Models / DTOs
from .models import (
    MediaFileRow,
    MediaType,
    MusicFolderRow,
    PlaylistRow,
    UpsertMediaFile,
    UserRow,
)

# Schema / migrations
from .schema import ensure_schema, migrate

__all__ = [
    # models
    "MediaFileRow",
    "MediaType",
    "MusicFolderRow",
    "PlaylistRow",
    "UpsertMediaFile",
    "UserRow",
    # schema
    "ensure_schema",
    "migrate",
]
