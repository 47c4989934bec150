"""
Catalog database schema + access layer.

Goals:
- SQLite + aiosqlite, async/await friendly.
- Keep schema small, but leave room to evolve (via user_version migrations).

This module is intentionally independent of the web layer.

Note:
- Models/DTOs and normalization helpers live in `sonority.core.db.models`
- Schema/migrations live in `sonority.core.db.schema`
- Query functions live in `sonority.core.db.queries_*` modules
- `LibraryDb` remains the public facade used by the rest of the codebase
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

import aiosqlite

from sonority.core.db import queries_media, queries_users
from sonority.core.db.models import (
    MediaFileRow,
    MediaType,
    MusicFolderRow,
    PlaylistRow,
    UpsertMediaFile,
    UserRow,
    normalize_int,
    normalize_text,
)
from sonority.core.db.schema import ensure_schema as ensure_schema_sql


class LibraryDb:
    """
    Async access layer for the catalog DB.

    Usage:
        db = LibraryDb("sonority.db")
        await db.open()
        await db.ensure_schema()
        ... queries ...
        await db.close()

    Connections are not pooled; a single connection is kept.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)
        self._conn: aiosqlite.Connection | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self) -> None:
        if self._conn is not None:
            return
        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row

        await self._conn.execute("PRAGMA foreign_keys = ON;")
        await self._conn.execute("PRAGMA journal_mode = WAL;")
        await self._conn.execute("PRAGMA synchronous = NORMAL;")

    async def close(self) -> None:
        if self._conn is None:
            return
        await self._conn.close()
        self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("LibraryDb is not open. Call await db.open() first.")
        return self._conn

    async def ensure_schema(self) -> None:
        """Create or migrate schema to current version."""
        await ensure_schema_sql(self._require_conn())

    # ===========================================================================
    # Music folders
    # ===========================================================================

    async def list_music_folders(self) -> list[MusicFolderRow]:
        return await queries_media.list_music_folders(self._require_conn())

    async def get_music_folder(self, folder_id: int) -> MusicFolderRow | None:
        return await queries_media.get_music_folder(self._require_conn(), folder_id)

    async def add_music_folder(self, path: str, name: str | None = None) -> int:
        folder_name = normalize_text(name) or Path(path).name or path
        return await queries_media.add_music_folder(self._require_conn(), path, folder_name)

    async def set_music_folders(self, paths: Sequence[str]) -> list[int]:
        """Enable exactly `paths` (adding new ones); every other folder is disabled."""
        ids = [await self.add_music_folder(p) for p in paths]
        await queries_media.disable_music_folders_except(self._require_conn(), list(paths))
        return ids

    # ===========================================================================
    # Media files
    # ===========================================================================

    async def upsert_media_file(self, media: UpsertMediaFile) -> int:
        conn = self._require_conn()
        media_file_id = await queries_media.upsert_media_file(conn, _normalized(media))
        await conn.commit()
        return media_file_id

    async def upsert_media_files(self, media: Iterable[UpsertMediaFile]) -> int:
        """Bulk upsert in a single transaction. Returns the number of rows written."""
        conn = self._require_conn()
        count = 0
        for m in media:
            await queries_media.upsert_media_file(conn, _normalized(m))
            count += 1
        await conn.commit()
        return count

    async def delete_missing(self, folder_id: int, keep_paths: set[str]) -> int:
        conn = self._require_conn()
        deleted = await queries_media.delete_missing_under(conn, folder_id, keep_paths)
        await conn.commit()
        return deleted

    async def get_media_file(self, media_file_id: int) -> MediaFileRow | None:
        return await queries_media.get_media_file(self._require_conn(), media_file_id)

    async def get_media_file_by_path(self, path: str) -> MediaFileRow | None:
        return await queries_media.get_media_file_by_path(self._require_conn(), path)

    async def list_children(self, parent_path: str) -> list[MediaFileRow]:
        return await queries_media.list_children(self._require_conn(), parent_path)

    async def record_play(self, media_file_id: int) -> None:
        await queries_media.record_play(self._require_conn(), media_file_id)

    # ===========================================================================
    # Album lists / starred / ratings / search
    # ===========================================================================

    async def list_album_list(
        self,
        list_type: str,
        *,
        username: str,
        offset: int = 0,
        limit: int = 100,
    ) -> list[MediaFileRow]:
        return await queries_media.list_album_list(
            self._require_conn(), list_type, username=username, limit=limit, offset=offset
        )

    async def count_album_list(self, list_type: str, *, username: str) -> int:
        return await queries_media.count_album_list(
            self._require_conn(), list_type, username=username
        )

    async def list_starred(self, username: str, media_type: MediaType) -> list[MediaFileRow]:
        return await queries_media.list_starred(self._require_conn(), username, media_type)

    async def star(self, username: str, media_file_id: int) -> None:
        await queries_media.star(self._require_conn(), username, media_file_id)

    async def unstar(self, username: str, media_file_id: int) -> bool:
        return await queries_media.unstar(self._require_conn(), username, media_file_id)

    # Ratings and playlists are written by tools sharing this DB; the service only reads them.
    async def set_rating(self, username: str, media_file_id: int, rating: int) -> None:
        await queries_media.set_rating(self._require_conn(), username, media_file_id, rating)

    async def search_media(
        self,
        media_type: MediaType,
        term: str,
        *,
        offset: int = 0,
        limit: int = 100,
    ) -> list[MediaFileRow]:
        return await queries_media.search_media(
            self._require_conn(), media_type, term, limit=limit, offset=offset
        )

    async def count_search_media(self, media_type: MediaType, term: str) -> int:
        return await queries_media.count_search_media(self._require_conn(), media_type, term)

    # ===========================================================================
    # Users / playlists
    # ===========================================================================

    async def get_user_by_name(self, username: str) -> UserRow | None:
        return await queries_users.get_user_by_name(self._require_conn(), username)

    async def upsert_user(self, username: str, password: str) -> int:
        return await queries_users.upsert_user(self._require_conn(), username, password)

    async def list_playlists_for_user(self, username: str) -> list[PlaylistRow]:
        return await queries_users.list_playlists_for_user(self._require_conn(), username)

    async def get_playlist(self, playlist_id: int) -> PlaylistRow | None:
        return await queries_users.get_playlist(self._require_conn(), playlist_id)

    # Written by tools sharing this DB, like `set_rating`.
    async def create_playlist(
        self,
        name: str,
        owner: str,
        *,
        is_public: bool = False,
        media_file_ids: Sequence[int] = (),
    ) -> int:
        return await queries_users.create_playlist(
            self._require_conn(),
            name,
            owner,
            is_public=is_public,
            media_file_ids=media_file_ids,
        )

    async def list_playlist_songs(self, playlist_id: int) -> list[MediaFileRow]:
        return await queries_users.list_playlist_songs(self._require_conn(), playlist_id)


def _normalized(media: UpsertMediaFile) -> UpsertMediaFile:
    return UpsertMediaFile(
        path=str(media.path),
        media_type=media.media_type,
        title=normalize_text(media.title) or Path(media.path).stem,
        parent_path=media.parent_path,
        folder_id=normalize_int(media.folder_id),
        artist=normalize_text(media.artist),
        album=normalize_text(media.album),
        track_no=normalize_int(media.track_no),
        disc_no=normalize_int(media.disc_no),
        year=normalize_int(media.year),
        duration_ms=normalize_int(media.duration_ms),
        file_size=normalize_int(media.file_size),
        mtime_ns=normalize_int(media.mtime_ns),
    )
