"""
User and playlist DB queries used by `sonority.core.library_db.LibraryDb`.

Design:
- Functions are *pure DB helpers*: they take an open `aiosqlite.Connection`
  and return materialized dataclasses.
- These functions assume `conn.row_factory = aiosqlite.Row`.
"""

from __future__ import annotations

from typing import Sequence

import aiosqlite

from sonority.core.db.models import MediaFileRow, PlaylistRow, UserRow
from sonority.core.db.queries_media import MEDIA_COLUMNS, row_to_media_file

# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


async def get_user_by_name(conn: aiosqlite.Connection, username: str) -> UserRow | None:
    cursor = await conn.execute(
        "SELECT id, username, password FROM users WHERE username = ?;",
        (username,),
    )
    row = await cursor.fetchone()
    if row is None:
        return None
    return UserRow(id=int(row["id"]), username=row["username"], password=row["password"])


async def upsert_user(conn: aiosqlite.Connection, username: str, password: str) -> int:
    await conn.execute(
        """
        INSERT INTO users(username, password) VALUES (?, ?)
        ON CONFLICT(username) DO UPDATE SET password = excluded.password;
        """,
        (username, password),
    )
    await conn.commit()
    cursor = await conn.execute("SELECT id FROM users WHERE username = ?;", (username,))
    row = await cursor.fetchone()
    return int(row["id"])


# ---------------------------------------------------------------------------
# Playlists
# ---------------------------------------------------------------------------


def _row_to_playlist(row: aiosqlite.Row) -> PlaylistRow:
    return PlaylistRow(
        id=int(row["id"]),
        name=row["name"],
        owner=row["owner"],
        is_public=bool(row["is_public"]),
    )


async def list_playlists_for_user(
    conn: aiosqlite.Connection,
    username: str,
) -> list[PlaylistRow]:
    """Playlists owned by `username` plus public playlists of other users."""
    cursor = await conn.execute(
        """
        SELECT id, name, owner, is_public
        FROM playlists
        WHERE owner = ? OR is_public = 1
        ORDER BY name COLLATE NOCASE, id;
        """,
        (username,),
    )
    return [_row_to_playlist(r) for r in await cursor.fetchall()]


async def get_playlist(conn: aiosqlite.Connection, playlist_id: int) -> PlaylistRow | None:
    cursor = await conn.execute(
        "SELECT id, name, owner, is_public FROM playlists WHERE id = ?;",
        (int(playlist_id),),
    )
    row = await cursor.fetchone()
    return _row_to_playlist(row) if row else None


async def create_playlist(
    conn: aiosqlite.Connection,
    name: str,
    owner: str,
    *,
    is_public: bool = False,
    media_file_ids: Sequence[int] = (),
) -> int:
    cursor = await conn.execute(
        "INSERT INTO playlists(name, owner, is_public) VALUES (?, ?, ?);",
        (name, owner, 1 if is_public else 0),
    )
    playlist_id = int(cursor.lastrowid)
    await conn.executemany(
        "INSERT INTO playlist_entries(playlist_id, position, media_file_id) VALUES (?, ?, ?);",
        [(playlist_id, pos, int(mid)) for pos, mid in enumerate(media_file_ids)],
    )
    await conn.commit()
    return playlist_id


async def list_playlist_songs(conn: aiosqlite.Connection, playlist_id: int) -> list[MediaFileRow]:
    cursor = await conn.execute(
        f"""
        SELECT {MEDIA_COLUMNS}
        FROM playlist_entries e
        JOIN media_files m ON m.id = e.media_file_id
        WHERE e.playlist_id = ?
        ORDER BY e.position;
        """,
        (int(playlist_id),),
    )
    return [row_to_media_file(r) for r in await cursor.fetchall()]
