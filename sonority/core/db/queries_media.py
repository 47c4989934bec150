"""
Folder-tree DB queries used by `sonority.core.library_db.LibraryDb`.

This module contains queries for:
- Music folders
- Media files (directories, albums, songs) and their children
- Album lists, starred items and search

Design:
- Functions are *pure DB helpers*: they take an open `aiosqlite.Connection`
  and return materialized dataclasses.
- These functions assume `conn.row_factory = aiosqlite.Row`.

Important:
- Do NOT interpolate user input into SQL. The only dynamic SQL here is
  selected from the `_ALBUM_LIST_SQL` whitelist.
"""

from __future__ import annotations

import aiosqlite

from sonority.core.db.models import MediaFileRow, MediaType, MusicFolderRow, UpsertMediaFile

MEDIA_COLUMNS = """
    m.id, m.path, m.parent_path, m.folder_id, m.media_type, m.title,
    m.artist, m.album, m.track_no, m.disc_no, m.year, m.duration_ms,
    m.file_size, m.play_count, m.last_played
"""

# Directories before songs; songs in disc/track order.
_CHILD_ORDER = """
    CASE m.media_type WHEN 'MUSIC' THEN 1 ELSE 0 END,
    m.disc_no, m.track_no, m.title COLLATE NOCASE, m.path
"""


_SQLITE_MAX_INT = 2**63 - 1


def _bound(value: int) -> int:
    # LIMIT/OFFSET past SQLite's INTEGER range mean "everything" / "past the end".
    return min(int(value), _SQLITE_MAX_INT)


def row_to_media_file(row: aiosqlite.Row) -> MediaFileRow:
    return MediaFileRow(
        id=int(row["id"]),
        path=str(row["path"]),
        parent_path=row["parent_path"],
        folder_id=row["folder_id"],
        media_type=MediaType(row["media_type"]),
        title=row["title"],
        artist=row["artist"],
        album=row["album"],
        track_no=row["track_no"],
        disc_no=row["disc_no"],
        year=row["year"],
        duration_ms=row["duration_ms"],
        file_size=row["file_size"],
        play_count=int(row["play_count"] or 0),
        last_played=row["last_played"],
    )


def _row_to_folder(row: aiosqlite.Row) -> MusicFolderRow:
    return MusicFolderRow(
        id=int(row["id"]),
        path=str(row["path"]),
        name=row["name"],
        enabled=bool(row["enabled"]),
    )


# ---------------------------------------------------------------------------
# Music folders
# ---------------------------------------------------------------------------


async def list_music_folders(conn: aiosqlite.Connection) -> list[MusicFolderRow]:
    cursor = await conn.execute(
        "SELECT id, path, name, enabled FROM music_folders WHERE enabled = 1 ORDER BY id;"
    )
    return [_row_to_folder(r) for r in await cursor.fetchall()]


async def get_music_folder(conn: aiosqlite.Connection, folder_id: int) -> MusicFolderRow | None:
    cursor = await conn.execute(
        "SELECT id, path, name, enabled FROM music_folders WHERE id = ?;",
        (int(folder_id),),
    )
    row = await cursor.fetchone()
    return _row_to_folder(row) if row else None


async def add_music_folder(conn: aiosqlite.Connection, path: str, name: str) -> int:
    await conn.execute(
        """
        INSERT INTO music_folders(path, name, enabled) VALUES (?, ?, 1)
        ON CONFLICT(path) DO UPDATE SET enabled = 1, name = excluded.name;
        """,
        (path, name),
    )
    await conn.commit()
    cursor = await conn.execute("SELECT id FROM music_folders WHERE path = ?;", (path,))
    row = await cursor.fetchone()
    return int(row["id"])


async def disable_music_folders_except(conn: aiosqlite.Connection, paths: list[str]) -> int:
    if paths:
        placeholders = ", ".join("?" for _ in paths)
        cursor = await conn.execute(
            f"UPDATE music_folders SET enabled = 0 WHERE path NOT IN ({placeholders});",
            tuple(paths),
        )
    else:
        cursor = await conn.execute("UPDATE music_folders SET enabled = 0;")
    await conn.commit()
    return cursor.rowcount


# ---------------------------------------------------------------------------
# Media files
# ---------------------------------------------------------------------------


async def upsert_media_file(conn: aiosqlite.Connection, media: UpsertMediaFile) -> int:
    """Insert or update by path; play statistics and created_at are preserved."""
    await conn.execute(
        """
        INSERT INTO media_files(
            path, parent_path, folder_id, media_type, title,
            artist, album, track_no, disc_no, year, duration_ms,
            file_size, mtime_ns
        ) VALUES (
            :path, :parent_path, :folder_id, :media_type, :title,
            :artist, :album, :track_no, :disc_no, :year, :duration_ms,
            :file_size, :mtime_ns
        )
        ON CONFLICT(path) DO UPDATE SET
            parent_path = excluded.parent_path,
            folder_id   = excluded.folder_id,
            media_type  = excluded.media_type,
            title       = excluded.title,
            artist      = excluded.artist,
            album       = excluded.album,
            track_no    = excluded.track_no,
            disc_no     = excluded.disc_no,
            year        = excluded.year,
            duration_ms = excluded.duration_ms,
            file_size   = excluded.file_size,
            mtime_ns    = excluded.mtime_ns
        """,
        {
            "path": media.path,
            "parent_path": media.parent_path,
            "folder_id": media.folder_id,
            "media_type": media.media_type.value,
            "title": media.title,
            "artist": media.artist,
            "album": media.album,
            "track_no": media.track_no,
            "disc_no": media.disc_no,
            "year": media.year,
            "duration_ms": media.duration_ms,
            "file_size": media.file_size,
            "mtime_ns": media.mtime_ns,
        },
    )
    cursor = await conn.execute("SELECT id FROM media_files WHERE path = ?;", (media.path,))
    row = await cursor.fetchone()
    return int(row["id"])


async def get_media_file(conn: aiosqlite.Connection, media_file_id: int) -> MediaFileRow | None:
    cursor = await conn.execute(
        f"SELECT {MEDIA_COLUMNS} FROM media_files m WHERE m.id = ?;",
        (int(media_file_id),),
    )
    row = await cursor.fetchone()
    return row_to_media_file(row) if row else None


async def get_media_file_by_path(conn: aiosqlite.Connection, path: str) -> MediaFileRow | None:
    cursor = await conn.execute(
        f"SELECT {MEDIA_COLUMNS} FROM media_files m WHERE m.path = ?;",
        (path,),
    )
    row = await cursor.fetchone()
    return row_to_media_file(row) if row else None


async def list_children(conn: aiosqlite.Connection, parent_path: str) -> list[MediaFileRow]:
    cursor = await conn.execute(
        f"""
        SELECT {MEDIA_COLUMNS}
        FROM media_files m
        WHERE m.parent_path = ?
        ORDER BY {_CHILD_ORDER};
        """,
        (parent_path,),
    )
    return [row_to_media_file(r) for r in await cursor.fetchall()]


async def delete_missing_under(
    conn: aiosqlite.Connection,
    folder_id: int,
    keep_paths: set[str],
) -> int:
    """Delete rows of a folder whose path was not seen by the latest scan."""
    cursor = await conn.execute(
        "SELECT id, path FROM media_files WHERE folder_id = ?;",
        (int(folder_id),),
    )
    stale = [int(r["id"]) for r in await cursor.fetchall() if r["path"] not in keep_paths]
    for media_file_id in stale:
        await conn.execute("DELETE FROM media_files WHERE id = ?;", (media_file_id,))
    return len(stale)


async def record_play(conn: aiosqlite.Connection, media_file_id: int) -> None:
    """Bump play statistics of a song and of the album folder containing it."""
    await conn.execute(
        """
        UPDATE media_files
        SET play_count = play_count + 1, last_played = CURRENT_TIMESTAMP
        WHERE id = :id
           OR path = (SELECT parent_path FROM media_files WHERE id = :id);
        """,
        {"id": int(media_file_id)},
    )
    await conn.commit()


# ---------------------------------------------------------------------------
# Album lists
# ---------------------------------------------------------------------------

# list type -> (extra JOIN, extra WHERE, ORDER BY)
_ALBUM_LIST_SQL: dict[str, tuple[str, str, str]] = {
    "random": ("", "", "RANDOM()"),
    "newest": ("", "", "m.created_at DESC, m.id DESC"),
    "starred": (
        "JOIN starred s ON s.media_file_id = m.id AND s.username = :username",
        "",
        "s.created_at DESC, m.id DESC",
    ),
    "highest": (
        """
        JOIN (
            SELECT media_file_id, AVG(rating) AS avg_rating
            FROM ratings GROUP BY media_file_id
        ) r ON r.media_file_id = m.id
        """,
        "",
        "r.avg_rating DESC, m.id",
    ),
    "frequent": ("", "AND m.play_count > 0", "m.play_count DESC, m.id"),
    "recent": ("", "AND m.last_played IS NOT NULL", "m.last_played DESC, m.id DESC"),
    "alphabetical": ("", "", "m.title COLLATE NOCASE, m.id"),
}


def _album_list_sql(list_type: str) -> tuple[str, str, str]:
    try:
        return _ALBUM_LIST_SQL[list_type]
    except KeyError:
        raise ValueError(f"Unsupported album list type: {list_type}") from None


async def list_album_list(
    conn: aiosqlite.Connection,
    list_type: str,
    *,
    username: str,
    limit: int,
    offset: int,
) -> list[MediaFileRow]:
    join, where, order = _album_list_sql(list_type)
    cursor = await conn.execute(
        f"""
        SELECT {MEDIA_COLUMNS}
        FROM media_files m
        {join}
        WHERE m.media_type = 'ALBUM' {where}
        ORDER BY {order}
        LIMIT :limit OFFSET :offset;
        """,
        {"username": username, "limit": _bound(limit), "offset": _bound(offset)},
    )
    return [row_to_media_file(r) for r in await cursor.fetchall()]


async def count_album_list(conn: aiosqlite.Connection, list_type: str, *, username: str) -> int:
    join, where, _ = _album_list_sql(list_type)
    cursor = await conn.execute(
        f"""
        SELECT COUNT(*) AS c
        FROM media_files m
        {join}
        WHERE m.media_type = 'ALBUM' {where};
        """,
        {"username": username},
    )
    row = await cursor.fetchone()
    return int(row["c"]) if row else 0


# ---------------------------------------------------------------------------
# Starred
# ---------------------------------------------------------------------------


async def list_starred(
    conn: aiosqlite.Connection,
    username: str,
    media_type: MediaType,
) -> list[MediaFileRow]:
    cursor = await conn.execute(
        f"""
        SELECT {MEDIA_COLUMNS}
        FROM media_files m
        JOIN starred s ON s.media_file_id = m.id
        WHERE s.username = ? AND m.media_type = ?
        ORDER BY s.created_at DESC, m.id DESC;
        """,
        (username, media_type.value),
    )
    return [row_to_media_file(r) for r in await cursor.fetchall()]


async def star(conn: aiosqlite.Connection, username: str, media_file_id: int) -> None:
    await conn.execute(
        "INSERT OR IGNORE INTO starred(username, media_file_id) VALUES (?, ?);",
        (username, int(media_file_id)),
    )
    await conn.commit()


async def unstar(conn: aiosqlite.Connection, username: str, media_file_id: int) -> bool:
    cursor = await conn.execute(
        "DELETE FROM starred WHERE username = ? AND media_file_id = ?;",
        (username, int(media_file_id)),
    )
    await conn.commit()
    return cursor.rowcount > 0


async def set_rating(
    conn: aiosqlite.Connection,
    username: str,
    media_file_id: int,
    rating: int,
) -> None:
    await conn.execute(
        """
        INSERT INTO ratings(username, media_file_id, rating) VALUES (?, ?, ?)
        ON CONFLICT(username, media_file_id) DO UPDATE SET rating = excluded.rating;
        """,
        (username, int(media_file_id), int(rating)),
    )
    await conn.commit()


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def search_media(
    conn: aiosqlite.Connection,
    media_type: MediaType,
    term: str,
    *,
    limit: int,
    offset: int,
) -> list[MediaFileRow]:
    """Substring search on title (and artist/album for songs)."""
    cursor = await conn.execute(
        f"""
        SELECT {MEDIA_COLUMNS}
        FROM media_files m
        WHERE m.media_type = :media_type
          AND (
            m.title LIKE :pattern ESCAPE '\\'
            OR (:media_type = 'MUSIC' AND (
                m.artist LIKE :pattern ESCAPE '\\' OR m.album LIKE :pattern ESCAPE '\\'
            ))
          )
        ORDER BY m.title COLLATE NOCASE, m.id
        LIMIT :limit OFFSET :offset;
        """,
        {
            "media_type": media_type.value,
            "pattern": _like_pattern(term),
            "limit": _bound(limit),
            "offset": _bound(offset),
        },
    )
    return [row_to_media_file(r) for r in await cursor.fetchall()]


async def count_search_media(conn: aiosqlite.Connection, media_type: MediaType, term: str) -> int:
    cursor = await conn.execute(
        """
        SELECT COUNT(*) AS c
        FROM media_files m
        WHERE m.media_type = :media_type
          AND (
            m.title LIKE :pattern ESCAPE '\\'
            OR (:media_type = 'MUSIC' AND (
                m.artist LIKE :pattern ESCAPE '\\' OR m.album LIKE :pattern ESCAPE '\\'
            ))
          );
        """,
        {"media_type": media_type.value, "pattern": _like_pattern(term)},
    )
    row = await cursor.fetchone()
    return int(row["c"]) if row else 0
