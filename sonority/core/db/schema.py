"""
Database schema + migrations for Sonority.

- Connection management and the public `LibraryDb` facade live in `library_db.py`
- Schema creation, schema versioning, and forward-only migrations live here

We use SQLite `PRAGMA user_version` as the schema version. Migrations are
forward-only; for huge refactors prefer a new DB.
"""

from __future__ import annotations

from typing import Final

import aiosqlite

# Bump when you change the schema and add a migration in `migrate()`.
SCHEMA_VERSION: Final[int] = 2


async def ensure_schema(conn: aiosqlite.Connection) -> None:
    """
    Create or migrate schema to current version.

    Assumes `conn` is open and the foreign_keys pragma is enabled by the caller.
    """
    cursor = await conn.execute("PRAGMA user_version;")
    row = await cursor.fetchone()
    current = int(row[0]) if row is not None else 0

    if current > SCHEMA_VERSION:
        raise RuntimeError(
            f"Database schema version {current} is newer than supported {SCHEMA_VERSION}."
        )

    if current == SCHEMA_VERSION:
        return

    await migrate(conn, from_version=current, to_version=SCHEMA_VERSION)
    await conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")
    await conn.commit()


async def migrate(conn: aiosqlite.Connection, *, from_version: int, to_version: int) -> None:
    """Perform forward-only migrations."""
    # v0 -> v1: folder tree + users
    if from_version == 0 and to_version >= 1:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS music_folders (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                path TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL,
                enabled INTEGER NOT NULL DEFAULT 1
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS media_files (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                path TEXT NOT NULL UNIQUE,
                parent_path TEXT,
                folder_id INTEGER REFERENCES music_folders(id) ON DELETE CASCADE,
                media_type TEXT NOT NULL,

                title TEXT NOT NULL,
                artist TEXT,
                album TEXT,
                track_no INTEGER,
                disc_no INTEGER,
                year INTEGER,
                duration_ms INTEGER,

                file_size INTEGER,
                mtime_ns INTEGER,

                play_count INTEGER NOT NULL DEFAULT 0,
                last_played TEXT,
                created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
        await conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_media_files_parent ON media_files(parent_path);"
        )
        await conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_media_files_type ON media_files(media_type);"
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT NOT NULL UNIQUE,
                password TEXT NOT NULL
            )
            """
        )
        await conn.commit()
        from_version = 1

    # v1 -> v2: per-user data (playlists, starred, ratings)
    if from_version == 1 and to_version >= 2:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS playlists (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                owner TEXT NOT NULL,
                is_public INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS playlist_entries (
                playlist_id INTEGER NOT NULL REFERENCES playlists(id) ON DELETE CASCADE,
                position INTEGER NOT NULL,
                media_file_id INTEGER NOT NULL REFERENCES media_files(id) ON DELETE CASCADE,
                PRIMARY KEY (playlist_id, position)
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS starred (
                username TEXT NOT NULL,
                media_file_id INTEGER NOT NULL REFERENCES media_files(id) ON DELETE CASCADE,
                created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (username, media_file_id)
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS ratings (
                username TEXT NOT NULL,
                media_file_id INTEGER NOT NULL REFERENCES media_files(id) ON DELETE CASCADE,
                rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
                PRIMARY KEY (username, media_file_id)
            )
            """
        )
        await conn.commit()
        from_version = 2
