"""
DB models (DTOs) and small normalization helpers used by `library_db.py`.

This module is intentionally lightweight:
- No DB connection knowledge
- No SQL
- Pure dataclasses + helper functions
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class MediaType(Enum):
    """
    Role of a `media_files` row in the folder tree.

    - DIRECTORY: a folder without audio files of its own (usually an artist)
    - ALBUM: a folder that directly contains audio files
    - MUSIC: an audio file
    """

    DIRECTORY = "DIRECTORY"
    ALBUM = "ALBUM"
    MUSIC = "MUSIC"


@dataclass(frozen=True, slots=True)
class MusicFolderRow:
    """Configured scan root."""

    id: int
    path: str
    name: str
    enabled: bool = True


@dataclass(frozen=True, slots=True)
class MediaFileRow:
    """
    A directory or audio file as stored in SQLite.

    `path` is the stable unique identifier; `parent_path` links the tree.
    """

    id: int
    path: str
    parent_path: str | None
    folder_id: int | None
    media_type: MediaType
    title: str
    artist: str | None = None
    album: str | None = None
    track_no: int | None = None
    disc_no: int | None = None
    year: int | None = None
    duration_ms: int | None = None
    file_size: int | None = None
    play_count: int = 0
    last_played: str | None = None

    @property
    def is_directory(self) -> bool:
        return self.media_type is not MediaType.MUSIC


@dataclass(frozen=True, slots=True)
class UpsertMediaFile:
    """
    Input record used by the scanner.

    `path` is required and must identify the same file across scans.
    """

    path: str
    media_type: MediaType
    title: str
    parent_path: str | None = None
    folder_id: int | None = None
    artist: str | None = None
    album: str | None = None
    track_no: int | None = None
    disc_no: int | None = None
    year: int | None = None
    duration_ms: int | None = None
    file_size: int | None = None
    mtime_ns: int | None = None


@dataclass(frozen=True, slots=True)
class PlaylistRow:
    id: int
    name: str
    owner: str
    is_public: bool = False


@dataclass(frozen=True, slots=True)
class UserRow:
    id: int
    username: str
    password: str


def normalize_text(value: str | None) -> str | None:
    """
    Normalize optional text fields:
    - strip whitespace
    - coerce empty strings to None
    """
    if value is None:
        return None
    v = value.strip()
    return v if v else None


def normalize_int(value: int | None) -> int | None:
    """Normalize optional integer fields (coerce to int, keep None)."""
    if value is None:
        return None
    return int(value)
