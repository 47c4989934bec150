"""
Catalog entities shared by the resolver, the library store and the web layer.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class MediaKind(Enum):
    """What a catalog item represents."""

    MENU = "menu"
    MUSIC_FOLDER = "musicfolder"
    DIRECTORY = "directory"
    ARTIST = "artist"
    ALBUM = "album"
    PLAYLIST = "playlist"
    ALBUM_LIST = "albumlist"
    SEARCH = "search"
    SONG = "song"


@dataclass(frozen=True, slots=True)
class MediaEntity:
    """
    A single item in the browsable catalog.

    Containers (everything except songs) can be passed back as an identifier
    to browse further; songs are playable leaves.
    """

    id: str
    title: str
    kind: MediaKind
    artist: str | None = None
    album: str | None = None
    duration_ms: int | None = None
    track_no: int | None = None
    year: int | None = None
    content_type: str | None = None

    @property
    def is_container(self) -> bool:
        return self.kind is not MediaKind.SONG


_AUDIO_CONTENT_TYPES: dict[str, str] = {
    ".mp3": "audio/mpeg",
    ".flac": "audio/flac",
    ".ogg": "audio/ogg",
    ".oga": "audio/ogg",
    ".wav": "audio/wav",
    ".aac": "audio/aac",
    ".m4a": "audio/mp4",
    ".m4b": "audio/mp4",
    ".wma": "audio/x-ms-wma",
    ".aif": "audio/aiff",
    ".aiff": "audio/aiff",
    ".opus": "audio/opus",
}


def content_type_for(path: str | Path) -> str:
    """Get MIME type for an audio file."""
    suffix = Path(path).suffix.lower()
    if suffix in _AUDIO_CONTENT_TYPES:
        return _AUDIO_CONTENT_TYPES[suffix]

    # Fall back to mimetypes
    content_type, _ = mimetypes.guess_type(str(path))
    return content_type or "application/octet-stream"
