"""
Catalog identifier parsing.

Controllers address every container by an opaque string. This module turns
that string into a `CatalogSelector` exactly once per request:

- one of the fixed root identifiers ("root", "library", "playlists", ...)
- a prefixed key ("playlist:42", "albumlist:newest", "musicfolder:3")
- a bare numeric directory id ("1234")

Exact root names are checked first, then prefixes, then the numeric fallback,
so any identifier matches exactly one selector form.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Final

from sonority.core import InvalidIdentifierError, UnknownAlbumListTypeError

ID_ROOT: Final = "root"
ID_LIBRARY: Final = "library"
ID_PLAYLISTS: Final = "playlists"
ID_ALBUMLISTS: Final = "albumlists"
ID_STARRED: Final = "starred"
ID_STARRED_ARTISTS: Final = "starred-artists"
ID_STARRED_ALBUMS: Final = "starred-albums"
ID_STARRED_SONGS: Final = "starred-songs"
ID_SEARCH: Final = "search"

# Search category ids; controllers echo these back in `search` calls.
ID_SEARCH_ARTISTS: Final = "search-artists"
ID_SEARCH_ALBUMS: Final = "search-albums"
ID_SEARCH_SONGS: Final = "search-songs"

PLAYLIST_PREFIX: Final = "playlist:"
ALBUMLIST_PREFIX: Final = "albumlist:"
MUSICFOLDER_PREFIX: Final = "musicfolder:"

MAX_ID: Final = 2**63 - 1
MAX_ID_DIGITS: Final = len(str(MAX_ID))


class RootKind(Enum):
    """The well-known root identifiers."""

    ROOT = ID_ROOT
    LIBRARY = ID_LIBRARY
    PLAYLISTS = ID_PLAYLISTS
    ALBUM_LISTS = ID_ALBUMLISTS
    STARRED = ID_STARRED
    STARRED_ARTISTS = ID_STARRED_ARTISTS
    STARRED_ALBUMS = ID_STARRED_ALBUMS
    STARRED_SONGS = ID_STARRED_SONGS
    SEARCH = ID_SEARCH

    @property
    def requires_identity(self) -> bool:
        """Whether browsing this root needs a resolved username."""
        return self in _PERSONAL_ROOTS


_PERSONAL_ROOTS = frozenset(
    {
        RootKind.PLAYLISTS,
        RootKind.STARRED_ARTISTS,
        RootKind.STARRED_ALBUMS,
        RootKind.STARRED_SONGS,
    }
)


class AlbumListType(Enum):
    """Album list flavours offered under "albumlists"."""

    RANDOM = "random"
    NEWEST = "newest"
    STARRED = "starred"
    HIGHEST = "highest"
    FREQUENT = "frequent"
    RECENT = "recent"
    ALPHABETICAL = "alphabetical"

    @property
    def title(self) -> str:
        return _ALBUM_LIST_TITLES[self]

    @classmethod
    def from_id(cls, token: str) -> AlbumListType:
        try:
            return cls(token)
        except ValueError:
            raise UnknownAlbumListTypeError(f"Unknown album list type: {token!r}") from None


_ALBUM_LIST_TITLES: dict[AlbumListType, str] = {
    AlbumListType.RANDOM: "Random",
    AlbumListType.NEWEST: "Recently added",
    AlbumListType.STARRED: "Starred",
    AlbumListType.HIGHEST: "Top rated",
    AlbumListType.FREQUENT: "Most played",
    AlbumListType.RECENT: "Recently played",
    AlbumListType.ALPHABETICAL: "A-Z",
}


class SearchCategory(Enum):
    """Categories a controller can search in."""

    ARTISTS = ID_SEARCH_ARTISTS
    ALBUMS = ID_SEARCH_ALBUMS
    SONGS = ID_SEARCH_SONGS

    @classmethod
    def from_id(cls, identifier: str) -> SearchCategory:
        try:
            return cls(identifier)
        except ValueError:
            raise InvalidIdentifierError(f"Invalid search category: {identifier!r}") from None


@dataclass(frozen=True, slots=True)
class RootSelector:
    kind: RootKind


@dataclass(frozen=True, slots=True)
class PlaylistSelector:
    playlist_id: int


@dataclass(frozen=True, slots=True)
class AlbumListSelector:
    list_type: AlbumListType


@dataclass(frozen=True, slots=True)
class MusicFolderSelector:
    folder_id: int


@dataclass(frozen=True, slots=True)
class DirectorySelector:
    directory_id: int


CatalogSelector = (
    RootSelector | PlaylistSelector | AlbumListSelector | MusicFolderSelector | DirectorySelector
)

_ROOTS_BY_ID: dict[str, RootKind] = {kind.value: kind for kind in RootKind}


def parse_selector(identifier: str) -> CatalogSelector:
    """
    Parse a raw catalog identifier into a selector.

    Raises:
        InvalidIdentifierError: empty identifier or unparseable numeric part.
        UnknownAlbumListTypeError: "albumlist:" with an unknown type token.
    """
    if not identifier:
        raise InvalidIdentifierError("Empty catalog identifier")

    root = _ROOTS_BY_ID.get(identifier)
    if root is not None:
        return RootSelector(root)

    if identifier.startswith(PLAYLIST_PREFIX):
        return PlaylistSelector(_parse_key(identifier, PLAYLIST_PREFIX))
    if identifier.startswith(ALBUMLIST_PREFIX):
        return AlbumListSelector(AlbumListType.from_id(identifier[len(ALBUMLIST_PREFIX) :]))
    if identifier.startswith(MUSICFOLDER_PREFIX):
        return MusicFolderSelector(_parse_key(identifier, MUSICFOLDER_PREFIX))

    return DirectorySelector(_parse_numeric(identifier, identifier))


def _parse_key(identifier: str, prefix: str) -> int:
    return _parse_numeric(identifier[len(prefix) :], identifier)


def _parse_numeric(raw: str, identifier: str) -> int:
    # ASCII digits only: int() would also accept signs, whitespace and "1_000".
    if not raw or not (raw.isascii() and raw.isdigit()):
        raise InvalidIdentifierError(f"Invalid catalog identifier: {identifier!r}")
    # Ids are SQLite INTEGER keys.
    significant = raw.lstrip("0") or "0"
    if len(significant) > MAX_ID_DIGITS or int(significant) > MAX_ID:
        raise InvalidIdentifierError(f"Catalog identifier out of range: {identifier!r}")
    return int(significant)


# ---- Identifier builders (inverse of parse_selector) ----


def playlist_identifier(playlist_id: int) -> str:
    return f"{PLAYLIST_PREFIX}{playlist_id}"


def album_list_identifier(list_type: AlbumListType) -> str:
    return f"{ALBUMLIST_PREFIX}{list_type.value}"


def music_folder_identifier(folder_id: int) -> str:
    return f"{MUSICFOLDER_PREFIX}{folder_id}"
