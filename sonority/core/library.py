from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from sonority.core import InvalidIdentifierError, NotFoundError, UnauthorizedError
from sonority.core.db.models import MediaFileRow, MediaType, UpsertMediaFile, UserRow
from sonority.core.library_db import LibraryDb
from sonority.core.media import MediaEntity, MediaKind, content_type_for
from sonority.core.paging import PageResult, Window
from sonority.core.scanner import ScanConfig, ScanResult, SongMetadata, scan_music_folder
from sonority.core.selector import (
    ID_ALBUMLISTS,
    ID_LIBRARY,
    ID_PLAYLISTS,
    ID_STARRED,
    ID_STARRED_ALBUMS,
    ID_STARRED_ARTISTS,
    ID_STARRED_SONGS,
    AlbumListType,
    DirectorySelector,
    SearchCategory,
    album_list_identifier,
    music_folder_identifier,
    parse_selector,
    playlist_identifier,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LibraryScanSummary:
    folders: int
    directories: int
    songs: int
    removed: int
    issues: int


class MusicLibraryError(RuntimeError):
    """Base error for MusicLibrary operations that are not catalog faults."""


class MusicLibraryNotReadyError(MusicLibraryError):
    """Raised when operations are attempted before the library is initialized."""


_ROOT_MENU: tuple[MediaEntity, ...] = (
    MediaEntity(id=ID_LIBRARY, title="Library", kind=MediaKind.MENU),
    MediaEntity(id=ID_PLAYLISTS, title="Playlists", kind=MediaKind.MENU),
    MediaEntity(id=ID_ALBUMLISTS, title="Album lists", kind=MediaKind.MENU),
    MediaEntity(id=ID_STARRED, title="Starred", kind=MediaKind.MENU),
)

_STARRED_MENU: tuple[MediaEntity, ...] = (
    MediaEntity(id=ID_STARRED_ARTISTS, title="Artists", kind=MediaKind.MENU),
    MediaEntity(id=ID_STARRED_ALBUMS, title="Albums", kind=MediaKind.MENU),
    MediaEntity(id=ID_STARRED_SONGS, title="Songs", kind=MediaKind.MENU),
)

_SEARCH_MENU: tuple[MediaEntity, ...] = (
    MediaEntity(id=SearchCategory.ARTISTS.value, title="Artists", kind=MediaKind.SEARCH),
    MediaEntity(id=SearchCategory.ALBUMS.value, title="Albums", kind=MediaKind.SEARCH),
    MediaEntity(id=SearchCategory.SONGS.value, title="Songs", kind=MediaKind.SEARCH),
)

# Artists are the top-level directories of the folder tree.
_SEARCH_MEDIA_TYPES: dict[SearchCategory, MediaType] = {
    SearchCategory.ARTISTS: MediaType.DIRECTORY,
    SearchCategory.ALBUMS: MediaType.ALBUM,
    SearchCategory.SONGS: MediaType.MUSIC,
}


def media_entity(
    row: MediaFileRow,
    *,
    directory_kind: MediaKind = MediaKind.DIRECTORY,
) -> MediaEntity:
    """Map a `media_files` row to a catalog entity."""
    if row.media_type is MediaType.MUSIC:
        return MediaEntity(
            id=str(row.id),
            title=row.title,
            kind=MediaKind.SONG,
            artist=row.artist,
            album=row.album,
            duration_ms=row.duration_ms,
            track_no=row.track_no,
            year=row.year,
            content_type=content_type_for(row.path),
        )
    if row.media_type is MediaType.ALBUM:
        return MediaEntity(
            id=str(row.id),
            title=row.title,
            kind=MediaKind.ALBUM,
            artist=row.artist,
            year=row.year,
        )
    return MediaEntity(id=str(row.id), title=row.title, kind=directory_kind)


class MusicLibrary:
    """
    High-level facade over the catalog store.

    Implements the `CatalogSource` lookups used by `CatalogResolver` plus the
    user-facing operations (login, favorites, play statistics, scanning).

    Dependencies:
    - `LibraryDb` for persistence
    - `scanner` for tag extraction
    """

    def __init__(self, *, db: LibraryDb, music_folders: Sequence[Path] = ()) -> None:
        self._db = db
        self._music_folders = list(music_folders)
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """
        Prepare the library.

        Contract:
        - `LibraryDb` must already be open.
        - schema/migrations are ensured here for convenience.
        """
        if not self._db.is_open:
            raise MusicLibraryError(
                "LibraryDb is not open. Open it before initializing MusicLibrary."
            )

        await self._db.ensure_schema()
        self._initialized = True

    # ---- Static menus ----

    async def root(self) -> Sequence[MediaEntity]:
        return _ROOT_MENU

    async def album_lists(self) -> Sequence[MediaEntity]:
        return tuple(
            MediaEntity(id=album_list_identifier(t), title=t.title, kind=MediaKind.ALBUM_LIST)
            for t in AlbumListType
        )

    async def starred(self) -> Sequence[MediaEntity]:
        return _STARRED_MENU

    async def search_categories(self) -> Sequence[MediaEntity]:
        return _SEARCH_MENU

    # ---- Folder tree ----

    async def library(self) -> Sequence[MediaEntity]:
        """
        Top of the folder tree.

        Lists the enabled music folders, or the contents of the only folder
        when there is exactly one.
        """
        self._require_initialized()
        folders = await self._db.list_music_folders()
        if len(folders) == 1:
            return await self._children(folders[0].path)
        return tuple(
            MediaEntity(id=music_folder_identifier(f.id), title=f.name, kind=MediaKind.MUSIC_FOLDER)
            for f in folders
        )

    async def music_folder(self, folder_id: int) -> Sequence[MediaEntity]:
        self._require_initialized()
        folder = await self._db.get_music_folder(folder_id)
        if folder is None or not folder.enabled:
            raise NotFoundError(f"Music folder not found: {folder_id}")
        return await self._children(folder.path)

    async def directory(self, directory_id: int) -> Sequence[MediaEntity]:
        self._require_initialized()
        row = await self._db.get_media_file(directory_id)
        if row is None or not row.is_directory:
            raise NotFoundError(f"Directory not found: {directory_id}")
        return await self._children(row.path)

    async def _children(self, parent_path: str) -> tuple[MediaEntity, ...]:
        rows = await self._db.list_children(parent_path)
        return tuple(media_entity(r) for r in rows)

    # ---- Per-user containers ----

    async def playlists(self, username: str) -> Sequence[MediaEntity]:
        self._require_initialized()
        rows = await self._db.list_playlists_for_user(username)
        return tuple(
            MediaEntity(id=playlist_identifier(p.id), title=p.name, kind=MediaKind.PLAYLIST)
            for p in rows
        )

    async def playlist(self, playlist_id: int) -> Sequence[MediaEntity]:
        self._require_initialized()
        if await self._db.get_playlist(playlist_id) is None:
            raise NotFoundError(f"Playlist not found: {playlist_id}")
        rows = await self._db.list_playlist_songs(playlist_id)
        return tuple(media_entity(r) for r in rows)

    async def starred_artists(self, username: str) -> Sequence[MediaEntity]:
        self._require_initialized()
        rows = await self._db.list_starred(username, MediaType.DIRECTORY)
        return tuple(media_entity(r, directory_kind=MediaKind.ARTIST) for r in rows)

    async def starred_albums(self, username: str) -> Sequence[MediaEntity]:
        self._require_initialized()
        rows = await self._db.list_starred(username, MediaType.ALBUM)
        return tuple(media_entity(r) for r in rows)

    async def starred_songs(self, username: str) -> Sequence[MediaEntity]:
        self._require_initialized()
        rows = await self._db.list_starred(username, MediaType.MUSIC)
        return tuple(media_entity(r) for r in rows)

    async def album_list_page(
        self,
        list_type: AlbumListType,
        index: int,
        count: int,
        username: str,
    ) -> PageResult[MediaEntity]:
        """Album lists are paged in SQL; the total comes from a separate count query."""
        self._require_initialized()
        requested = Window(index, count)
        total = await self._db.count_album_list(list_type.value, username=username)
        rows = await self._db.list_album_list(
            list_type.value,
            username=username,
            offset=requested.index,
            limit=requested.count,
        )
        return PageResult(
            items=tuple(media_entity(r) for r in rows),
            offset=requested.index,
            total=total,
        )

    # ---- Search ----

    async def search(
        self,
        category: SearchCategory,
        term: str,
        index: int,
        count: int,
    ) -> PageResult[MediaEntity]:
        self._require_initialized()
        requested = Window(index, count)
        media_type = _SEARCH_MEDIA_TYPES[category]
        directory_kind = (
            MediaKind.ARTIST if category is SearchCategory.ARTISTS else MediaKind.DIRECTORY
        )

        term = term.strip()
        if not term:
            return PageResult(items=(), offset=requested.index, total=0)

        total = await self._db.count_search_media(media_type, term)
        rows = await self._db.search_media(
            media_type, term, offset=requested.index, limit=requested.count
        )
        return PageResult(
            items=tuple(media_entity(r, directory_kind=directory_kind) for r in rows),
            offset=requested.index,
            total=total,
        )

    # ---- Users ----

    async def get_user(self, username: str) -> UserRow | None:
        self._require_initialized()
        return await self._db.get_user_by_name(username)

    async def authenticate(self, username: str, password: str) -> str:
        """
        Check a username/password pair and return the session id for it.

        The session id is the username itself.

        Raises:
            UnauthorizedError: unknown user or wrong password.
        """
        self._require_initialized()
        user = await self._db.get_user_by_name(username)
        if user is None or not secrets.compare_digest(
            user.password.encode("utf-8"), password.encode("utf-8")
        ):
            logger.info("Login failed for user %r", username)
            raise UnauthorizedError("Invalid username or password")
        return user.username

    async def add_user(self, username: str, password: str) -> int:
        self._require_initialized()
        return await self._db.upsert_user(username, password)

    # ---- Favorites / songs ----

    async def star(self, username: str, item_id: str) -> None:
        row = await self._require_item(item_id)
        await self._db.star(username, row.id)
        logger.debug("Starred %s for %s", row.path, username)

    async def unstar(self, username: str, item_id: str) -> bool:
        row = await self._require_item(item_id)
        removed = await self._db.unstar(username, row.id)
        logger.debug("Unstarred %s for %s (removed=%s)", row.path, username, removed)
        return removed

    async def get_song(self, song_id: str) -> MediaFileRow:
        """
        Look up a playable song by its catalog id.

        Raises:
            InvalidIdentifierError: not a numeric item id.
            NotFoundError: no such song.
        """
        row = await self._require_item(song_id)
        if row.media_type is not MediaType.MUSIC:
            raise NotFoundError(f"Song not found: {song_id}")
        return row

    async def record_play(self, song_id: int) -> None:
        self._require_initialized()
        await self._db.record_play(song_id)

    async def _require_item(self, item_id: str) -> MediaFileRow:
        self._require_initialized()
        selector = parse_selector(item_id)
        if not isinstance(selector, DirectorySelector):
            raise InvalidIdentifierError(f"Not an item id: {item_id!r}")
        row = await self._db.get_media_file(selector.directory_id)
        if row is None:
            raise NotFoundError(f"Item not found: {item_id}")
        return row

    # ---- Music folders / scanning ----

    async def sync_music_folders(self, paths: Sequence[str | Path] | None = None) -> int:
        """
        Make the enabled music folders match `paths` (or the configured folders).

        Returns:
            Number of enabled folders.
        """
        self._require_initialized()
        if paths is not None:
            self._music_folders = [Path(p) for p in paths]

        resolved: list[str] = []
        for p in self._music_folders:
            folder_path = Path(p).expanduser().resolve()
            if not folder_path.is_dir():
                logger.warning("Music folder does not exist or is not a directory: %s", folder_path)
            resolved.append(str(folder_path))

        await self._db.set_music_folders(resolved)
        logger.info("Set %d music folders", len(resolved))
        return len(resolved)

    async def scan(self) -> LibraryScanSummary:
        """
        Scan every enabled music folder and update the catalog.

        Rows whose files disappeared since the last scan are removed.
        """
        self._require_initialized()
        folders = await self._db.list_music_folders()

        directories = songs = removed = issues = 0
        for folder in folders:
            logger.info("Scanning music folder: %s", folder.path)
            try:
                result = await scan_music_folder(ScanConfig(root=Path(folder.path)))
            except OSError as e:
                logger.error("Error scanning folder %s: %s", folder.path, e)
                issues += 1
                continue

            records = _to_records(result, folder.id)
            await self._db.upsert_media_files(records)
            removed += await self._db.delete_missing(folder.id, {r.path for r in records})

            directories += len(result.directories)
            songs += len(result.songs)
            issues += len(result.issues)

        summary = LibraryScanSummary(
            folders=len(folders),
            directories=directories,
            songs=songs,
            removed=removed,
            issues=issues,
        )
        logger.info(
            "Scan complete: %d folders, %d directories, %d songs, %d removed, %d issues",
            summary.folders,
            summary.directories,
            summary.songs,
            summary.removed,
            summary.issues,
        )
        return summary

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise MusicLibraryNotReadyError(
                "MusicLibrary is not initialized. Call await MusicLibrary.initialize() first."
            )


def _to_records(result: ScanResult, folder_id: int) -> list[UpsertMediaFile]:
    # Albums take artist/year from their first song.
    first_song: dict[Path, SongMetadata] = {}
    for song in result.songs:
        first_song.setdefault(song.path.parent, song)

    records: list[UpsertMediaFile] = []
    for d in result.directories:
        song = first_song.get(d.path) if d.is_album else None
        records.append(
            UpsertMediaFile(
                path=str(d.path),
                media_type=MediaType.ALBUM if d.is_album else MediaType.DIRECTORY,
                title=d.path.name,
                parent_path=str(d.path.parent),
                folder_id=folder_id,
                artist=song.artist if song else None,
                year=song.year if song else None,
            )
        )

    for song in result.songs:
        try:
            stat = song.path.stat()
        except OSError as e:
            logger.debug("Skipping vanished file %s: %s", song.path, e)
            continue
        records.append(
            UpsertMediaFile(
                path=str(song.path),
                media_type=MediaType.MUSIC,
                title=song.title,
                parent_path=str(song.path.parent),
                folder_id=folder_id,
                artist=song.artist,
                album=song.album,
                track_no=song.track_number,
                disc_no=song.disc_number,
                year=song.year,
                duration_ms=song.duration_ms,
                file_size=stat.st_size,
                mtime_ns=stat.st_mtime_ns,
            )
        )
    return records
