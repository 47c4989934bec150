"""
Catalog resolution: identifier + window -> page of media entities.

`CatalogResolver` parses the identifier into a selector and dispatches it to
exactly one operation of a `CatalogSource`. The source does the actual lookups
(see `sonority.core.library.MusicLibrary`); the resolver only routes and
paginates.

Album lists are the one exception to "resolve, then paginate": the source
pages those itself (it may filter by user), so the resolver passes the
`PageResult` through unchanged.
"""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

from sonority.core import UnauthorizedError
from sonority.core.media import MediaEntity
from sonority.core.paging import PageResult, Window, window
from sonority.core.selector import (
    AlbumListSelector,
    AlbumListType,
    CatalogSelector,
    DirectorySelector,
    MusicFolderSelector,
    PlaylistSelector,
    RootKind,
    RootSelector,
    SearchCategory,
    parse_selector,
)

logger = logging.getLogger(__name__)


class CatalogSource(Protocol):
    """Catalog lookups the resolver dispatches to."""

    async def root(self) -> Sequence[MediaEntity]: ...

    async def library(self) -> Sequence[MediaEntity]: ...

    async def playlists(self, username: str) -> Sequence[MediaEntity]: ...

    async def album_lists(self) -> Sequence[MediaEntity]: ...

    async def starred(self) -> Sequence[MediaEntity]: ...

    async def starred_artists(self, username: str) -> Sequence[MediaEntity]: ...

    async def starred_albums(self, username: str) -> Sequence[MediaEntity]: ...

    async def starred_songs(self, username: str) -> Sequence[MediaEntity]: ...

    async def search_categories(self) -> Sequence[MediaEntity]: ...

    async def playlist(self, playlist_id: int) -> Sequence[MediaEntity]: ...

    async def album_list_page(
        self,
        list_type: AlbumListType,
        index: int,
        count: int,
        username: str,
    ) -> PageResult[MediaEntity]: ...

    async def music_folder(self, folder_id: int) -> Sequence[MediaEntity]: ...

    async def directory(self, directory_id: int) -> Sequence[MediaEntity]: ...

    async def search(
        self,
        category: SearchCategory,
        term: str,
        index: int,
        count: int,
    ) -> PageResult[MediaEntity]: ...


Resolved = Sequence[MediaEntity] | PageResult[MediaEntity]


class CatalogResolver:
    """Routes catalog identifiers to a `CatalogSource`. Holds no per-request state."""

    def __init__(self, source: CatalogSource) -> None:
        self._source = source

    async def resolve(
        self,
        identifier: str,
        window: Window,
        username: str | None = None,
    ) -> Resolved:
        """
        Resolve an identifier to its children.

        Returns either the full ordered child sequence or, for album lists,
        an already-windowed `PageResult`.

        Raises:
            InvalidIdentifierError: unparseable identifier.
            UnknownAlbumListTypeError: unknown album list type.
            UnauthorizedError: personalized selector without a username.
        """
        selector = parse_selector(identifier)
        return await self._dispatch(selector, window, username)

    async def get_metadata(
        self,
        identifier: str,
        window: Window,
        username: str | None = None,
    ) -> PageResult[MediaEntity]:
        """Resolve an identifier and apply the window unless the source already did."""
        logger.debug(
            "getMetadata: id=%s index=%d count=%d", identifier, window.index, window.count
        )

        resolved = await self.resolve(identifier, window, username)
        if isinstance(resolved, PageResult):
            page = resolved
        else:
            page = _paginate(resolved, window)

        logger.debug(
            "result: id=%s index=%d count=%d total=%d",
            identifier,
            page.offset,
            page.returned_count,
            page.total,
        )
        return page

    async def search(
        self,
        category_id: str,
        term: str,
        window: Window,
    ) -> PageResult[MediaEntity]:
        """Search one category; the source pages the result itself."""
        category = SearchCategory.from_id(category_id)
        return await self._source.search(category, term, window.index, window.count)

    async def _dispatch(
        self,
        selector: CatalogSelector,
        window: Window,
        username: str | None,
    ) -> Resolved:
        source = self._source

        match selector:
            case RootSelector(kind=kind):
                if kind.requires_identity:
                    username = _require_identity(username, kind.value)
                return await self._dispatch_root(kind, username)
            case PlaylistSelector(playlist_id=playlist_id):
                return await source.playlist(playlist_id)
            case AlbumListSelector(list_type=list_type):
                user = _require_identity(username, f"albumlist:{list_type.value}")
                return await source.album_list_page(list_type, window.index, window.count, user)
            case MusicFolderSelector(folder_id=folder_id):
                return await source.music_folder(folder_id)
            case DirectorySelector(directory_id=directory_id):
                return await source.directory(directory_id)

        raise AssertionError(f"Unhandled selector: {selector!r}")

    async def _dispatch_root(self, kind: RootKind, username: str | None) -> Sequence[MediaEntity]:
        source = self._source

        if kind is RootKind.ROOT:
            return await source.root()
        if kind is RootKind.LIBRARY:
            return await source.library()
        if kind is RootKind.ALBUM_LISTS:
            return await source.album_lists()
        if kind is RootKind.STARRED:
            return await source.starred()
        if kind is RootKind.SEARCH:
            return await source.search_categories()

        # Personalized roots; the caller has already checked the username.
        assert username is not None
        if kind is RootKind.PLAYLISTS:
            return await source.playlists(username)
        if kind is RootKind.STARRED_ARTISTS:
            return await source.starred_artists(username)
        if kind is RootKind.STARRED_ALBUMS:
            return await source.starred_albums(username)
        if kind is RootKind.STARRED_SONGS:
            return await source.starred_songs(username)

        raise AssertionError(f"Unhandled root: {kind!r}")


def _paginate(items: Sequence[MediaEntity], requested: Window) -> PageResult[MediaEntity]:
    return window(items, requested.index, requested.count)


def _require_identity(username: str | None, what: str) -> str:
    if username is None:
        raise UnauthorizedError(f"Browsing {what!r} requires a session")
    return username
