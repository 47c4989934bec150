"""
Tests for sonority.core.library and sonority.core.library_db.

These tests verify:
- LibraryDb schema creation and CRUD operations
- MusicLibrary catalog lookups (folders, directories, playlists, album lists)
- Login, favorites, play statistics and search
- Scanning a folder tree into the catalog
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from sonority.core import InvalidIdentifierError, NotFoundError, UnauthorizedError
from sonority.core.db.models import MediaType, UpsertMediaFile
from sonority.core.library import MusicLibrary, MusicLibraryError, MusicLibraryNotReadyError
from sonority.core.library_db import LibraryDb
from sonority.core.media import MediaKind
from sonority.core.selector import AlbumListType, SearchCategory

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def db() -> LibraryDb:
    """Create an in-memory database for testing."""
    db = LibraryDb(":memory:")
    await db.open()
    await db.ensure_schema()
    yield db
    await db.close()


@pytest.fixture
async def library(db: LibraryDb) -> MusicLibrary:
    lib = MusicLibrary(db=db)
    await lib.initialize()
    return lib


async def _seed_tree(db: LibraryDb) -> dict[str, int]:
    """
    /music
      Artist A/Album X/01.mp3, 02.mp3
      Artist B/Album Y/01.flac
    """
    folder_id = await db.add_music_folder("/music", "Music")
    ids: dict[str, int] = {"folder": folder_id}

    def entry(path: str, media_type: MediaType, title: str, **kw) -> UpsertMediaFile:
        return UpsertMediaFile(
            path=path,
            media_type=media_type,
            title=title,
            parent_path=str(Path(path).parent),
            folder_id=folder_id,
            **kw,
        )

    ids["artist_a"] = await db.upsert_media_file(
        entry("/music/Artist A", MediaType.DIRECTORY, "Artist A")
    )
    ids["album_x"] = await db.upsert_media_file(
        entry("/music/Artist A/Album X", MediaType.ALBUM, "Album X", artist="Artist A", year=2001)
    )
    # Inserted out of track order on purpose.
    ids["blue"] = await db.upsert_media_file(
        entry(
            "/music/Artist A/Album X/02.mp3",
            MediaType.MUSIC,
            "Blue Song",
            artist="Artist A",
            album="Album X",
            track_no=2,
            duration_ms=200_000,
            file_size=1000,
        )
    )
    ids["intro"] = await db.upsert_media_file(
        entry(
            "/music/Artist A/Album X/01.mp3",
            MediaType.MUSIC,
            "Intro",
            artist="Artist A",
            album="Album X",
            track_no=1,
        )
    )
    ids["artist_b"] = await db.upsert_media_file(
        entry("/music/Artist B", MediaType.DIRECTORY, "Artist B")
    )
    ids["album_y"] = await db.upsert_media_file(
        entry("/music/Artist B/Album Y", MediaType.ALBUM, "Album Y", artist="Artist B")
    )
    ids["yellow"] = await db.upsert_media_file(
        entry(
            "/music/Artist B/Album Y/01.flac",
            MediaType.MUSIC,
            "Yellow",
            artist="Artist B",
            album="Album Y",
            track_no=1,
        )
    )
    await db.upsert_user("alice", "secret")
    await db.upsert_user("bob", "hunter2")
    return ids


# =============================================================================
# LibraryDb Tests
# =============================================================================


class TestLibraryDb:
    """Tests for the database layer."""

    async def test_open_close(self) -> None:
        """Test basic open/close lifecycle."""
        db = LibraryDb(":memory:")
        assert not db.is_open

        await db.open()
        assert db.is_open

        await db.close()
        assert not db.is_open

    async def test_require_open(self) -> None:
        db = LibraryDb(":memory:")
        with pytest.raises(RuntimeError):
            await db.list_music_folders()

    async def test_ensure_schema_idempotent(self, db: LibraryDb) -> None:
        await db.ensure_schema()
        assert await db.list_music_folders() == []

    async def test_upsert_is_keyed_by_path(self, db: LibraryDb) -> None:
        first = await db.upsert_media_file(
            UpsertMediaFile(path="/m/a.mp3", media_type=MediaType.MUSIC, title="Old")
        )
        second = await db.upsert_media_file(
            UpsertMediaFile(path="/m/a.mp3", media_type=MediaType.MUSIC, title="New")
        )
        assert first == second
        row = await db.get_media_file(first)
        assert row is not None
        assert row.title == "New"

        by_path = await db.get_media_file_by_path("/m/a.mp3")
        assert by_path == row
        assert await db.get_media_file_by_path("/m/missing.mp3") is None

    async def test_blank_title_falls_back_to_stem(self, db: LibraryDb) -> None:
        media_id = await db.upsert_media_file(
            UpsertMediaFile(path="/m/03 - Track.mp3", media_type=MediaType.MUSIC, title="  ")
        )
        row = await db.get_media_file(media_id)
        assert row is not None
        assert row.title == "03 - Track"

    async def test_children_ordering(self, db: LibraryDb) -> None:
        await _seed_tree(db)
        children = await db.list_children("/music/Artist A/Album X")
        assert [c.title for c in children] == ["Intro", "Blue Song"]

    async def test_set_music_folders_disables_others(self, db: LibraryDb) -> None:
        await db.set_music_folders(["/a", "/b"])
        await db.set_music_folders(["/b"])
        assert [f.path for f in await db.list_music_folders()] == ["/b"]

    async def test_set_music_folders_empty(self, db: LibraryDb) -> None:
        await db.set_music_folders(["/a"])
        await db.set_music_folders([])
        assert await db.list_music_folders() == []

    async def test_star_unstar(self, db: LibraryDb) -> None:
        ids = await _seed_tree(db)
        await db.star("alice", ids["album_x"])
        await db.star("alice", ids["album_x"])  # idempotent
        starred = await db.list_starred("alice", MediaType.ALBUM)
        assert [r.id for r in starred] == [ids["album_x"]]

        assert await db.unstar("alice", ids["album_x"]) is True
        assert await db.unstar("alice", ids["album_x"]) is False

    async def test_search_escapes_wildcards(self, db: LibraryDb) -> None:
        await _seed_tree(db)
        assert await db.count_search_media(MediaType.MUSIC, "%") == 0
        assert await db.count_search_media(MediaType.MUSIC, "_") == 0

    async def test_record_play_bumps_song_and_album(self, db: LibraryDb) -> None:
        ids = await _seed_tree(db)
        await db.record_play(ids["intro"])
        song = await db.get_media_file(ids["intro"])
        album = await db.get_media_file(ids["album_x"])
        assert song is not None and song.play_count == 1
        assert album is not None and album.play_count == 1
        assert album.last_played is not None

    async def test_unknown_album_list_sql(self, db: LibraryDb) -> None:
        with pytest.raises(ValueError):
            await db.count_album_list("bogus", username="alice")


# =============================================================================
# MusicLibrary Tests
# =============================================================================


class TestMusicLibraryLifecycle:
    """Initialization contract."""

    async def test_requires_open_db(self) -> None:
        lib = MusicLibrary(db=LibraryDb(":memory:"))
        with pytest.raises(MusicLibraryError):
            await lib.initialize()

    async def test_requires_initialize(self, db: LibraryDb) -> None:
        lib = MusicLibrary(db=db)
        assert not lib.initialized
        with pytest.raises(MusicLibraryNotReadyError):
            await lib.library()


class TestMenus:
    """Static menus."""

    async def test_root(self, library: MusicLibrary) -> None:
        ids = [e.id for e in await library.root()]
        assert ids == ["library", "playlists", "albumlists", "starred"]

    async def test_album_lists(self, library: MusicLibrary) -> None:
        entries = await library.album_lists()
        assert [e.id for e in entries] == [f"albumlist:{t.value}" for t in AlbumListType]
        assert all(e.kind is MediaKind.ALBUM_LIST for e in entries)

    async def test_starred_menu(self, library: MusicLibrary) -> None:
        ids = [e.id for e in await library.starred()]
        assert ids == ["starred-artists", "starred-albums", "starred-songs"]

    async def test_search_categories(self, library: MusicLibrary) -> None:
        ids = [e.id for e in await library.search_categories()]
        assert ids == ["search-artists", "search-albums", "search-songs"]


class TestFolderTree:
    """Folders and directories."""

    async def test_single_folder_lists_contents(self, db: LibraryDb, library: MusicLibrary) -> None:
        await _seed_tree(db)
        entries = await library.library()
        assert [e.title for e in entries] == ["Artist A", "Artist B"]
        assert all(e.kind is MediaKind.DIRECTORY for e in entries)

    async def test_multiple_folders_listed(self, db: LibraryDb, library: MusicLibrary) -> None:
        ids = await _seed_tree(db)
        other = await db.add_music_folder("/more", "More")
        entries = await library.library()
        assert [e.id for e in entries] == [f"musicfolder:{ids['folder']}", f"musicfolder:{other}"]
        assert all(e.kind is MediaKind.MUSIC_FOLDER for e in entries)

    async def test_music_folder(self, db: LibraryDb, library: MusicLibrary) -> None:
        ids = await _seed_tree(db)
        entries = await library.music_folder(ids["folder"])
        assert len(entries) == 2

    async def test_unknown_music_folder(self, library: MusicLibrary) -> None:
        with pytest.raises(NotFoundError):
            await library.music_folder(999)

    async def test_directory_lists_songs(self, db: LibraryDb, library: MusicLibrary) -> None:
        ids = await _seed_tree(db)
        songs = await library.directory(ids["album_x"])
        assert [s.title for s in songs] == ["Intro", "Blue Song"]
        assert songs[1].kind is MediaKind.SONG
        assert songs[1].id == str(ids["blue"])
        assert songs[1].content_type == "audio/mpeg"
        assert songs[1].duration_ms == 200_000

    async def test_directory_of_song_is_not_found(
        self, db: LibraryDb, library: MusicLibrary
    ) -> None:
        ids = await _seed_tree(db)
        with pytest.raises(NotFoundError):
            await library.directory(ids["intro"])


class TestUsers:
    """Login."""

    async def test_authenticate(self, db: LibraryDb, library: MusicLibrary) -> None:
        await _seed_tree(db)
        assert await library.authenticate("alice", "secret") == "alice"

    async def test_wrong_password(self, db: LibraryDb, library: MusicLibrary) -> None:
        await _seed_tree(db)
        with pytest.raises(UnauthorizedError):
            await library.authenticate("alice", "Secret")

    async def test_unknown_user(self, library: MusicLibrary) -> None:
        with pytest.raises(UnauthorizedError):
            await library.authenticate("mallory", "x")


class TestFavorites:
    """Starring and starred containers."""

    async def test_star_each_kind(self, db: LibraryDb, library: MusicLibrary) -> None:
        ids = await _seed_tree(db)
        await library.star("alice", str(ids["artist_a"]))
        await library.star("alice", str(ids["album_y"]))
        await library.star("alice", str(ids["intro"]))

        artists = await library.starred_artists("alice")
        assert [(a.title, a.kind) for a in artists] == [("Artist A", MediaKind.ARTIST)]
        albums = await library.starred_albums("alice")
        assert [a.title for a in albums] == ["Album Y"]
        songs = await library.starred_songs("alice")
        assert [s.title for s in songs] == ["Intro"]

        # Per user
        assert await library.starred_songs("bob") == ()

    async def test_unstar(self, db: LibraryDb, library: MusicLibrary) -> None:
        ids = await _seed_tree(db)
        await library.star("alice", str(ids["intro"]))
        assert await library.unstar("alice", str(ids["intro"])) is True
        assert await library.starred_songs("alice") == ()

    async def test_star_missing_item(self, library: MusicLibrary) -> None:
        with pytest.raises(NotFoundError):
            await library.star("alice", "4242")

    async def test_star_bad_id(self, library: MusicLibrary) -> None:
        with pytest.raises(InvalidIdentifierError):
            await library.star("alice", "playlist:1")


class TestAlbumLists:
    """Album lists paged in SQL."""

    async def test_alphabetical(self, db: LibraryDb, library: MusicLibrary) -> None:
        await _seed_tree(db)
        page = await library.album_list_page(AlbumListType.ALPHABETICAL, 0, 10, "alice")
        assert [a.title for a in page.items] == ["Album X", "Album Y"]
        assert page.total == 2

    async def test_window(self, db: LibraryDb, library: MusicLibrary) -> None:
        await _seed_tree(db)
        page = await library.album_list_page(AlbumListType.ALPHABETICAL, 1, 10, "alice")
        assert [a.title for a in page.items] == ["Album Y"]
        assert page.offset == 1
        assert page.total == 2

    async def test_index_past_sqlite_range(self, db: LibraryDb, library: MusicLibrary) -> None:
        await _seed_tree(db)
        page = await library.album_list_page(AlbumListType.NEWEST, 2**63, 10, "alice")
        assert page.items == ()
        assert page.offset == 2**63
        assert page.total == 2

    async def test_count_past_sqlite_range(self, db: LibraryDb, library: MusicLibrary) -> None:
        await _seed_tree(db)
        page = await library.album_list_page(AlbumListType.ALPHABETICAL, 0, 2**64, "alice")
        assert page.returned_count == 2

    async def test_starred_is_per_user(self, db: LibraryDb, library: MusicLibrary) -> None:
        ids = await _seed_tree(db)
        await library.star("alice", str(ids["album_y"]))
        alice = await library.album_list_page(AlbumListType.STARRED, 0, 10, "alice")
        bob = await library.album_list_page(AlbumListType.STARRED, 0, 10, "bob")
        assert [a.title for a in alice.items] == ["Album Y"]
        assert bob.total == 0

    async def test_frequent_and_recent(self, db: LibraryDb, library: MusicLibrary) -> None:
        ids = await _seed_tree(db)
        await library.record_play(ids["yellow"])

        frequent = await library.album_list_page(AlbumListType.FREQUENT, 0, 10, "alice")
        assert [a.title for a in frequent.items] == ["Album Y"]
        recent = await library.album_list_page(AlbumListType.RECENT, 0, 10, "alice")
        assert recent.total == 1

    async def test_highest(self, db: LibraryDb, library: MusicLibrary) -> None:
        ids = await _seed_tree(db)
        await db.set_rating("alice", ids["album_x"], 2)
        await db.set_rating("bob", ids["album_y"], 5)
        page = await library.album_list_page(AlbumListType.HIGHEST, 0, 10, "alice")
        assert [a.title for a in page.items] == ["Album Y", "Album X"]

    async def test_random_and_newest_cover_all_albums(
        self, db: LibraryDb, library: MusicLibrary
    ) -> None:
        await _seed_tree(db)
        for list_type in (AlbumListType.RANDOM, AlbumListType.NEWEST):
            page = await library.album_list_page(list_type, 0, 10, "alice")
            assert {a.title for a in page.items} == {"Album X", "Album Y"}


class TestPlaylists:
    """Per-user playlists."""

    async def test_playlists_visible_to_owner_and_public(
        self, db: LibraryDb, library: MusicLibrary
    ) -> None:
        ids = await _seed_tree(db)
        private = await db.create_playlist("Mine", "alice", media_file_ids=[ids["blue"]])
        public = await db.create_playlist("Shared", "bob", is_public=True)
        await db.create_playlist("Bob only", "bob")

        entries = await library.playlists("alice")
        assert [e.id for e in entries] == [f"playlist:{private}", f"playlist:{public}"]
        assert all(e.kind is MediaKind.PLAYLIST for e in entries)

    async def test_playlist_songs_in_order(self, db: LibraryDb, library: MusicLibrary) -> None:
        ids = await _seed_tree(db)
        pid = await db.create_playlist(
            "Mix", "alice", media_file_ids=[ids["yellow"], ids["intro"], ids["yellow"]]
        )
        songs = await library.playlist(pid)
        assert [s.title for s in songs] == ["Yellow", "Intro", "Yellow"]

    async def test_unknown_playlist(self, library: MusicLibrary) -> None:
        with pytest.raises(NotFoundError):
            await library.playlist(77)


class TestSearch:
    """Paged search per category."""

    async def test_songs_match_title_artist_album(
        self, db: LibraryDb, library: MusicLibrary
    ) -> None:
        await _seed_tree(db)
        page = await library.search(SearchCategory.SONGS, "blue", 0, 10)
        assert [s.title for s in page.items] == ["Blue Song"]

        by_album = await library.search(SearchCategory.SONGS, "album y", 0, 10)
        assert [s.title for s in by_album.items] == ["Yellow"]

    async def test_huge_window(self, db: LibraryDb, library: MusicLibrary) -> None:
        await _seed_tree(db)
        past_end = await library.search(SearchCategory.SONGS, "o", 2**64, 10)
        assert past_end.items == ()
        assert past_end.total == 3
        everything = await library.search(SearchCategory.SONGS, "o", 0, 2**64)
        assert everything.returned_count == 3

    async def test_huge_item_id(self, library: MusicLibrary) -> None:
        with pytest.raises(InvalidIdentifierError):
            await library.get_song("99999999999999999999")
        with pytest.raises(InvalidIdentifierError):
            await library.star("alice", "99999999999999999999")

    async def test_artists(self, db: LibraryDb, library: MusicLibrary) -> None:
        await _seed_tree(db)
        page = await library.search(SearchCategory.ARTISTS, "artist", 0, 1)
        assert page.total == 2
        assert page.returned_count == 1
        assert page.items[0].kind is MediaKind.ARTIST

    async def test_albums(self, db: LibraryDb, library: MusicLibrary) -> None:
        await _seed_tree(db)
        page = await library.search(SearchCategory.ALBUMS, "x", 0, 10)
        assert [a.title for a in page.items] == ["Album X"]

    async def test_blank_term(self, db: LibraryDb, library: MusicLibrary) -> None:
        await _seed_tree(db)
        page = await library.search(SearchCategory.SONGS, "   ", 0, 10)
        assert page.total == 0


class TestSongs:
    """Song lookup."""

    async def test_get_song(self, db: LibraryDb, library: MusicLibrary) -> None:
        ids = await _seed_tree(db)
        song = await library.get_song(str(ids["blue"]))
        assert song.path == "/music/Artist A/Album X/02.mp3"

    async def test_get_song_rejects_directories(self, db: LibraryDb, library: MusicLibrary) -> None:
        ids = await _seed_tree(db)
        with pytest.raises(NotFoundError):
            await library.get_song(str(ids["album_x"]))

    async def test_get_song_bad_id(self, library: MusicLibrary) -> None:
        with pytest.raises(InvalidIdentifierError):
            await library.get_song("abc")


class TestScan:
    """Scanning a real folder tree into the catalog."""

    async def test_scan_and_rescan(self, library: MusicLibrary) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            album = root / "Artist" / "Album"
            album.mkdir(parents=True)
            (album / "01 - First.flac").write_bytes(b"not really audio")
            (album / "02 - Second.flac").write_bytes(b"not really audio")
            (album / "cover.jpg").write_bytes(b"jpeg")
            (root / "Empty").mkdir()

            assert await library.sync_music_folders([root]) == 1
            summary = await library.scan()
            assert summary.folders == 1
            assert summary.directories == 2
            assert summary.songs == 2
            assert summary.issues == 2

            top = await library.library()
            assert [(e.title, e.kind) for e in top] == [("Artist", MediaKind.DIRECTORY)]
            albums = await library.directory(int(top[0].id))
            assert [(e.title, e.kind) for e in albums] == [("Album", MediaKind.ALBUM)]
            songs = await library.directory(int(albums[0].id))
            assert [s.title for s in songs] == ["01 - First", "02 - Second"]

            (album / "02 - Second.flac").unlink()
            summary = await library.scan()
            assert summary.removed == 1
            songs = await library.directory(int(albums[0].id))
            assert [s.title for s in songs] == ["01 - First"]

    async def test_missing_folder_is_reported(self, library: MusicLibrary) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            missing = Path(tmp) / "gone"
            await library.sync_music_folders([missing])
            summary = await library.scan()
            assert summary.songs == 0
            assert summary.issues == 1
