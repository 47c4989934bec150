"""
Tests for sonority.core.selector.

These tests verify:
- Root identifiers, prefixed keys and numeric directory ids
- Rejection of malformed identifiers
- Identifier builders round-trip through parse_selector()
"""

from __future__ import annotations

import pytest

from sonority.core import InvalidIdentifierError, UnknownAlbumListTypeError
from sonority.core.selector import (
    AlbumListSelector,
    AlbumListType,
    DirectorySelector,
    MusicFolderSelector,
    PlaylistSelector,
    RootKind,
    RootSelector,
    SearchCategory,
    album_list_identifier,
    music_folder_identifier,
    parse_selector,
    playlist_identifier,
)


class TestRootIdentifiers:
    """Fixed root names."""

    @pytest.mark.parametrize("kind", list(RootKind))
    def test_each_root_parses(self, kind: RootKind) -> None:
        assert parse_selector(kind.value) == RootSelector(kind)

    def test_personal_roots_require_identity(self) -> None:
        personal = {k for k in RootKind if k.requires_identity}
        assert personal == {
            RootKind.PLAYLISTS,
            RootKind.STARRED_ARTISTS,
            RootKind.STARRED_ALBUMS,
            RootKind.STARRED_SONGS,
        }

    def test_root_names_are_case_sensitive(self) -> None:
        with pytest.raises(InvalidIdentifierError):
            parse_selector("Root")


class TestPrefixedIdentifiers:
    """playlist:, albumlist: and musicfolder: keys."""

    def test_playlist(self) -> None:
        assert parse_selector("playlist:42") == PlaylistSelector(42)

    def test_playlist_non_numeric(self) -> None:
        with pytest.raises(InvalidIdentifierError):
            parse_selector("playlist:abc")

    def test_playlist_empty_key(self) -> None:
        with pytest.raises(InvalidIdentifierError):
            parse_selector("playlist:")

    @pytest.mark.parametrize("list_type", list(AlbumListType))
    def test_album_lists(self, list_type: AlbumListType) -> None:
        assert parse_selector(f"albumlist:{list_type.value}") == AlbumListSelector(list_type)

    def test_unknown_album_list_type(self) -> None:
        with pytest.raises(UnknownAlbumListTypeError):
            parse_selector("albumlist:bogus")

    def test_music_folder(self) -> None:
        assert parse_selector("musicfolder:3") == MusicFolderSelector(3)

    def test_music_folder_negative(self) -> None:
        with pytest.raises(InvalidIdentifierError):
            parse_selector("musicfolder:-3")


class TestNumericIdentifiers:
    """Bare numeric directory ids."""

    def test_directory(self) -> None:
        assert parse_selector("1234") == DirectorySelector(1234)

    def test_leading_zeros(self) -> None:
        assert parse_selector("007") == DirectorySelector(7)

    @pytest.mark.parametrize("raw", ["", "abc", "12a", "-1", "+1", " 1", "1_000", "١٢"])
    def test_invalid(self, raw: str) -> None:
        with pytest.raises(InvalidIdentifierError):
            parse_selector(raw)

    @pytest.mark.parametrize(
        "raw",
        [
            "9" * 5000,
            "playlist:" + "9" * 5000,
            "musicfolder:" + "9" * 5000,
            "99999999999999999999",
            str(2**63),
            "playlist:" + str(2**63),
        ],
    )
    def test_out_of_range(self, raw: str) -> None:
        with pytest.raises(InvalidIdentifierError):
            parse_selector(raw)

    def test_largest_id(self) -> None:
        assert parse_selector(str(2**63 - 1)) == DirectorySelector(2**63 - 1)
        assert parse_selector("0" * 30 + "7") == DirectorySelector(7)

    def test_invalid_identifier_fault_code(self) -> None:
        with pytest.raises(InvalidIdentifierError) as exc_info:
            parse_selector("nope")
        assert exc_info.value.fault_code == "Client.InvalidIdentifier"


class TestBuilders:
    """Identifier builders."""

    def test_playlist_identifier(self) -> None:
        assert playlist_identifier(9) == "playlist:9"
        assert parse_selector(playlist_identifier(9)) == PlaylistSelector(9)

    def test_album_list_identifier(self) -> None:
        ident = album_list_identifier(AlbumListType.FREQUENT)
        assert ident == "albumlist:frequent"

    def test_music_folder_identifier(self) -> None:
        assert music_folder_identifier(2) == "musicfolder:2"


class TestSearchCategory:
    """Search category ids."""

    def test_known(self) -> None:
        assert SearchCategory.from_id("search-songs") is SearchCategory.SONGS

    def test_unknown(self) -> None:
        with pytest.raises(InvalidIdentifierError):
            SearchCategory.from_id("search-genres")
