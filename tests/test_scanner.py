"""
Tests for sonority.core.scanner.

These tests verify:
- Tag value normalization helpers
- Folder tree classification (albums vs. container directories)
- Unreadable files are kept and reported as issues
"""

from __future__ import annotations

from pathlib import Path

import pytest

from sonority.core.scanner import (
    ScanConfig,
    _first_text,
    _parse_int_maybe,
    _parse_year_maybe,
    scan_music_folder,
)


class _Frame:
    """Stand-in for an ID3 frame."""

    def __init__(self, text: list[str]) -> None:
        self.text = text


class TestTagHelpers:
    """Tag normalization."""

    def test_first_text_shapes(self) -> None:
        assert _first_text(None) is None
        assert _first_text([]) is None
        assert _first_text(["  Song  ", "Other"]) == "Song"
        assert _first_text(_Frame(["Framed"])) == "Framed"
        assert _first_text("   ") is None

    def test_parse_int(self) -> None:
        assert _parse_int_maybe("3") == 3
        assert _parse_int_maybe("3/12") == 3
        assert _parse_int_maybe(["07/10"]) == 7
        assert _parse_int_maybe("A1") is None
        assert _parse_int_maybe(None) is None

    def test_parse_year(self) -> None:
        assert _parse_year_maybe("1999") == 1999
        assert _parse_year_maybe("1999-01-01") == 1999
        assert _parse_year_maybe(["c. 2004"]) == 2004
        assert _parse_year_maybe("0042") is None
        assert _parse_year_maybe("99") is None


class TestScanMusicFolder:
    """Walking a folder tree."""

    async def test_missing_root(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            await scan_music_folder(ScanConfig(root=tmp_path / "nope"))

    async def test_root_is_file(self, tmp_path: Path) -> None:
        f = tmp_path / "file.mp3"
        f.write_bytes(b"")
        with pytest.raises(NotADirectoryError):
            await scan_music_folder(ScanConfig(root=f))

    async def test_empty_folder(self, tmp_path: Path) -> None:
        result = await scan_music_folder(ScanConfig(root=tmp_path))
        assert result.directories == []
        assert result.songs == []
        assert result.issues == []

    async def test_tree_classification(self, tmp_path: Path) -> None:
        album = tmp_path / "Artist" / "Album"
        album.mkdir(parents=True)
        (album / "02 - b.flac").write_bytes(b"junk")
        (album / "01 - a.flac").write_bytes(b"junk")
        (album / "notes.txt").write_text("liner notes")
        (tmp_path / "Artist" / "Artwork").mkdir()
        (tmp_path / "Artist" / "Artwork" / "front.jpg").write_bytes(b"jpeg")

        result = await scan_music_folder(ScanConfig(root=tmp_path))

        dirs = {d.path.relative_to(tmp_path).as_posix(): d.is_album for d in result.directories}
        assert dirs == {"Artist": False, "Artist/Album": True}
        assert [s.path.name for s in result.songs] == ["01 - a.flac", "02 - b.flac"]

    async def test_unreadable_files_keep_file_name_title(self, tmp_path: Path) -> None:
        album = tmp_path / "Album"
        album.mkdir()
        (album / "Track One.flac").write_bytes(b"definitely not flac")

        result = await scan_music_folder(ScanConfig(root=tmp_path))

        assert [s.title for s in result.songs] == ["Track One"]
        assert len(result.issues) == 1
        assert result.issues[0].path == album / "Track One.flac"

    async def test_files_at_root_have_no_directory(self, tmp_path: Path) -> None:
        (tmp_path / "loose.flac").write_bytes(b"junk")
        result = await scan_music_folder(ScanConfig(root=tmp_path))
        assert result.directories == []
        assert len(result.songs) == 1

    async def test_extension_filter(self, tmp_path: Path) -> None:
        (tmp_path / "a.flac").write_bytes(b"junk")
        (tmp_path / "b.mp3").write_bytes(b"junk")
        result = await scan_music_folder(
            ScanConfig(root=tmp_path, extensions=frozenset({".flac"}))
        )
        assert [s.path.name for s in result.songs] == ["a.flac"]

    async def test_extension_case_insensitive(self, tmp_path: Path) -> None:
        (tmp_path / "LOUD.FLAC").write_bytes(b"junk")
        result = await scan_music_folder(ScanConfig(root=tmp_path))
        assert len(result.songs) == 1
