from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from mutagen import File as mutagen_file
from mutagen import MutagenError

logger = logging.getLogger(__name__)


DEFAULT_AUDIO_EXTENSIONS: frozenset[str] = frozenset(
    {
        ".mp3",
        ".flac",
        ".ogg",
        ".oga",
        ".opus",
        ".m4a",
        ".m4b",
        ".aac",
        ".wav",
        ".aiff",
        ".aif",
        ".wma",
    }
)


@dataclass(frozen=True, slots=True)
class ScanConfig:
    """Configuration for scanning one music folder."""

    root: Path
    extensions: frozenset[str] = DEFAULT_AUDIO_EXTENSIONS
    follow_symlinks: bool = False
    max_concurrency: int = 8


@dataclass(frozen=True, slots=True)
class SongMetadata:
    """
    Normalized metadata extracted from an audio file.

    `path` is the stable identity across scans; everything else is refreshed
    on every scan.
    """

    path: Path
    title: str
    artist: str | None = None
    album: str | None = None
    track_number: int | None = None
    disc_number: int | None = None
    year: int | None = None
    duration_ms: int | None = None


@dataclass(frozen=True, slots=True)
class ScannedDirectory:
    """
    A directory below the scan root.

    `is_album` is true when the directory directly contains audio files.
    """

    path: Path
    is_album: bool


@dataclass(frozen=True, slots=True)
class ScanIssue:
    path: Path
    message: str


@dataclass(frozen=True, slots=True)
class ScanResult:
    root: Path
    directories: list[ScannedDirectory]
    songs: list[SongMetadata]
    issues: list[ScanIssue]


def _clean_str(value: str | None) -> str | None:
    if value is None:
        return None
    s = value.strip()
    return s if s else None


def _first_text(value: Any) -> str | None:
    """
    Mutagen returns different shapes depending on container/tag type:
    - ID3 frames (objects with `.text`)
    - lists of strings
    - plain strings
    We normalize to a single string (first item if multiple).
    """
    if value is None:
        return None

    if isinstance(value, (list, tuple)):
        if not value:
            return None
        return _first_text(value[0])

    text = getattr(value, "text", None)
    if text is not None:
        return _first_text(text)

    # MP4 "trkn"/"disk" are (number, total) tuples, handled above
    return _clean_str(str(value))


def _parse_int_maybe(value: Any) -> int | None:
    """
    Parse things like:
    - "3"
    - "3/12"
    - ["3/12"]
    - mutagen frame objects
    """
    s = _first_text(value)
    if not s:
        return None

    if "/" in s:
        s = s.split("/", 1)[0].strip()

    try:
        return int(s)
    except ValueError:
        return None


def _parse_year_maybe(value: Any) -> int | None:
    """Accept "1999" or "1999-01-01" or "1999/.." formats."""
    s = _first_text(value)
    if not s:
        return None

    for i in range(0, max(0, len(s) - 3)):
        chunk = s[i : i + 4]
        if chunk.isdigit():
            year = int(chunk)
            if 1000 <= year <= 3000:
                return year
    return None


def _tags_get(tags: Any, keys: Iterable[str]) -> Any:
    if not tags:
        return None
    for k in keys:
        if k in tags:
            return tags[k]
    return None


def _extract_metadata(path: Path) -> SongMetadata:
    """
    Extract metadata using mutagen.

    Synchronous; the scanner runs it in a thread.
    """
    audio = mutagen_file(path)
    if audio is None:
        raise ValueError("unsupported or unreadable audio file")

    tags = audio.tags

    duration_ms: int | None = None
    info = getattr(audio, "info", None)
    length = getattr(info, "length", None)
    if isinstance(length, (int, float)) and length > 0:
        duration_ms = int(length * 1000)

    # Keys: ID3=TIT2, Vorbis=title, MP4=©nam
    title = _first_text(_tags_get(tags, ("TIT2", "title", "TITLE", "©nam"))) or path.stem
    # Keys: ID3=TPE1, Vorbis=artist, MP4=©ART
    artist = _first_text(_tags_get(tags, ("TPE1", "artist", "ARTIST", "©ART")))
    # Keys: ID3=TALB, Vorbis=album, MP4=©alb
    album = _first_text(_tags_get(tags, ("TALB", "album", "ALBUM", "©alb")))

    return SongMetadata(
        path=path,
        title=title,
        artist=artist,
        album=album,
        track_number=_parse_int_maybe(
            _tags_get(tags, ("TRCK", "tracknumber", "TRACKNUMBER", "trkn"))
        ),
        disc_number=_parse_int_maybe(_tags_get(tags, ("TPOS", "discnumber", "DISCNUMBER", "disk"))),
        year=_parse_year_maybe(_tags_get(tags, ("TDRC", "TYER", "date", "DATE", "YEAR", "©day"))),
        duration_ms=duration_ms,
    )


def _walk(config: ScanConfig) -> tuple[list[ScannedDirectory], list[Path]]:
    """
    Collect audio files and the directories that lead to them.

    Directories without any audio below them are left out of the catalog.
    """
    root = config.root
    audio_files: list[Path] = []
    album_dirs: set[Path] = set()
    container_dirs: set[Path] = set()

    for dirpath, dirnames, filenames in os.walk(root, followlinks=config.follow_symlinks):
        dirnames.sort()
        current = Path(dirpath)
        has_audio = False
        for name in sorted(filenames):
            p = current / name
            if p.suffix.lower() not in config.extensions:
                continue
            if not config.follow_symlinks and p.is_symlink():
                continue
            audio_files.append(p)
            has_audio = True

        if has_audio and current != root:
            album_dirs.add(current)
            # Every ancestor up to the root is browsable.
            for parent in current.parents:
                if parent == root or root not in parent.parents:
                    break
                container_dirs.add(parent)

    directories = [
        ScannedDirectory(path=d, is_album=d in album_dirs)
        for d in sorted(album_dirs | container_dirs, key=lambda p: str(p).lower())
    ]
    return directories, audio_files


async def scan_music_folder(config: ScanConfig) -> ScanResult:
    """
    Scan a folder for audio files and extract metadata.

    This returns a pure in-memory result; persisting it is up to
    `MusicLibrary.scan()`.

    Concurrency:
    - filesystem walk: runs in a thread
    - metadata extraction: bounded concurrency using threads via asyncio.to_thread

    Files whose tags cannot be read are still returned (titled after the file
    name) and reported as issues.
    """
    root = config.root
    if not root.exists():
        raise FileNotFoundError(root)
    if not root.is_dir():
        raise NotADirectoryError(root)

    directories, paths = await asyncio.to_thread(_walk, config)

    semaphore = asyncio.Semaphore(max(1, config.max_concurrency))
    songs: list[SongMetadata] = []
    issues: list[ScanIssue] = []

    async def _process(path: Path) -> None:
        async with semaphore:
            try:
                meta = await asyncio.to_thread(_extract_metadata, path)
            except (MutagenError, OSError, ValueError) as e:
                msg = f"{type(e).__name__}: {e}"
                issues.append(ScanIssue(path=path, message=msg))
                logger.debug("Scan issue for %s: %s", path, msg)
                meta = SongMetadata(path=path, title=path.stem)
            songs.append(meta)

    if paths:
        await asyncio.gather(*(_process(p) for p in paths))

    # Deterministic ordering is useful for tests.
    songs.sort(key=lambda s: str(s.path).lower())

    return ScanResult(root=root, directories=directories, songs=songs, issues=issues)
