"""
Streaming Routes for Sonority.

Provides the /stream endpoint controllers fetch songs from (the URI handed
out by getMediaURI). Files are sent as-is; there is no transcoding.

Range handling:
- "bytes=<first>-[<last>]" is served as 206 Partial Content.
- A first byte at or past the end of the file is 416.
- Any other Range syntax is ignored (full file, 200), or rejected with 416
  when `reject_unsupported_ranges` is set.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from sonority.config import StreamingSettings
from sonority.core import InvalidIdentifierError, NotFoundError, UnsupportedRangeError
from sonority.core.media import content_type_for
from sonority.streaming.range import ByteRange, parse_range

if TYPE_CHECKING:
    from sonority.core.library import MusicLibrary

logger = logging.getLogger(__name__)

router = APIRouter(tags=["streaming"])

SESSION_HEADER = "X-Session-Id"

# References set during route registration
_library: MusicLibrary | None = None
_settings: StreamingSettings = StreamingSettings()


def register_streaming_routes(
    app,
    library: MusicLibrary,
    settings: StreamingSettings | None = None,
) -> None:
    """
    Register streaming routes with the FastAPI app.

    Args:
        app: FastAPI application instance
        library: MusicLibrary used to resolve song ids and check sessions
        settings: Streaming settings (defaults if omitted)
    """
    global _library, _settings
    _library = library
    _settings = settings if settings is not None else StreamingSettings()
    app.include_router(router)


@router.get("/stream")
async def stream_song(
    request: Request,
    id: str | None = None,
) -> StreamingResponse:
    """
    Stream a song file.

    Args:
        request: The FastAPI request.
        id: Song id (query parameter).

    Raises:
        HTTPException: 400 bad id, 401 missing/unknown session, 404 unknown
            song or missing file, 416 unsatisfiable range, 503 not ready.
    """
    if _library is None:
        raise HTTPException(status_code=503, detail="Library not initialized")

    if id is None:
        raise HTTPException(status_code=400, detail="Missing id parameter")

    if _settings.require_session:
        session_id = request.headers.get(SESSION_HEADER)
        if not session_id or await _library.get_user(session_id) is None:
            raise HTTPException(status_code=401, detail="Missing or invalid session")

    try:
        song = await _library.get_song(id)
    except InvalidIdentifierError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    file_path = Path(song.path)
    if not file_path.is_file():
        raise HTTPException(status_code=404, detail=f"File not found: {file_path}")

    file_size = file_path.stat().st_size
    range_header = request.headers.get("range")

    try:
        byte_range, partial = _select_range(range_header, file_size)
    except UnsupportedRangeError as e:
        logger.debug("Range %r not satisfiable for %s: %s", range_header, file_path, e)
        raise HTTPException(
            status_code=416,
            detail=str(e),
            headers={"Content-Range": f"bytes */{file_size}"},
        ) from e

    if byte_range.offset == 0:
        await _library.record_play(song.id)

    content_type = content_type_for(file_path)
    body = _iter_file(file_path, byte_range, _settings.chunk_size)

    if partial:
        logger.debug("Streaming %s range %s of %d", file_path, byte_range, file_size)
        return StreamingResponse(
            body,
            status_code=206,
            media_type=content_type,
            headers={
                "Content-Range": f"bytes {byte_range}/{file_size}",
                "Content-Length": str(byte_range.length),
                "Accept-Ranges": "bytes",
            },
        )

    logger.debug("Streaming %s (%d bytes)", file_path, file_size)
    return StreamingResponse(
        body,
        media_type=content_type,
        headers={
            "Content-Length": str(file_size),
            "Accept-Ranges": "bytes",
        },
    )


def _select_range(range_header: str | None, file_size: int) -> tuple[ByteRange, bool]:
    """
    Pick the byte range to send and whether it is a partial response.

    Supported ranges are clamped to the file; the whole file otherwise.

    Raises:
        UnsupportedRangeError: unsatisfiable range, or unsupported syntax
            when rejection is configured.
    """
    whole = ByteRange(first_byte_pos=0, total_length=file_size)
    if range_header is None:
        return whole, False

    requested = parse_range(range_header, file_size)
    if requested is None:
        if _settings.reject_unsupported_ranges:
            raise UnsupportedRangeError(f"Unsupported Range header: {range_header!r}")
        return whole, False

    if requested.first_byte_pos >= file_size:
        raise UnsupportedRangeError(
            f"First byte {requested.first_byte_pos} is past the end ({file_size} bytes)"
        )

    last = file_size - 1
    if requested.last_byte_pos is not None:
        last = min(requested.last_byte_pos, last)
    clamped = ByteRange(
        first_byte_pos=requested.first_byte_pos,
        last_byte_pos=last,
        total_length=file_size,
    )
    return clamped, True


def _iter_file(file_path: Path, byte_range: ByteRange, chunk_size: int) -> Iterator[bytes]:
    """Yield file bytes from the range offset while the position stays inside the range."""
    pos = byte_range.offset
    try:
        with open(file_path, "rb") as f:
            f.seek(pos)
            while byte_range.contains(pos):
                chunk = f.read(chunk_size)
                if not chunk:
                    break
                if byte_range.last_byte_pos is not None:
                    chunk = chunk[: byte_range.last_byte_pos - pos + 1]
                yield chunk
                pos += len(chunk)
    except OSError as e:
        logger.exception("Streaming error for %s: %s", file_path, e)
