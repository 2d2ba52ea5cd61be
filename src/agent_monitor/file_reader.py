"""Byte-offset log reading.

Two read paths are provided: a trailing-window read that returns the last N
complete lines of a file without reading it whole, and an incremental read
that returns only lines completed since a recorded byte offset. Both report
the offset just past the last complete line so that a partially written
final line is picked up once its terminator arrives.
"""

from __future__ import annotations

import os
from pathlib import Path

import aiofiles
import aiofiles.os

DEFAULT_CHUNK_SIZE = 8192


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace").rstrip("\r")


def _non_blank(segments: list[bytes]) -> list[bytes]:
    return [s for s in segments if s.strip()]


async def file_size(path: str | Path) -> int:
    """Return the current size of a file in bytes.

    Raises:
        OSError: If the file cannot be statted.
    """
    stat_result = await aiofiles.os.stat(str(path))
    return stat_result.st_size


async def read_trailing_lines(
    path: str | Path,
    count: int,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> tuple[list[str], int]:
    """Read the last ``count`` complete, non-blank lines of a file.

    The file is read backwards in chunks until enough lines have been seen
    or the start of the file is reached.

    Args:
        path: File to read.
        count: Maximum number of lines to return.
        chunk_size: Bytes read per backward step.

    Returns:
        Tuple of (lines, end_offset) where lines are oldest first without
        terminators, and end_offset is the byte offset just past the last
        newline in the file (0 if the file holds no complete line).

    Raises:
        OSError: If the file cannot be opened or read.
    """
    async with aiofiles.open(str(path), "rb") as f:
        await f.seek(0, os.SEEK_END)
        pos = await f.tell()
        buf = b""
        end: int | None = None
        lines: list[bytes] = []

        while pos > 0:
            read_size = min(chunk_size, pos)
            pos -= read_size
            await f.seek(pos)
            buf = await f.read(read_size) + buf

            if end is None:
                newline = buf.rfind(b"\n")
                if newline == -1:
                    continue
                end = pos + newline + 1

            segments = buf[: end - pos].split(b"\n")[:-1]
            if pos > 0:
                # First segment may start mid-line
                segments = segments[1:]
            lines = _non_blank(segments)
            if len(lines) >= count:
                break

    if end is None:
        return [], 0

    tail = lines[-count:] if count > 0 else []
    return [_decode(line) for line in tail], end


async def read_new_lines(path: str | Path, offset: int) -> tuple[list[str], int]:
    """Read lines completed since ``offset``.

    Args:
        path: File to read.
        offset: Byte offset where the previous read stopped.

    Returns:
        Tuple of (new_lines, new_offset). A trailing partial line is not
        returned and new_offset stops before it; if no line was completed
        new_offset equals offset.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    async with aiofiles.open(str(path), "rb") as f:
        await f.seek(offset)
        data = await f.read()

    newline = data.rfind(b"\n")
    if newline == -1:
        return [], offset

    complete = data[: newline + 1]
    new_offset = offset + len(complete)
    lines = [_decode(s) for s in _non_blank(complete.split(b"\n")[:-1])]

    return lines, new_offset
