"""Initial load of recent history from existing log files.

The loader reads only a trailing window of each file, so startup cost does
not depend on how much history has accumulated. Files are interleaved by
wall-clock activity, so the merged result is re-sorted by timestamp.
"""

from __future__ import annotations

import logging
import stat
from dataclasses import dataclass, field
from pathlib import Path

import aiofiles.os

from .diagnostics import DiagnosticsSink, ParseErrorThrottle
from .exceptions import DirectoryNotFoundError
from .file_reader import read_trailing_lines
from .models import Activity, FileTailState, ParseFailure
from .parser import parse_line

LOG_SUFFIX = ".log"
DEFAULT_TRAILING_LINES = 20


@dataclass
class LogFileInfo:
    path: str
    mtime: float
    size: int


@dataclass
class ColdStartResult:
    """Outcome of a cold start.

    Attributes:
        activities: Most recent activities, timestamp ascending, at most
            ``capacity`` entries.
        states: Tail state per file that was read, keyed by path.
    """

    activities: list[Activity] = field(default_factory=list)
    states: dict[str, FileTailState] = field(default_factory=dict)


def is_log_file_name(name: str) -> bool:
    return name.endswith(LOG_SUFFIX)


async def list_log_files(directory: str | Path) -> list[LogFileInfo]:
    """List regular ``*.log`` files directly inside ``directory``.

    Returns:
        Files sorted by modification time, most recent first.

    Raises:
        DirectoryNotFoundError: If ``directory`` is missing or not a directory.
    """
    directory = Path(directory)
    if not await aiofiles.os.path.isdir(str(directory)):
        raise DirectoryNotFoundError(directory)

    files: list[LogFileInfo] = []
    for name in await aiofiles.os.listdir(str(directory)):
        if not is_log_file_name(name):
            continue
        path = str(directory / name)
        try:
            st = await aiofiles.os.stat(path)
        except OSError:
            # Deleted between listing and stat
            continue
        if stat.S_ISREG(st.st_mode):
            files.append(LogFileInfo(path=path, mtime=st.st_mtime, size=st.st_size))

    files.sort(key=lambda info: info.mtime, reverse=True)
    return files


class ColdStartLoader:
    """Builds the initial activity buffer content from existing log files.

    Attributes:
        capacity: Number of activities kept after merging.
        trailing_lines: Lines read from the end of each file.
        throttle: Parse-error policy shared with the tail engine.
        diagnostics: Sink for I/O errors and progress messages.
    """

    def __init__(
        self,
        capacity: int,
        throttle: ParseErrorThrottle,
        diagnostics: DiagnosticsSink,
        trailing_lines: int = DEFAULT_TRAILING_LINES,
    ):
        self.capacity = capacity
        self.trailing_lines = trailing_lines
        self.throttle = throttle
        self.diagnostics = diagnostics

    async def load(self, directory: str | Path) -> ColdStartResult:
        """Read the trailing window of every log file in ``directory``.

        Args:
            directory: Directory holding the log files.

        Returns:
            ColdStartResult with merged activities and per-file offsets.

        Raises:
            DirectoryNotFoundError: If ``directory`` does not exist.
        """
        files = await list_log_files(directory)
        result = ColdStartResult()

        for info in files:
            if info.size == 0:
                result.states[info.path] = FileTailState(path=info.path, last_byte_offset=0)
                continue
            try:
                lines, offset = await read_trailing_lines(info.path, self.trailing_lines)
            except OSError as e:
                self.diagnostics.error(f"Failed to read log file {info.path}: {e}")
                continue

            result.activities.extend(self.parse_lines(lines, info.path))
            result.states[info.path] = FileTailState(path=info.path, last_byte_offset=offset)

        # sort() is stable, so equal timestamps keep file-read order
        result.activities.sort(key=lambda activity: activity.timestamp)
        if len(result.activities) > self.capacity:
            result.activities = result.activities[-self.capacity :]

        self.diagnostics.info(
            f"Cold start loaded {len(result.activities)} activities "
            f"from {len(result.states)} log files in {directory}"
        )
        return result

    def parse_lines(self, lines: list[str], source: str) -> list[Activity]:
        """Parse lines, routing failures through the throttle."""
        activities: list[Activity] = []
        for line in lines:
            parsed = parse_line(line)
            if isinstance(parsed, ParseFailure):
                self.throttle.record_failure(parsed, source)
                continue
            self.throttle.record_success()
            activities.append(parsed)
        return activities
