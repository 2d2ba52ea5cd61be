"""File-change notification sources.

A source watches one directory for ``*.log`` files being added, changed or
removed and reports each as a :class:`FileChange`. ``WatchdogFileSource``
relies on native notifications (inotify, FSEvents, ReadDirectoryChangesW);
``PollingFileSource`` stats the directory periodically and works anywhere.

The ``on_event`` callback may be invoked from a non-event-loop thread and
must therefore be thread-safe.
"""

from __future__ import annotations

import asyncio
import stat
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import aiofiles.os
from watchdog.events import FileSystemEvent, PatternMatchingEventHandler
from watchdog.observers import Observer

from .cold_start import LOG_SUFFIX, is_log_file_name
from .diagnostics import DiagnosticsSink, default_sink

DEFAULT_POLL_INTERVAL = 1.0


class FileChangeKind(Enum):
    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


@dataclass(frozen=True)
class FileChange:
    kind: FileChangeKind
    path: str


ChangeCallback = Callable[[FileChange], None]


class FileChangeSource(ABC):
    """Notifies about ``*.log`` files added to, changed in or removed from a directory."""

    def __init__(self, directory: str | Path, diagnostics: DiagnosticsSink | None = None):
        self.directory = Path(directory)
        self.diagnostics = diagnostics or default_sink()

    @abstractmethod
    async def start(self, on_event: ChangeCallback) -> None:
        """Begin delivering notifications to ``on_event``."""

    @abstractmethod
    async def stop(self) -> None:
        """Release the subscription. Safe to call more than once or before start."""


class _LogEventHandler(PatternMatchingEventHandler):
    def __init__(self, on_event: ChangeCallback):
        super().__init__(patterns=[f"*{LOG_SUFFIX}"], ignore_directories=True)
        self._on_event = on_event

    def on_created(self, event: FileSystemEvent) -> None:
        self._on_event(FileChange(FileChangeKind.ADDED, str(event.src_path)))

    def on_modified(self, event: FileSystemEvent) -> None:
        self._on_event(FileChange(FileChangeKind.CHANGED, str(event.src_path)))

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._on_event(FileChange(FileChangeKind.REMOVED, str(event.src_path)))

    def on_moved(self, event: FileSystemEvent) -> None:
        src = str(event.src_path)
        dest = str(event.dest_path)
        if is_log_file_name(Path(src).name):
            self._on_event(FileChange(FileChangeKind.REMOVED, src))
        if is_log_file_name(Path(dest).name):
            self._on_event(FileChange(FileChangeKind.ADDED, dest))


class WatchdogFileSource(FileChangeSource):
    """Native file-change notifications through a watchdog Observer."""

    def __init__(
        self,
        directory: str | Path,
        diagnostics: DiagnosticsSink | None = None,
        join_timeout: float = 5.0,
    ):
        super().__init__(directory, diagnostics)
        self.join_timeout = join_timeout
        self._observer: Observer | None = None

    async def start(self, on_event: ChangeCallback) -> None:
        if self._observer is not None:
            raise RuntimeError("WatchdogFileSource is already running")

        observer = Observer()
        observer.schedule(_LogEventHandler(on_event), str(self.directory), recursive=False)
        try:
            observer.start()
        except OSError as e:
            self.diagnostics.error(f"Failed to watch {self.directory}: {e}")
            raise
        self._observer = observer
        self.diagnostics.info(f"Watching {self.directory} for *{LOG_SUFFIX} changes")

    async def stop(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        await asyncio.to_thread(observer.join, self.join_timeout)
        if observer.is_alive():
            self.diagnostics.warning(
                f"File watcher for {self.directory} did not stop within {self.join_timeout}s"
            )
        self.diagnostics.info(f"Stopped watching {self.directory}")


class PollingFileSource(FileChangeSource):
    """Detects changes by comparing (size, mtime) snapshots every ``interval`` seconds.

    Files already present at start are recorded without notification.
    """

    def __init__(
        self,
        directory: str | Path,
        diagnostics: DiagnosticsSink | None = None,
        interval: float = DEFAULT_POLL_INTERVAL,
    ):
        super().__init__(directory, diagnostics)
        self.interval = interval
        self._task: asyncio.Task | None = None
        self._seen: dict[str, tuple[int, int]] = {}

    async def start(self, on_event: ChangeCallback) -> None:
        if self._task is not None:
            raise RuntimeError("PollingFileSource is already running")
        self._seen = await self._scan()
        self._task = asyncio.create_task(self._poll_loop(on_event))
        self.diagnostics.info(f"Polling {self.directory} every {self.interval}s")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.diagnostics.info(f"Stopped polling {self.directory}")

    async def poll_once(self, on_event: ChangeCallback) -> None:
        """Scan the directory once and report differences from the previous scan."""
        try:
            current = await self._scan()
        except OSError as e:
            self.diagnostics.error(f"Failed to scan {self.directory}: {e}")
            return

        for path, signature in current.items():
            previous = self._seen.get(path)
            if previous is None:
                on_event(FileChange(FileChangeKind.ADDED, path))
            elif previous != signature:
                on_event(FileChange(FileChangeKind.CHANGED, path))
        for path in self._seen.keys() - current.keys():
            on_event(FileChange(FileChangeKind.REMOVED, path))
        self._seen = current

    async def _poll_loop(self, on_event: ChangeCallback) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.poll_once(on_event)

    async def _scan(self) -> dict[str, tuple[int, int]]:
        snapshot: dict[str, tuple[int, int]] = {}
        for name in await aiofiles.os.listdir(str(self.directory)):
            if not is_log_file_name(name):
                continue
            path = str(self.directory / name)
            try:
                st = await aiofiles.os.stat(path)
            except FileNotFoundError:
                continue
            if stat.S_ISREG(st.st_mode):
                snapshot[path] = (st.st_size, st.st_mtime_ns)
        return snapshot


def create_source(
    kind: str,
    directory: str | Path,
    diagnostics: DiagnosticsSink | None = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> FileChangeSource:
    """Build a source by name ("watchdog" or "polling")."""
    if kind == "watchdog":
        return WatchdogFileSource(directory, diagnostics)
    if kind == "polling":
        return PollingFileSource(directory, diagnostics, interval=poll_interval)
    raise ValueError(f"Unknown file change source: {kind!r} (expected 'watchdog' or 'polling')")
