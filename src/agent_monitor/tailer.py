"""Incremental log tailing engine.

``LogTailer`` bootstraps the activity buffer from existing log files, then
follows them through a file-change source, reading only the bytes appended
since the last read and forwarding each new activity to a callback.

Example:
    >>> tailer = LogTailer("/path/to/conversation_logs", capacity=50)
    >>> async with tailer:
    ...     await tailer.start(print)
    ...     recent = tailer.get_activities()
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from pathlib import Path

from .buffer import DEFAULT_CAPACITY, ActivityBuffer
from .cold_start import DEFAULT_TRAILING_LINES, ColdStartLoader, is_log_file_name
from .config import DEFAULT_LOGS_DIR, MonitorConfig
from .diagnostics import DEFAULT_ERROR_THRESHOLD, DiagnosticsSink, ParseErrorThrottle, default_sink
from .file_reader import file_size, read_new_lines, read_trailing_lines
from .models import Activity, ParseFailure
from .parser import parse_line
from .position_tracker import PositionTracker
from .sources import FileChange, FileChangeKind, FileChangeSource, create_source

ActivityCallback = Callable[[Activity], None]
SourceFactory = Callable[[Path, DiagnosticsSink], FileChangeSource]


def _default_source_factory(directory: Path, diagnostics: DiagnosticsSink) -> FileChangeSource:
    return create_source("watchdog", directory, diagnostics)


class LogTailer:
    """Follows the ``*.log`` files of one directory and aggregates activities.

    All reads run on the event loop. Notifications from the file-change
    source are queued and handled one at a time by a consumer task; reads
    of the same file are additionally serialized by a per-file lock.

    Attributes:
        logs_dir: Resolved directory being monitored.
        buffer: Bounded buffer of recent activities.
        positions: Byte offsets reached in each tracked file.
        throttle: Parse-error suppression policy.
        diagnostics: Sink for warnings and errors.
    """

    def __init__(
        self,
        logs_dir: str | Path = DEFAULT_LOGS_DIR,
        capacity: int = DEFAULT_CAPACITY,
        diagnostics: DiagnosticsSink | None = None,
        source_factory: SourceFactory | None = None,
        trailing_lines: int = DEFAULT_TRAILING_LINES,
        error_threshold: int = DEFAULT_ERROR_THRESHOLD,
    ):
        """Initialize the tailer.

        Args:
            logs_dir: Directory holding the log files.
            capacity: Maximum number of activities retained.
            diagnostics: Sink for diagnostics (defaults to the module logger).
            source_factory: Builds the file-change source for ``logs_dir``
                (defaults to a watchdog source).
            trailing_lines: Lines read per file on cold start and truncation.
            error_threshold: Consecutive parse failures reported before
                suppression.
        """
        self.logs_dir = Path(logs_dir).expanduser().resolve()
        self.diagnostics = diagnostics or default_sink()
        self.buffer = ActivityBuffer(capacity)
        self.positions = PositionTracker()
        self.throttle = ParseErrorThrottle(self.diagnostics, error_threshold)
        self.trailing_lines = trailing_lines
        self._loader = ColdStartLoader(capacity, self.throttle, self.diagnostics, trailing_lines)
        self._source_factory = source_factory or _default_source_factory

        self._on_activity: ActivityCallback | None = None
        self._source: FileChangeSource | None = None
        self._queue: asyncio.Queue[FileChange] | None = None
        self._consumer: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._running = False

    @classmethod
    def from_config(cls, config: MonitorConfig, diagnostics: DiagnosticsSink | None = None) -> LogTailer:
        """Build a tailer from a MonitorConfig."""

        def factory(directory: Path, sink: DiagnosticsSink) -> FileChangeSource:
            return create_source(config.source, directory, sink, config.poll_interval_seconds)

        return cls(
            logs_dir=config.logs_path,
            capacity=config.capacity,
            diagnostics=diagnostics,
            source_factory=factory,
            trailing_lines=config.trailing_lines,
            error_threshold=config.error_threshold,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, on_activity: ActivityCallback) -> None:
        """Load recent history, then start following the log files.

        Args:
            on_activity: Called once per newly observed activity.

        Raises:
            DirectoryNotFoundError: If the logs directory does not exist.
            RuntimeError: If the tailer is already running.
        """
        if self._running:
            raise RuntimeError("LogTailer is already running")

        result = await self._loader.load(self.logs_dir)

        # A restarted tailer rebuilds its state from the cold start alone
        self.buffer.clear()
        self.positions.clear_all_positions()
        self.throttle.reset()
        self._on_activity = on_activity
        self.buffer.extend(result.activities)
        for path, state in result.states.items():
            self.positions.update_position(path, state.last_byte_offset)

        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._consumer = asyncio.create_task(self._consume())

        source = self._source_factory(self.logs_dir, self.diagnostics)
        self._source = source
        try:
            await source.start(self._enqueue)
        except BaseException:
            await self.stop()
            self.buffer.clear()
            self.positions.clear_all_positions()
            raise

        self._running = True
        self.diagnostics.info(
            f"LogTailer started on {self.logs_dir} "
            f"({len(self.buffer)} activities, {len(self.positions)} files)"
        )

    async def stop(self) -> None:
        """Release the file-change subscription and stop processing.

        Safe to call when start() never ran or failed part way.
        """
        source, self._source = self._source, None
        consumer, self._consumer = self._consumer, None
        was_running, self._running = self._running, False

        try:
            if source is not None:
                await source.stop()
        finally:
            if consumer is not None:
                consumer.cancel()
                try:
                    await consumer
                except asyncio.CancelledError:
                    pass
            self._queue = None
            self._loop = None

        if was_running:
            self.diagnostics.info("LogTailer stopped")

    def is_running(self) -> bool:
        return self._running and self._consumer is not None and not self._consumer.done()

    async def __aenter__(self) -> LogTailer:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Read interface
    # ------------------------------------------------------------------

    def get_activities(self) -> list[Activity]:
        """Return the buffered activities, oldest first, as an independent list."""
        return self.buffer.snapshot()

    def tracked_files(self) -> dict[str, int]:
        """Return the byte offset reached in each tracked file."""
        return {state.path: state.last_byte_offset for state in self.positions.get_all_positions()}

    async def wait_idle(self) -> None:
        """Wait until every queued notification has been processed."""
        if self._queue is None:
            return
        # Let call_soon_threadsafe callbacks land in the queue first
        await asyncio.sleep(0)
        await self._queue.join()

    # ------------------------------------------------------------------
    # Notification handling
    # ------------------------------------------------------------------

    def _enqueue(self, change: FileChange) -> None:
        loop, queue = self._loop, self._queue
        if loop is None or queue is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(queue.put_nowait, change)

    async def _consume(self) -> None:
        queue = self._queue
        if queue is None:
            raise RuntimeError("LogTailer consumer started without a notification queue")
        while True:
            change = await queue.get()
            try:
                if change.kind is FileChangeKind.REMOVED:
                    self.handle_removed(change.path)
                else:
                    await self.handle_change(change.path)
            except Exception as e:
                self.diagnostics.error(f"Error handling {change.kind.value} event for {change.path}: {e}")
            finally:
                queue.task_done()

    def _normalize(self, path: str | Path) -> str | None:
        candidate = Path(path)
        if not is_log_file_name(candidate.name):
            return None
        parent = Path(os.path.abspath(candidate.parent))
        if parent != self.logs_dir and parent.resolve() != self.logs_dir:
            return None
        return str(self.logs_dir / candidate.name)

    def handle_removed(self, path: str | Path) -> None:
        """Forget the tail position of a removed file."""
        key = self._normalize(path)
        if key is not None and self.positions.remove_position(key):
            self.diagnostics.info(f"Stopped tracking removed log file: {key}")

    async def handle_change(self, path: str | Path) -> None:
        """Process a change or creation notification for ``path``.

        New files are read from the start; truncated files get their trailing
        window re-read; otherwise only lines completed since the recorded
        offset are read. Each parsed activity is appended to the buffer and
        passed to the callback, in file order.
        """
        key = self._normalize(path)
        if key is None:
            self.diagnostics.debug(f"Ignoring change outside monitored logs: {path}")
            return

        async with self.positions.lock_for(key):
            await self._read_changes(key)

    async def _read_changes(self, path: str) -> None:
        try:
            size = await file_size(path)
        except FileNotFoundError:
            self.diagnostics.warning(f"Log file disappeared before it could be read: {path}")
            return
        except OSError as e:
            self.diagnostics.error(f"Failed to stat log file {path}: {e}")
            return

        state = self.positions.get_position(path)
        if state is None:
            self.diagnostics.info(f"Tracking new log file: {path}")
            state = self.positions.update_position(path, 0)

        offset = state.last_byte_offset
        if size == offset:
            return

        try:
            if size < offset:
                self.diagnostics.info(
                    f"Log file {path} was truncated (offset {offset} > size {size}); "
                    f"re-reading last {self.trailing_lines} lines"
                )
                lines, new_offset = await read_trailing_lines(path, self.trailing_lines)
            else:
                lines, new_offset = await read_new_lines(path, offset)
                if new_offset == offset:
                    self.diagnostics.debug(f"Partial line pending in {path} at offset {offset}")
        except OSError as e:
            self.diagnostics.error(f"Failed to read log file {path}: {e}")
            return

        self.diagnostics.debug(f"Read {len(lines)} lines from {path} (offset {offset} -> {new_offset})")
        self.positions.update_position(path, new_offset)
        self._deliver(lines, path)

    def _deliver(self, lines: list[str], source: str) -> None:
        for line in lines:
            parsed = parse_line(line)
            if isinstance(parsed, ParseFailure):
                self.throttle.record_failure(parsed, source)
                continue
            self.throttle.record_success()
            self.buffer.append(parsed)
            if self._on_activity is None:
                continue
            try:
                self._on_activity(parsed)
            except Exception as e:
                self.diagnostics.error(f"Activity callback failed for {parsed.agent}/{parsed.action}: {e}")
