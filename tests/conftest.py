"""Shared fixtures for agent monitor tests."""

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from agent_monitor.models import Activity, ActivityStatus
from agent_monitor.sources import ChangeCallback, FileChange, FileChangeKind, FileChangeSource


class CapturingSink:
    """Diagnostics sink that records messages instead of logging them."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str]] = []

    def _record(self, level: str, msg: str, *args: Any) -> None:
        self.records.append((level, msg % args if args else msg))

    def debug(self, msg: str, *args: Any) -> None:
        self._record("debug", msg, *args)

    def info(self, msg: str, *args: Any) -> None:
        self._record("info", msg, *args)

    def warning(self, msg: str, *args: Any) -> None:
        self._record("warning", msg, *args)

    def error(self, msg: str, *args: Any) -> None:
        self._record("error", msg, *args)

    def messages(self, level: str) -> list[str]:
        return [msg for lvl, msg in self.records if lvl == level]


class FakeSource(FileChangeSource):
    """File-change source driven by the test instead of the filesystem."""

    def __init__(self, directory: Path, diagnostics: Any = None) -> None:
        super().__init__(directory, diagnostics)
        self.on_event: ChangeCallback | None = None
        self.started = False
        self.stopped = False

    async def start(self, on_event: ChangeCallback) -> None:
        self.on_event = on_event
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    def emit(self, kind: FileChangeKind, path: Path | str) -> None:
        assert self.on_event is not None, "source not started"
        self.on_event(FileChange(kind, str(path)))


def make_record_line(
    second: int,
    agent: str = "router",
    action: str = "route",
    duration_ms: float = 5,
    **extra: Any,
) -> str:
    """Build one JSONL record whose timestamp is 2024-01-01T00:00:<second>Z."""
    minutes, seconds = divmod(second, 60)
    hours, minutes = divmod(minutes, 60)
    record = {
        "timestamp": f"2024-01-01T{hours:02d}:{minutes:02d}:{seconds:02d}Z",
        "agent": agent,
        "action": action,
        "duration_ms": duration_ms,
        **extra,
    }
    return json.dumps(record)


@pytest.fixture
def record_line() -> Callable[..., str]:
    """Factory for JSONL record lines."""
    return make_record_line


@pytest.fixture
def write_records() -> Callable[..., None]:
    """Write (or append) records for the given seconds to a log file."""

    def _write(path: Path, seconds: list[int], agent: str = "router", append: bool = False) -> None:
        mode = "a" if append else "w"
        with path.open(mode, encoding="utf-8") as f:
            for second in seconds:
                f.write(make_record_line(second, agent=agent) + "\n")

    return _write


@pytest.fixture
def logs_dir(tmp_path: Path) -> Path:
    """Create an empty logs directory."""
    directory = tmp_path / "conversation_logs"
    directory.mkdir()
    return directory


@pytest.fixture
def sink() -> CapturingSink:
    """Provide a capturing diagnostics sink."""
    return CapturingSink()


@pytest.fixture
def sources() -> list[FakeSource]:
    """Collects the FakeSources created by ``fake_source_factory``."""
    return []


@pytest.fixture
def fake_source_factory(sources: list[FakeSource]) -> Callable[[Path, Any], FakeSource]:
    """Source factory for LogTailer that records each source it builds."""

    def _factory(directory: Path, diagnostics: Any) -> FakeSource:
        source = FakeSource(directory, diagnostics)
        sources.append(source)
        return source

    return _factory


@pytest.fixture
def sample_activity() -> Activity:
    """Create sample Activity for testing."""
    return Activity(
        timestamp="2024-01-01T00:00:00Z",
        agent="specialist-coder",
        action="write_file",
        status=ActivityStatus.SUCCESS,
        duration_ms=120,
        task="Implement the tail engine",
    )
