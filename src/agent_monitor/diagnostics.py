"""Diagnostics sink and parse-error suppression policy.

The tail engine reports through a :class:`DiagnosticsSink` handed to it at
construction. Any ``logging.Logger`` satisfies the protocol, so production
code passes a module logger and tests pass a capturing object.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from .models import ParseFailure

DEFAULT_ERROR_THRESHOLD = 10
LINE_PREVIEW_CHARS = 100


@runtime_checkable
class DiagnosticsSink(Protocol):
    """Destination for diagnostic messages (logger-compatible)."""

    def debug(self, msg: str, *args: Any) -> Any: ...

    def info(self, msg: str, *args: Any) -> Any: ...

    def warning(self, msg: str, *args: Any) -> Any: ...

    def error(self, msg: str, *args: Any) -> Any: ...


def default_sink() -> DiagnosticsSink:
    return logging.getLogger("agent_monitor.tailer")


class ParseErrorThrottle:
    """Caps warnings emitted for a streak of unparseable lines.

    The first ``threshold`` consecutive failures are reported individually.
    When the streak reaches the threshold, a single suppression notice
    follows; later failures are only counted. The next successful parse ends
    the streak.

    Attributes:
        sink: Where warnings go.
        threshold: Number of failures reported per streak.
        consecutive_failures: Length of the current failure streak.
        suppressed_count: Failures not reported, over the throttle's lifetime.
    """

    def __init__(self, sink: DiagnosticsSink, threshold: int = DEFAULT_ERROR_THRESHOLD):
        self.sink = sink
        self.threshold = threshold
        self.consecutive_failures = 0
        self.suppressed_count = 0

    def record_failure(self, failure: ParseFailure, source: str | None = None) -> None:
        """Count one failure and report it if the streak is still short.

        Args:
            failure: The parse failure.
            source: File the line came from, included in the message if given.
        """
        self.consecutive_failures += 1

        if self.consecutive_failures > self.threshold:
            self.suppressed_count += 1
            return

        where = f" in {source}" if source else ""
        preview = failure.line[:LINE_PREVIEW_CHARS]
        self.sink.warning(
            f"Skipping {failure.reason.value} log line{where}: {failure.detail} "
            f"(line: {preview!r})"
        )

        if self.consecutive_failures == self.threshold:
            self.sink.warning(
                f"{self.threshold} consecutive unparseable log lines; "
                "further warnings suppressed until a line parses"
            )

    def record_success(self) -> None:
        """End the current failure streak."""
        if self.consecutive_failures > self.threshold:
            self.sink.info(
                f"Log lines parsing again after {self.consecutive_failures} "
                "consecutive failures"
            )
        self.consecutive_failures = 0

    def reset(self) -> None:
        """Forget the current failure streak without reporting it."""
        self.consecutive_failures = 0
