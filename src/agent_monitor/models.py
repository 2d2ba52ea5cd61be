"""Data models for the agent monitor.

This module defines the core data structures used throughout the monitor,
including activities derived from log lines, typed parse failures, and
per-file tail positions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

TASK_MAX_LENGTH = 60


class ActivityStatus(Enum):
    """Outcome of the agent action an activity describes.

    Attributes:
        SUCCESS: The action completed without an error message.
        FAILURE: The log record carried a non-empty error.
    """

    SUCCESS = "success"
    FAILURE = "failure"


class ParseFailureReason(Enum):
    """Why a log line could not be turned into an Activity.

    Attributes:
        MALFORMED: The line is not a JSON object.
        SCHEMA: The object lacks a required field or has one of the wrong type.
    """

    MALFORMED = "malformed"
    SCHEMA = "schema"


@dataclass(frozen=True)
class Activity:
    """Normalized record of one agent action, derived from one log line.

    Attributes:
        timestamp: ISO 8601 timestamp as written by the agent.
        agent: Name of the agent that performed the action.
        action: Action name.
        status: SUCCESS unless the record carried a non-empty error.
        duration_ms: Duration of the action in milliseconds.
        task: First 60 characters of ``input.task``, when it is a string.
        error: Error message from the record, if any.
    """

    timestamp: str
    agent: str
    action: str
    status: ActivityStatus
    duration_ms: float
    task: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict, omitting absent optional fields."""
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "agent": self.agent,
            "action": self.action,
            "status": self.status.value,
            "duration_ms": self.duration_ms,
        }
        if self.task is not None:
            data["task"] = self.task
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class ParseFailure:
    """Typed result for a line that did not yield an Activity.

    Attributes:
        reason: Failure category.
        line: The offending line, verbatim.
        detail: Short human-readable explanation.
    """

    reason: ParseFailureReason
    line: str
    detail: str = ""


@dataclass
class FileTailState:
    """Tracks reading position for one watched log file.

    Attributes:
        path: Absolute path to the log file.
        last_byte_offset: Byte offset just past the last complete line consumed.
    """

    path: str
    last_byte_offset: int = 0
