"""Conversion of raw JSON log lines into Activity records.

``parse_line`` never raises: anything that is not a well-formed log record
comes back as a :class:`ParseFailure` describing what went wrong.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from .models import TASK_MAX_LENGTH, Activity, ActivityStatus, ParseFailure, ParseFailureReason

REQUIRED_STRING_FIELDS = ("timestamp", "agent", "action")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _extract_task(raw_input: Any) -> str | None:
    if not isinstance(raw_input, Mapping):
        return None
    task = raw_input.get("task")
    if not isinstance(task, str) or not task:
        return None
    return task[:TASK_MAX_LENGTH]


def _error_text(raw_error: Any) -> str | None:
    if not raw_error:
        return None
    if isinstance(raw_error, str):
        return raw_error
    if isinstance(raw_error, (Mapping, list)):
        return json.dumps(raw_error)
    return str(raw_error)


def parse_line(line: str) -> Activity | ParseFailure:
    """Parse one JSONL log line into an Activity.

    Args:
        line: A single line of text, with or without its line terminator.

    Returns:
        The derived Activity, or a ParseFailure with reason MALFORMED when the
        line is not a JSON object, or SCHEMA when a required field is missing
        or has the wrong type.
    """
    try:
        record = json.loads(line)
    except (ValueError, RecursionError) as e:
        return ParseFailure(ParseFailureReason.MALFORMED, line, f"invalid JSON: {e}")

    if not isinstance(record, dict):
        return ParseFailure(
            ParseFailureReason.MALFORMED,
            line,
            f"expected a JSON object, got {type(record).__name__}",
        )

    for field in REQUIRED_STRING_FIELDS:
        if not isinstance(record.get(field), str):
            return ParseFailure(
                ParseFailureReason.SCHEMA, line, f"'{field}' missing or not a string"
            )

    duration = record.get("duration_ms")
    if not _is_number(duration):
        return ParseFailure(
            ParseFailureReason.SCHEMA, line, "'duration_ms' missing or not a number"
        )

    error = _error_text(record.get("error"))

    return Activity(
        timestamp=record["timestamp"],
        agent=record["agent"],
        action=record["action"],
        status=ActivityStatus.FAILURE if error else ActivityStatus.SUCCESS,
        duration_ms=duration,
        task=_extract_task(record.get("input")),
        error=error,
    )
