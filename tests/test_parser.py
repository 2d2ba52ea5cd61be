"""Tests for parse_line."""

import dataclasses
import json

import pytest

from agent_monitor.models import Activity, ActivityStatus, ParseFailure, ParseFailureReason
from agent_monitor.parser import parse_line

BASE_LINE = '{"timestamp":"2024-01-01T00:00:00Z","agent":"A","action":"x","duration_ms":5}'


def _line(**fields) -> str:
    record = json.loads(BASE_LINE)
    record.update(fields)
    return json.dumps(record)


class TestParseLineSuccess:
    """Tests for well-formed records."""

    def test_minimal_record_is_success(self) -> None:
        """Test that a record with only required fields parses as success."""
        activity = parse_line(BASE_LINE)

        assert activity == Activity(
            timestamp="2024-01-01T00:00:00Z",
            agent="A",
            action="x",
            status=ActivityStatus.SUCCESS,
            duration_ms=5,
        )
        assert activity.task is None
        assert activity.error is None

    def test_error_marks_failure(self) -> None:
        """Test that a non-empty error yields a failure status."""
        activity = parse_line(_line(error="boom"))

        assert isinstance(activity, Activity)
        assert activity.status is ActivityStatus.FAILURE
        assert activity.error == "boom"

    def test_empty_error_is_success(self) -> None:
        """Test that an empty error string does not count as a failure."""
        activity = parse_line(_line(error=""))

        assert isinstance(activity, Activity)
        assert activity.status is ActivityStatus.SUCCESS
        assert activity.error is None

    def test_null_error_is_success(self) -> None:
        """Test that an explicit null error is treated as absent."""
        activity = parse_line(_line(error=None))

        assert isinstance(activity, Activity)
        assert activity.status is ActivityStatus.SUCCESS

    def test_task_extracted_from_input(self) -> None:
        """Test that input.task becomes the activity task."""
        activity = parse_line(_line(input={"task": "Fix the login bug"}))

        assert activity.task == "Fix the login bug"

    def test_long_task_truncated_to_60_chars(self) -> None:
        """Test that long tasks keep exactly their first 60 characters."""
        task = "".join(chr(ord("a") + i % 26) for i in range(100))
        activity = parse_line(_line(input={"task": task}))

        assert len(activity.task) == 60
        assert activity.task == task[:60]

    def test_non_object_input_has_no_task(self) -> None:
        """Test that a string input leaves task absent."""
        activity = parse_line(_line(input="not an object"))

        assert isinstance(activity, Activity)
        assert activity.task is None

    @pytest.mark.parametrize("task", [42, None, ["a"], {"nested": "x"}, ""])
    def test_non_string_task_is_ignored(self, task) -> None:
        """Test that a task which is not a non-empty string is dropped."""
        activity = parse_line(_line(input={"task": task}))

        assert isinstance(activity, Activity)
        assert activity.task is None

    def test_optional_fields_ignored(self) -> None:
        """Test that output and unknown fields do not affect parsing."""
        activity = parse_line(_line(output={"result": [1, 2]}, extra="value"))

        assert isinstance(activity, Activity)
        assert activity.status is ActivityStatus.SUCCESS

    def test_float_duration_and_trailing_newline(self) -> None:
        """Test fractional durations and lines that keep their terminator."""
        activity = parse_line(_line(duration_ms=12.5) + "\n")

        assert isinstance(activity, Activity)
        assert activity.duration_ms == 12.5


class TestParseLineFailures:
    """Tests for lines that do not yield an Activity."""

    @pytest.mark.parametrize("line", ["not json", "{", '{"timestamp": }', ""])
    def test_invalid_json_is_malformed(self, line: str) -> None:
        """Test that undecodable lines return MALFORMED without raising."""
        result = parse_line(line)

        assert isinstance(result, ParseFailure)
        assert result.reason is ParseFailureReason.MALFORMED
        assert result.line == line

    @pytest.mark.parametrize("line", ["[1, 2, 3]", "42", '"text"', "null"])
    def test_non_object_json_is_malformed(self, line: str) -> None:
        """Test that JSON values other than objects are rejected."""
        result = parse_line(line)

        assert isinstance(result, ParseFailure)
        assert result.reason is ParseFailureReason.MALFORMED

    @pytest.mark.parametrize("field", ["timestamp", "agent", "action", "duration_ms"])
    def test_missing_required_field_is_schema_failure(self, field: str) -> None:
        """Test that each required field is enforced."""
        record = json.loads(BASE_LINE)
        del record[field]

        result = parse_line(json.dumps(record))

        assert isinstance(result, ParseFailure)
        assert result.reason is ParseFailureReason.SCHEMA
        assert field in result.detail

    @pytest.mark.parametrize(
        "fields",
        [
            {"timestamp": 1704067200},
            {"agent": None},
            {"action": ["x"]},
            {"duration_ms": "5"},
            {"duration_ms": True},
        ],
    )
    def test_wrong_types_are_schema_failures(self, fields: dict) -> None:
        """Test that required fields must have the expected primitive type."""
        result = parse_line(_line(**fields))

        assert isinstance(result, ParseFailure)
        assert result.reason is ParseFailureReason.SCHEMA

    @pytest.mark.parametrize(
        ("raw_error", "expected"),
        [
            ({"message": "boom"}, '{"message": "boom"}'),
            (["disk full", "retry"], '["disk full", "retry"]'),
            (1, "1"),
            (True, "True"),
        ],
    )
    def test_non_string_error_is_failure(self, raw_error, expected: str) -> None:
        """Test that a structured or scalar error still yields a failed activity."""
        result = parse_line(_line(error=raw_error))

        assert isinstance(result, Activity)
        assert result.status is ActivityStatus.FAILURE
        assert result.error == expected

    @pytest.mark.parametrize("raw_error", [{}, [], 0, False])
    def test_falsy_non_string_error_is_success(self, raw_error) -> None:
        """Test that empty or falsy error values count as success."""
        result = parse_line(_line(error=raw_error))

        assert isinstance(result, Activity)
        assert result.status is ActivityStatus.SUCCESS
        assert result.error is None

    def test_empty_object_is_schema_failure(self) -> None:
        """Test that an empty object is a schema failure, not malformed."""
        result = parse_line("{}")

        assert isinstance(result, ParseFailure)
        assert result.reason is ParseFailureReason.SCHEMA


class TestActivityModel:
    """Tests for the Activity value object."""

    def test_activity_is_immutable(self, sample_activity: Activity) -> None:
        """Test that activities cannot be modified after construction."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            sample_activity.agent = "other"  # type: ignore[misc]

    def test_to_dict_omits_absent_fields(self) -> None:
        """Test that to_dict leaves out task and error when unset."""
        data = parse_line(BASE_LINE).to_dict()

        assert data == {
            "timestamp": "2024-01-01T00:00:00Z",
            "agent": "A",
            "action": "x",
            "status": "success",
            "duration_ms": 5,
        }

    def test_to_dict_includes_task_and_error(self) -> None:
        """Test that to_dict carries optional fields when present."""
        data = parse_line(_line(error="boom", input={"task": "t"})).to_dict()

        assert data["status"] == "failure"
        assert data["error"] == "boom"
        assert data["task"] == "t"
