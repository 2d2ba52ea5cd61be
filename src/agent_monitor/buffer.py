"""Fixed-capacity activity buffer.

The buffer is the single source of truth handed to consumers. It keeps the
most recent activities in arrival order and evicts the oldest entry first
once full.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta, timezone

from .models import Activity

DEFAULT_CAPACITY = 50


class ActivityBuffer:
    """Ring buffer of the most recent activities.

    Slots are preallocated; ``_head`` points at the oldest entry and
    ``_size`` counts the occupied slots. All access goes through one lock so
    that snapshots taken from another thread never see a half-applied
    append/evict.

    Attributes:
        capacity: Maximum number of activities retained.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """Initialize an empty buffer.

        Args:
            capacity: Maximum number of activities to retain (>= 1).

        Raises:
            ValueError: If capacity is less than 1.
        """
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._slots: list[Activity | None] = [None] * capacity
        self._head = 0
        self._size = 0
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, activity: Activity) -> None:
        """Add an activity at the tail, evicting the oldest one if full."""
        with self._lock:
            self._append_locked(activity)

    def extend(self, activities: Iterable[Activity]) -> None:
        """Append several activities, preserving their order."""
        with self._lock:
            for activity in activities:
                self._append_locked(activity)

    def _append_locked(self, activity: Activity) -> None:
        if self._size < self._capacity:
            self._slots[(self._head + self._size) % self._capacity] = activity
            self._size += 1
        else:
            # Full: overwrite the oldest slot and advance the head past it
            self._slots[self._head] = activity
            self._head = (self._head + 1) % self._capacity

    def snapshot(self) -> list[Activity]:
        """Return an independent copy of the buffer, oldest first."""
        with self._lock:
            return [
                self._slots[(self._head + i) % self._capacity]  # type: ignore[misc]
                for i in range(self._size)
            ]

    def clear(self) -> None:
        """Remove all activities."""
        with self._lock:
            self._slots = [None] * self._capacity
            self._head = 0
            self._size = 0

    def __len__(self) -> int:
        with self._lock:
            return self._size

    def __repr__(self) -> str:
        return f"ActivityBuffer(capacity={self._capacity}, size={len(self)})"


def _parse_timestamp(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def active_agents(
    activities: Sequence[Activity],
    within_seconds: float = 10,
    now: datetime | None = None,
) -> list[str]:
    """Return agents with an activity in the last ``within_seconds``.

    Names are unique and listed in the order they first appear in
    ``activities``. Activities whose timestamp cannot be parsed are ignored.
    Naive timestamps are taken to be UTC.

    Args:
        activities: Activities to inspect, typically a buffer snapshot.
        within_seconds: Size of the look-back window.
        now: Reference time (defaults to the current UTC time).

    Returns:
        List of agent names.
    """
    reference = now or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    cutoff = reference - timedelta(seconds=within_seconds)

    agents: list[str] = []
    for activity in activities:
        ts = _parse_timestamp(activity.timestamp)
        if ts is None or ts < cutoff:
            continue
        if activity.agent not in agents:
            agents.append(activity.agent)
    return agents
