"""Per-file tail position tracking.

Positions live in memory only; the monitor rebuilds them from a cold start
on every run.
"""

from __future__ import annotations

import asyncio

from .models import FileTailState


class PositionTracker:
    """Registry of FileTailState entries keyed by file path.

    Each path also gets an ``asyncio.Lock`` so that the read-modify-write of
    its offset is never interleaved by two notifications for the same file.

    Attributes:
        _positions: Tail states keyed by path.
        _locks: Per-path locks, created on first use.
    """

    def __init__(self) -> None:
        self._positions: dict[str, FileTailState] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get_position(self, path: str) -> FileTailState | None:
        """Get the tail state for a file, or None if it is not tracked."""
        return self._positions.get(path)

    def update_position(self, path: str, offset: int) -> FileTailState:
        """Record the byte offset reached in a file.

        Args:
            path: File path.
            offset: New offset (>= 0).

        Returns:
            The updated tail state.
        """
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")
        state = self._positions.get(path)
        if state is None:
            state = FileTailState(path=path, last_byte_offset=offset)
            self._positions[path] = state
        else:
            state.last_byte_offset = offset
        return state

    def remove_position(self, path: str) -> bool:
        """Stop tracking a file.

        The path's lock is dropped too unless a read currently holds it.

        Returns:
            True if the file was tracked.
        """
        lock = self._locks.get(path)
        if lock is not None and not lock.locked():
            del self._locks[path]
        return self._positions.pop(path, None) is not None

    def lock_for(self, path: str) -> asyncio.Lock:
        """Return the lock serializing reads of ``path``."""
        lock = self._locks.get(path)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[path] = lock
        return lock

    def get_all_positions(self) -> list[FileTailState]:
        return list(self._positions.values())

    def clear_all_positions(self) -> None:
        self._positions = {}
        self._locks = {}

    def __contains__(self, path: object) -> bool:
        return path in self._positions

    def __len__(self) -> int:
        return len(self._positions)
