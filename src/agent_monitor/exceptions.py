"""Exceptions raised by the agent monitor."""

from __future__ import annotations

from pathlib import Path


class AgentMonitorError(Exception):
    """Base class for agent monitor errors."""


class DirectoryNotFoundError(AgentMonitorError, FileNotFoundError):
    """The directory to monitor does not exist or is not a directory.

    Attributes:
        path: The offending directory path.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        super().__init__(f"Logs directory not found: {self.path}")

    def __str__(self) -> str:
        return f"Logs directory not found: {self.path}"
