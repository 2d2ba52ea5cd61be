"""Agent activity monitor.

This package tails the JSON-lines conversation logs written by agent
processes, keeps a bounded history of recent activities and pushes new ones
to a subscriber as they are written.

Key Components:
    - models: Activity, parse failures and per-file tail state
    - parser: Conversion of one log line into an Activity
    - buffer: Fixed-capacity FIFO activity buffer
    - cold_start: Initial load from existing log files
    - tailer: Incremental tail engine with truncation recovery
    - sources: watchdog and polling file-change sources

Example:
    >>> from agent_monitor import LogTailer
    >>> tailer = LogTailer("/path/to/conversation_logs")
    >>> await tailer.start(lambda activity: print(activity.agent, activity.action))
    >>> recent = tailer.get_activities()
    >>> await tailer.stop()
"""

from __future__ import annotations

from .buffer import ActivityBuffer, active_agents
from .config import MonitorConfig
from .diagnostics import DiagnosticsSink, ParseErrorThrottle
from .exceptions import AgentMonitorError, DirectoryNotFoundError
from .models import Activity, ActivityStatus, FileTailState, ParseFailure, ParseFailureReason
from .parser import parse_line
from .sources import FileChange, FileChangeKind, FileChangeSource, PollingFileSource, WatchdogFileSource
from .tailer import LogTailer

__all__ = [
    "Activity",
    "ActivityBuffer",
    "ActivityStatus",
    "AgentMonitorError",
    "DiagnosticsSink",
    "DirectoryNotFoundError",
    "FileChange",
    "FileChangeKind",
    "FileChangeSource",
    "FileTailState",
    "LogTailer",
    "MonitorConfig",
    "ParseErrorThrottle",
    "ParseFailure",
    "ParseFailureReason",
    "PollingFileSource",
    "WatchdogFileSource",
    "active_agents",
    "parse_line",
]

__version__ = "0.1.0"
