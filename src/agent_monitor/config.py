"""Configuration for the agent monitor.

This module defines the configuration dataclass that controls monitor
behavior, including the directory to watch, buffer size and the file-change
source, and helpers to load it from YAML or the environment.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_LOGS_DIR = "../Agents/logs/conversation_logs"

_LOG_LEVELS = {
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "warning": "WARNING",
    "error": "ERROR",
}

_SOURCES = ("watchdog", "polling")


def normalize_log_level(value: str | None) -> str:
    """Map a user-supplied level name to a logging level name (default INFO)."""
    if not value:
        return "INFO"
    return _LOG_LEVELS.get(value.strip().lower(), "INFO")


@dataclass
class MonitorConfig:
    """Configuration for the log tailer.

    Attributes:
        logs_dir: Directory holding the ``*.log`` files (default: ../Agents/logs/conversation_logs).
        capacity: Number of activities retained in the buffer (default: 50).
        trailing_lines: Lines read per file on cold start and after truncation (default: 20).
        error_threshold: Consecutive parse failures reported before suppression (default: 10).
        source: File-change source, "watchdog" or "polling" (default: watchdog).
        poll_interval_seconds: Scan interval for the polling source (default: 1.0).
        log_level: Logging level name (default: INFO).
    """

    logs_dir: str = DEFAULT_LOGS_DIR
    capacity: int = 50
    trailing_lines: int = 20
    error_threshold: int = 10
    source: str = "watchdog"
    poll_interval_seconds: float = 1.0
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {self.capacity}")
        if self.trailing_lines < 0:
            raise ValueError(f"trailing_lines must be non-negative, got {self.trailing_lines}")
        if self.error_threshold < 1:
            raise ValueError(f"error_threshold must be at least 1, got {self.error_threshold}")
        if self.source not in _SOURCES:
            raise ValueError(f"source must be one of {_SOURCES}, got {self.source!r}")
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        self.log_level = normalize_log_level(self.log_level)

    @property
    def logs_path(self) -> Path:
        return Path(self.logs_dir).expanduser().resolve()

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> MonitorConfig:
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return cls(**dict(data))

    @classmethod
    def from_yaml(cls, path: str | Path) -> MonitorConfig:
        """Load configuration from a YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the YAML is invalid or holds unknown keys.
        """
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse configuration YAML: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Configuration in {config_path} must be a mapping")

        logger.debug(f"Loaded configuration from {config_path}")
        return cls.from_mapping(data)

    @classmethod
    def from_env(cls, base: MonitorConfig | None = None, environ: Mapping[str, str] | None = None) -> MonitorConfig:
        """Apply AGENT_MONITOR_* and LOG_LEVEL environment overrides to ``base``."""
        env = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}

        if env.get("AGENT_MONITOR_DIR"):
            overrides["logs_dir"] = env["AGENT_MONITOR_DIR"]
        if env.get("AGENT_MONITOR_CAPACITY"):
            overrides["capacity"] = int(env["AGENT_MONITOR_CAPACITY"])
        if env.get("AGENT_MONITOR_SOURCE"):
            overrides["source"] = env["AGENT_MONITOR_SOURCE"].lower()
        if env.get("AGENT_MONITOR_POLL_INTERVAL"):
            overrides["poll_interval_seconds"] = float(env["AGENT_MONITOR_POLL_INTERVAL"])
        if env.get("LOG_LEVEL"):
            overrides["log_level"] = env["LOG_LEVEL"]

        return replace(base or cls(), **overrides)
