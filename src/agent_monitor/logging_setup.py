"""Logging configuration for the agent monitor.

Diagnostics go to stderr so that stdout stays free for the activity stream.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

LOGGER_NAME = "agent_monitor"
CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
CONSOLE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO", stream: TextIO | None = None) -> logging.Logger:
    """Install a console handler on the package logger.

    Any handlers installed by an earlier call are removed first, and
    ``agent_monitor.*`` records do not propagate to the root logger.

    Args:
        level: Logging level name.
        stream: Destination stream (default: stderr).

    Returns:
        The configured ``agent_monitor`` logger.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.propagate = False
    logger.handlers.clear()

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=CONSOLE_DATEFMT))
    logger.addHandler(console_handler)

    return logger
