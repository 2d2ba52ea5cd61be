"""Command-line entry point: stream agent activities to stdout."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from typing import TextIO

from .config import MonitorConfig
from .exceptions import DirectoryNotFoundError
from .logging_setup import configure_logging
from .models import Activity
from .tailer import LogTailer


def format_activity(activity: Activity, as_json: bool = False) -> str:
    """Render one activity as a single output line."""
    if as_json:
        return json.dumps(activity.to_dict(), ensure_ascii=False)

    line = (
        f"{activity.timestamp}  {activity.agent:<20} {activity.action:<24} "
        f"{activity.status.value:<7} {activity.duration_ms:>8}ms"
    )
    if activity.task:
        line += f"  {activity.task}"
    if activity.error:
        line += f"  error: {activity.error}"
    return line


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent-monitor",
        description="Tail agent conversation logs and print activities as they happen.",
    )
    parser.add_argument("--dir", dest="logs_dir", help="Directory holding *.log files")
    parser.add_argument("--capacity", type=int, help="Number of activities kept in memory")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--source", choices=["watchdog", "polling"], help="File change source")
    parser.add_argument("--log-level", help="debug, info, warn or error")
    parser.add_argument("--json", action="store_true", help="Print activities as JSON lines")
    return parser


def load_config(args: argparse.Namespace) -> MonitorConfig:
    """Resolve configuration: YAML file, then environment, then flags."""
    base = MonitorConfig.from_yaml(args.config) if args.config else MonitorConfig()
    config = MonitorConfig.from_env(base)

    overrides = {
        "logs_dir": args.logs_dir,
        "capacity": args.capacity,
        "source": args.source,
        "log_level": args.log_level,
    }
    return replace(config, **{k: v for k, v in overrides.items() if v is not None})


async def run(config: MonitorConfig, as_json: bool = False, out: TextIO | None = None) -> None:
    """Print the current buffer, then every new activity until cancelled."""
    stream = out or sys.stdout

    def emit(activity: Activity) -> None:
        print(format_activity(activity, as_json), file=stream, flush=True)

    async with LogTailer.from_config(config) as tailer:
        await tailer.start(emit)
        for activity in tailer.get_activities():
            emit(activity)
        await asyncio.Event().wait()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except (ValueError, FileNotFoundError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    configure_logging(config.log_level)

    try:
        asyncio.run(run(config, as_json=args.json))
    except DirectoryNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
