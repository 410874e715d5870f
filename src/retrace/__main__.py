"""retrace CLI: an undoable line-editing session.

Usage:
    python -m retrace                           # Default config
    python -m retrace --config custom.yaml      # Custom config
    python -m retrace --capacity 50 --debounce 300

Each input line replaces the tracked text.  Lines starting with ``:`` are
commands: ``:undo``, ``:redo``, ``:jump N``, ``:reset``, ``:history``,
``:status``, ``:flush``, ``:quit``.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Iterable
from typing import TextIO

from omegaconf import OmegaConf

from retrace.core.cell import StateCell
from retrace.core.clock import create_clock
from retrace.core.config import RetraceConfig
from retrace.history.tracker import HistoryTracker
from retrace.utils.logging import setup_logging

# The CLI only runs timers on threads; these backends would never fire here.
_UNSUPPORTED_SCHEDULERS = {
    "asyncio": "needs a running event loop",
    "manual": "only fires when advanced by test code",
}


def _print_history(tracker: HistoryTracker[str], out: TextIO) -> None:
    pointer = tracker.pointer
    now = tracker.clock.now()
    for i, entry in enumerate(tracker.history):
        marker = ">" if i == pointer else " "
        out.write(f"{marker} {i:3d}  {entry.age(now):7.1f}s ago  {entry.value!r}\n")


def run_session(
    tracker: HistoryTracker[str],
    cell: StateCell[str],
    lines: Iterable[str],
    out: TextIO,
) -> int:
    """Drive *tracker* from command/text *lines*.  Returns an exit code."""
    for raw in lines:
        line = raw.rstrip("\n")
        if not line.startswith(":"):
            cell.set(line)
            continue

        command, _, arg = line[1:].partition(" ")
        if command in ("quit", "q"):
            break
        elif command == "undo":
            if not tracker.undo():
                out.write("nothing to undo\n")
        elif command == "redo":
            if not tracker.redo():
                out.write("nothing to redo\n")
        elif command == "jump":
            try:
                tracker.jump_to(int(arg))
            except (ValueError, IndexError) as e:
                out.write(f"error: {e}\n")
                continue
        elif command == "reset":
            tracker.reset()
        elif command == "flush":
            tracker.flush()
        elif command == "history":
            _print_history(tracker, out)
            continue
        elif command == "status":
            for key, value in tracker.get_status().items():
                out.write(f"{key}: {value}\n")
            continue
        else:
            out.write(f"unknown command: {command}\n")
            continue
        out.write(f"= {cell.get()!r}\n")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="retrace",
        description="retrace - undo/redo history for a single value",
    )
    parser.add_argument(
        "--config",
        "-c",
        default="config/default.yaml",
        help="Path to configuration YAML file (default: config/default.yaml)",
    )
    parser.add_argument(
        "--capacity",
        type=int,
        default=None,
        help="Override the number of history entries retained",
    )
    parser.add_argument(
        "--debounce",
        type=int,
        default=None,
        help="Override the debounce quiet period in milliseconds (0 disables)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level",
    )
    parser.add_argument(
        "--validate-config",
        action="store_true",
        default=False,
        help="Validate config against the Pydantic schema before starting",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Path to log file (default: no file logging)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=False,
        help="Output logs as JSON instead of human-readable",
    )
    args = parser.parse_args(argv)

    overrides: dict[str, int] = {}
    if args.capacity is not None:
        overrides["retrace.history.capacity"] = args.capacity
    if args.debounce is not None:
        overrides["retrace.history.debounce_ms"] = args.debounce

    config = RetraceConfig(args.config)
    try:
        cfg = config.load(validate=args.validate_config, overrides=overrides)
    except FileNotFoundError:
        print(f"Error: Config file not found: {args.config}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: Config validation failed:\n{e}", file=sys.stderr)
        return 1

    system = cfg.retrace.get("system", {})
    setup_logging(
        args.log_level or system.get("log_level", "INFO"),
        log_file=args.log_file or system.get("log_file", None),
        log_json=args.log_json or system.get("log_json", False),
    )

    clock = create_clock(cfg.retrace.get("time", None))

    scheduler = OmegaConf.select(cfg, "retrace.history.scheduler", default="thread")
    if scheduler in _UNSUPPORTED_SCHEDULERS:
        print(f"Error: scheduler '{scheduler}' {_UNSUPPORTED_SCHEDULERS[scheduler]}", file=sys.stderr)
        return 1

    cell: StateCell[str] = StateCell("")
    try:
        tracker = HistoryTracker.from_config(cell, config.history, clock=clock)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    with tracker:
        return run_session(tracker, cell, sys.stdin, sys.stdout)


if __name__ == "__main__":
    sys.exit(main())
