#!/usr/bin/env python3
"""CLI tools for operating the call scheduler.

Usage:
    python -m call_scheduler.cli tick          # Run one scheduler pass
    python -m call_scheduler.cli run           # Run the polling loop
    python -m call_scheduler.cli schedule ...  # Create a scheduled call task
    python -m call_scheduler.cli serve         # Start the API server
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime, timedelta

from call_scheduler.config import get_settings
from call_scheduler.core.clock import parse_timestamp, utcnow
from call_scheduler.core.exceptions import CallSchedulerError
from call_scheduler.core.logging import setup_logging


def _configure_logging() -> None:
    settings = get_settings()
    setup_logging(
        level=settings.log_level,
        json_output=settings.log_json,
        instance_id=settings.instance_id,
    )


def tick(args: argparse.Namespace) -> int:
    """Run a single scheduler pass and print the summary."""
    from call_scheduler.dependencies import cleanup_dependencies, get_call_scheduler

    async def _tick() -> dict:
        try:
            result = await get_call_scheduler().tick()
            return result.to_dict()
        finally:
            await cleanup_dependencies()

    summary = asyncio.run(_tick())
    print(json.dumps(summary, indent=2))
    return 0 if summary["errors"] == 0 else 1


def run_loop(args: argparse.Namespace) -> int:
    """Run the polling loop in the foreground until interrupted."""
    from call_scheduler.dependencies import cleanup_dependencies, get_call_scheduler

    async def _run() -> None:
        scheduler = get_call_scheduler()
        await scheduler.start()
        try:
            # The loop runs in its own task; park here until cancelled
            await asyncio.Event().wait()
        finally:
            await scheduler.stop()
            await cleanup_dependencies()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        print("\nScheduler stopped")
    return 0


def _parse_when(value: str) -> datetime:
    """Accept an ISO timestamp or a relative offset like ``+10m``."""
    if value.startswith("+"):
        units = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days"}
        unit = units.get(value[-1])
        if unit is None:
            raise argparse.ArgumentTypeError(f"Unknown offset unit in {value!r}")
        try:
            amount = float(value[1:-1])
        except ValueError as e:
            raise argparse.ArgumentTypeError(f"Bad offset {value!r}") from e
        return utcnow() + timedelta(**{unit: amount})

    parsed = parse_timestamp(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(f"Not an ISO-8601 timestamp: {value!r}")
    return parsed


def schedule(args: argparse.Namespace) -> int:
    """Create a scheduled call task."""
    from call_scheduler.db.models import ScheduledCallTask
    from call_scheduler.dependencies import cleanup_dependencies, get_task_repository

    async def _create() -> dict:
        try:
            task = await get_task_repository().create(
                ScheduledCallTask(
                    phone_number=args.phone,
                    message=args.message,
                    scheduled_time=args.at,
                    owner_agent_id=args.agent,
                    caller_name=args.caller_name,
                    phone_number_id_override=args.phone_number_id,
                    recipient_name=args.recipient_name,
                    record_id=args.record_id,
                    thread_id=args.thread_id,
                )
            )
            return task.to_dict()
        finally:
            await cleanup_dependencies()

    try:
        created = asyncio.run(_create())
    except CallSchedulerError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    print(json.dumps(created, indent=2))
    return 0


def serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    from call_scheduler.main import run

    run()
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Outbound Call Scheduler CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # tick
    subparsers.add_parser("tick", help="Execute due calls once")

    # run
    subparsers.add_parser("run", help="Run the scheduler loop in the foreground")

    # schedule
    schedule_parser = subparsers.add_parser("schedule", help="Schedule an outbound call")
    schedule_parser.add_argument("--phone", required=True, help="Destination phone number")
    schedule_parser.add_argument("--message", required=True, help="What the call is about")
    schedule_parser.add_argument("--agent", required=True, help="Voice agent (assistant) id")
    schedule_parser.add_argument(
        "--at", type=_parse_when, default=None,
        help="ISO-8601 time or offset like +10m (default: now)"
    )
    schedule_parser.add_argument("--caller-name", default=None)
    schedule_parser.add_argument("--recipient-name", default=None)
    schedule_parser.add_argument("--phone-number-id", default=None, help="Caller line override")
    schedule_parser.add_argument("--record-id", default=None, help="Owning record for the result")
    schedule_parser.add_argument("--thread-id", default=None, help="Conversation thread for the result")

    # serve
    subparsers.add_parser("serve", help="Start the API server")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "schedule" and args.at is None:
        args.at = utcnow()

    _configure_logging()

    commands = {
        "tick": tick,
        "run": run_loop,
        "schedule": schedule,
        "serve": serve,
    }

    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
