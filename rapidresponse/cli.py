#!/usr/bin/env python3
"""Command-line interface for the emergency engine.

Usage:
    python -m rapidresponse.cli --help
    python -m rapidresponse.cli checklist --kind cardiac_arrest
    python -m rapidresponse.cli drill --kind cardiac_arrest --seconds 5 --cpr-rounds 2
    python -m rapidresponse.cli drill --kind stroke --seconds 3 --show-milliseconds
"""
import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from rapidresponse.shared.models import EmergencyKind
from rapidresponse.shared.utils import format_elapsed
from rapidresponse.services.command_layer import (
    EmergencyCommands,
    EmergencyContext,
    TimerSettings,
    checklist_for,
)
from rapidresponse.services.timer_registry import TickScheduler

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

KIND_CHOICES = [kind.value for kind in EmergencyKind]


def setup_parser() -> argparse.ArgumentParser:
    """Set up argument parser."""
    parser = argparse.ArgumentParser(
        description="Rapid Response Central emergency engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Log engine events at INFO"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Checklist command
    checklist_parser = subparsers.add_parser(
        "checklist", help="Print the protocol checklist for an emergency kind"
    )
    checklist_parser.add_argument(
        "--kind", required=True, choices=KIND_CHOICES,
        help="Emergency kind"
    )

    # Drill command
    drill_parser = subparsers.add_parser(
        "drill", help="Run a timed practice response against the engine"
    )
    drill_parser.add_argument(
        "--kind", default=EmergencyKind.CARDIAC_ARREST.value, choices=KIND_CHOICES,
        help="Emergency kind"
    )
    drill_parser.add_argument(
        "--seconds", type=float, default=3.0,
        help="How long the drill runs before it is resolved"
    )
    drill_parser.add_argument(
        "--cpr-rounds", type=int, default=1,
        help="Number of 'Start CPR' presses, spread over the drill (cardiac_arrest only)"
    )
    drill_parser.add_argument(
        "--location", type=str,
        help="Where the drill takes place"
    )
    drill_parser.add_argument(
        "--show-milliseconds", action="store_true",
        help="Tick every 10ms and show centiseconds"
    )

    return parser


def cmd_checklist(args) -> int:
    """Print checklist command."""
    kind = EmergencyKind(args.kind)
    actions = checklist_for(kind)

    print(f"\n{kind.value} checklist:")
    print("-" * 40)
    if not actions:
        print("  (no canonical checklist)")
    for index, action in enumerate(actions, start=1):
        print(f"  {index}. {action}")

    return 0


async def run_drill(
    kind: EmergencyKind,
    seconds: float,
    cpr_rounds: int,
    settings: TimerSettings,
    location: Optional[str] = None,
) -> EmergencyContext:
    """Drive one emergency through a real-time drill.

    Returns:
        The context after the emergency has been resolved
    """
    context = EmergencyContext.create()
    scheduler = TickScheduler(context.timers)
    commands = EmergencyCommands(context, settings=settings, scheduler=scheduler)

    emergency = commands.begin_response(kind, location=location)

    rounds = max(cpr_rounds, 0)
    if rounds and kind is not EmergencyKind.CARDIAC_ARREST:
        # CPR only belongs to a cardiac arrest response
        logger.warning(
            "DRILL_CPR_ROUNDS_IGNORED",
            extra={"kind": kind.value, "cpr_rounds": rounds}
        )
        rounds = 0
    pause = seconds / (rounds + 1)
    for _ in range(rounds):
        await asyncio.sleep(pause)
        commands.start_cpr(kind)
    await asyncio.sleep(pause)

    commands.resolve_emergency(emergency.emergency_id)
    commands.teardown()
    return context


def cmd_drill(args) -> int:
    """Run drill command."""
    settings = TimerSettings.from_env()
    if args.show_milliseconds:
        settings = replace(settings, show_milliseconds=True)
    context = asyncio.run(run_drill(
        EmergencyKind(args.kind),
        args.seconds,
        args.cpr_rounds,
        settings,
        location=args.location,
    ))

    print("\n" + "=" * 60)
    print("DRILL COMPLETE")
    print("=" * 60)
    for emergency in context.sessions.list_all():
        print(f"Emergency: {emergency.emergency_id} ({emergency.kind.value})")
        print(f"Status: {emergency.status.value}")
        print(f"Completed: {', '.join(emergency.completed_actions) or '-'}")
        print(f"Outstanding: {', '.join(emergency.outstanding_actions) or '-'}")

    print("\nTimers:")
    for timer in context.timers.list_timers():
        line = f"  {timer.label or timer.timer_id}: "
        line += format_elapsed(timer.elapsed_ms, settings.show_milliseconds)
        if timer.cycle_count is not None:
            line += f"  cycles={timer.cycle_count}"
        print(line)

    alerts = context.alerts.list_alerts()
    if alerts:
        print("\nAlerts:")
        for alert in alerts:
            print(f"  [{alert.severity.value}] {alert.message}")
    print("=" * 60)

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = setup_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger("rapidresponse").setLevel(logging.INFO)

    if args.command == "checklist":
        return cmd_checklist(args)
    elif args.command == "drill":
        return cmd_drill(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
