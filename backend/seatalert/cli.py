#!/usr/bin/env python3
"""Operator CLI for search alerts.

Usage:
    # Run one reconciliation pass now, outside Celery
    python -m seatalert.cli run-pass

    # List recent alerts
    python -m seatalert.cli list-alerts --status PENDING --limit 20
"""

import argparse
import asyncio
import sys

from sqlalchemy.ext.asyncio import AsyncSession

from seatalert.core.config import settings
from seatalert.core.database import get_session_factory
from seatalert.core.logging import configure_logging
from seatalert.models.search_alert import AlertStatus
from seatalert.services.alert_store import SqlAlchemyAlertStore
from seatalert.services.availability_client import HttpAvailabilityClient
from seatalert.services.notification_service import PushNotificationService
from seatalert.services.reconciliation_service import AlertReconciliationService
from seatalert.services.station_directory import get_station_directory


async def cmd_run_pass(args: argparse.Namespace, session: AsyncSession) -> int:
    """
    Run one reconciliation pass and print its statistics.

    Does not take the Celery pass lock; avoid running it while workers are active.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        service = AlertReconciliationService(
            store=SqlAlchemyAlertStore(session),
            availability=HttpAvailabilityClient(),
            notifier=PushNotificationService(session),
            stations=get_station_directory(),
        )
    except ValueError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1

    stats = await service.run_pass()

    print("✅ Reconciliation pass finished")
    for name, value in stats.items():
        print(f"   {name:<18} {value}")
    return 0


async def cmd_list_alerts(args: argparse.Namespace, session: AsyncSession) -> int:
    """
    List search alerts with their status.

    Returns:
        Exit code (0 for success)
    """
    status = AlertStatus(args.status) if args.status else None
    alerts = await SqlAlchemyAlertStore(session).list_alerts(status=status, limit=args.limit)

    if not alerts:
        print("No search alerts found")
        return 0

    stations = get_station_directory()
    print(f"Showing {len(alerts)} alert(s) (limit: {args.limit}):\n")
    print(f"{'Alert ID':<38} {'Route':<40} {'Date':<11} {'Status':<10} {'Last checked':<20} Reason")
    print("-" * 140)
    for alert in alerts:
        route = f"{stations.display_name(alert.from_station_id)} → {stations.display_name(alert.to_station_id)}"
        last_checked = alert.last_checked.strftime("%Y-%m-%d %H:%M:%S") if alert.last_checked else "never"
        print(
            f"{alert.id!s:<38} {route:<40} {alert.date.isoformat():<11} "
            f"{alert.status.value:<10} {last_checked:<20} {alert.status_reason or ''}"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="Search alert operations CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m seatalert.cli run-pass
  python -m seatalert.cli list-alerts --status FAILED
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser(
        "run-pass",
        help="Run one reconciliation pass now",
        description="Evaluate every eligible search alert once and print pass statistics.",
    )

    list_alerts_parser = subparsers.add_parser(
        "list-alerts",
        help="List search alerts",
        description="Display recent search alerts with status, reason and last check time.",
    )
    list_alerts_parser.add_argument(
        "--status",
        choices=[status.value for status in AlertStatus],
        help="Only show alerts with this status",
    )
    list_alerts_parser.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Maximum number of alerts to display (default: 50)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the CLI tool.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging(log_level=settings.LOG_LEVEL)

    command_handlers = {
        "run-pass": cmd_run_pass,
        "list-alerts": cmd_list_alerts,
    }

    if handler := command_handlers.get(args.command):

        async def run_with_session() -> int:
            async with get_session_factory()() as session:
                try:
                    return await handler(args, session)
                except Exception as e:
                    print(f"❌ Unexpected error: {e}", file=sys.stderr)
                    return 1

        return asyncio.run(run_with_session())

    print(f"❌ Unknown command: {args.command}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
