#!/usr/bin/env python3
"""
Administrative entry points for the billing metrics engine.

Usage:
    # Recompute one period (current month when --period is omitted)
    python metrics_admin.py --action calculate --period 2024-03

    # Recompute an inclusive range of periods
    python metrics_admin.py --action backfill --start 2024-01 --end 2024-06

    # Print the health report
    python metrics_admin.py --action health

    # Run the daily maintenance routine once
    python metrics_admin.py --action daily-maintenance

    # Move pending invoices past their due date to overdue
    python metrics_admin.py --action mark-overdue

    # Route a business event through the recalculation trigger
    python metrics_admin.py --action event --event-type invoice_paid --invoice-id <uuid>
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Optional
from uuid import UUID

import structlog

from billing_metrics.config import settings
from billing_metrics.database import AsyncSessionLocal, engine as db_engine
from billing_metrics.engine import MetricsEngine
from billing_metrics.logging_config import setup_logging
from billing_metrics.schemas.billing_event import BillingEvent, BillingEventType
from billing_metrics.schemas.metrics_snapshot import MetricsSnapshot
from billing_metrics.tracing import setup_tracing
from billing_metrics.utils.periods import parse_period
from billing_metrics.workers.billing_maintenance import run_daily_maintenance

logger = structlog.get_logger(__name__)

ACTIONS = ["calculate", "backfill", "health", "daily-maintenance", "mark-overdue", "event"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Billing metrics administration")

    parser.add_argument("--action", choices=ACTIONS, required=True, help="Action to perform")
    parser.add_argument("--period", help="Period YYYY-MM for calculate (default: current month)")
    parser.add_argument(
        "--start",
        help=(
            "First period YYYY-MM for backfill (default: "
            f"{settings.backfill_default_start_year}-{settings.backfill_default_start_month:02d})"
        ),
    )
    parser.add_argument("--end", help="Last period YYYY-MM for backfill (default: current month)")
    parser.add_argument(
        "--event-type",
        choices=[event_type.value for event_type in BillingEventType],
        help="Event type for the event action",
    )
    parser.add_argument("--tenant-id", type=UUID, help="Tenant the event refers to")
    parser.add_argument("--invoice-id", type=UUID, help="Invoice the event refers to")
    parser.add_argument("--triggered-by", default="metrics_admin", help="Recorded as the event origin")

    return parser


async def run(args: argparse.Namespace, engine: MetricsEngine) -> Any:
    """Execute the selected action and return a JSON-serializable result."""
    now = engine.clock()

    if args.action == "calculate":
        year, month = parse_period(args.period) if args.period else (now.year, now.month)
        snapshot = await engine.calculator.compute_and_persist(year, month)
        return MetricsSnapshot.model_validate(snapshot).model_dump(mode="json")

    if args.action == "backfill":
        start_year, start_month = (
            parse_period(args.start)
            if args.start
            else (settings.backfill_default_start_year, settings.backfill_default_start_month)
        )
        end_year, end_month = parse_period(args.end) if args.end else (now.year, now.month)
        return await engine.backfill.backfill(start_year, start_month, end_year, end_month)

    if args.action == "health":
        report = await engine.health.get_health_report()
        return report.model_dump(mode="json")

    if args.action == "daily-maintenance":
        return await run_daily_maintenance(engine)

    if args.action == "mark-overdue":
        return {"overdue_marked": await engine.invoices.mark_overdue()}

    if args.action == "event":
        if not args.event_type:
            raise ValueError("--event-type is required for the event action")
        event = BillingEvent(
            type=BillingEventType(args.event_type),
            tenant_id=args.tenant_id,
            invoice_id=args.invoice_id,
            triggered_by=args.triggered_by,
        )
        snapshots = await engine.trigger.process_event(event)
        return {"recalculated_periods": [snapshot.period for snapshot in snapshots]}

    raise ValueError(f"Unknown action: {args.action}")


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point for metrics administration."""
    args = build_parser().parse_args(argv)
    setup_logging()
    if settings.tracing_enabled:
        setup_tracing(db_engine)

    try:
        result = asyncio.run(run(args, MetricsEngine.from_session_factory(AsyncSessionLocal)))
    except Exception as e:
        logger.exception("metrics_admin_failed", action=args.action, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
