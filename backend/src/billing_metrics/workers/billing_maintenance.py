"""
Background worker for billing metrics maintenance.

Jobs:
- Daily maintenance: mark overdue invoices, recompute the current period,
  check metrics health
- Hourly recalculation of the current period
- Backfill of historical periods (manual)

Usage (with ARQ):
    arq billing_metrics.workers.billing_maintenance.WorkerSettings
"""

from typing import Any, Optional

import structlog

from billing_metrics.config import settings
from billing_metrics.database import AsyncSessionLocal, engine as db_engine
from billing_metrics.engine import MetricsEngine
from billing_metrics.errors import MaintenanceError
from billing_metrics.logging_config import bind_job_context, setup_logging
from billing_metrics.tracing import setup_tracing
from billing_metrics.utils.clock import utcnow
from billing_metrics.utils.periods import period_of

logger = structlog.get_logger(__name__)


async def run_daily_maintenance(engine: MetricsEngine) -> dict[str, Any]:
    """
    Run every daily maintenance step, in order.

    Steps: overdue sweep, manual recalculation of the current period,
    health report. A failing step does not stop the following ones.

    Args:
        engine: Wired metrics engine

    Returns:
        Dict with the result of each step

    Raises:
        MaintenanceError: If any step failed, after all steps were attempted
    """
    logger.info("daily_maintenance_started")

    results: dict[str, Any] = {"started_at": engine.clock().isoformat()}
    failed_steps: dict[str, str] = {}

    try:
        results["overdue_marked"] = await engine.invoices.mark_overdue()
    except Exception as e:
        failed_steps["mark_overdue"] = str(e)
        logger.exception("daily_maintenance_step_failed", step="mark_overdue", error=str(e))

    try:
        snapshots = await engine.trigger.trigger_manual_calculation(triggered_by="daily_maintenance")
        results["recalculated_periods"] = [snapshot.period for snapshot in snapshots]
    except Exception as e:
        failed_steps["recalculate"] = str(e)
        logger.exception("daily_maintenance_step_failed", step="recalculate", error=str(e))

    try:
        report = await engine.health.get_health_report()
        results["health_status"] = report.status.value
        results["health_issues"] = report.issues
    except Exception as e:
        failed_steps["health_report"] = str(e)
        logger.exception("daily_maintenance_step_failed", step="health_report", error=str(e))

    results["completed_at"] = engine.clock().isoformat()

    if failed_steps:
        logger.error("daily_maintenance_failed", failed_steps=sorted(failed_steps))
        raise MaintenanceError(failed_steps)

    logger.info(
        "daily_maintenance_completed",
        overdue_marked=results["overdue_marked"],
        health_status=results["health_status"],
    )
    return results


def _engine_from_ctx(ctx: dict) -> MetricsEngine:
    engine = ctx.get("engine")
    if engine is None:
        engine = MetricsEngine.from_session_factory(AsyncSessionLocal)
        ctx["engine"] = engine
    return engine


async def daily_maintenance(ctx: dict) -> dict:
    """
    ARQ task wrapping ``run_daily_maintenance``.

    Args:
        ctx: ARQ context (contains job info)

    Returns:
        Dict with maintenance results
    """
    bind_job_context(job="daily_maintenance", job_id=ctx.get("job_id"))

    try:
        results = await run_daily_maintenance(_engine_from_ctx(ctx))
        return {"status": "success", **results}
    except MaintenanceError as e:
        return {"status": "failed", "failed_steps": e.failed_steps}


async def recalculate_current_period(ctx: dict) -> dict:
    """
    Recompute the snapshot of the current period.

    Args:
        ctx: ARQ context

    Returns:
        Dict with calculation results
    """
    bind_job_context(job="recalculate_current_period", job_id=ctx.get("job_id"))
    engine = _engine_from_ctx(ctx)
    now = engine.clock()

    try:
        snapshot = await engine.calculator.compute_and_persist(now.year, now.month)
        return {"status": "success", "period": snapshot.period, "mrr": float(snapshot.mrr)}
    except Exception as e:
        logger.exception("current_period_recalculation_failed", period=period_of(now), error=str(e))
        return {"status": "failed", "period": period_of(now), "error": str(e)}


async def backfill_history(
    ctx: dict,
    start_year: Optional[int] = None,
    start_month: Optional[int] = None,
) -> dict:
    """
    Recompute every period from the configured start through the current one.

    Args:
        ctx: ARQ context
        start_year: First year (``settings.backfill_default_start_year`` when omitted)
        start_month: First month (``settings.backfill_default_start_month`` when omitted)

    Returns:
        Backfill summary
    """
    bind_job_context(job="backfill_history", job_id=ctx.get("job_id"))
    engine = _engine_from_ctx(ctx)
    now = engine.clock()

    return await engine.backfill.backfill(
        start_year or settings.backfill_default_start_year,
        start_month or settings.backfill_default_start_month,
        now.year,
        now.month,
    )


async def startup(ctx: dict) -> None:
    """Configure logging and tracing once per worker process."""
    setup_logging()
    if settings.tracing_enabled:
        setup_tracing(db_engine)
    ctx["engine"] = MetricsEngine.from_session_factory(AsyncSessionLocal)
    logger.info("billing_maintenance_worker_started", app_env=settings.app_env)


class WorkerSettings:
    """
    ARQ worker settings for billing metrics maintenance.

    Schedule:
    - Daily maintenance: 01:00 UTC
    - Current period recalculation: every hour
    - Historical backfill: manual

    Usage:
        arq billing_metrics.workers.billing_maintenance.WorkerSettings
    """

    functions = [
        daily_maintenance,
        recalculate_current_period,
        backfill_history,
    ]

    cron_jobs = [
        {
            "function": daily_maintenance,
            "cron": "0 1 * * *",  # Daily at 01:00
            "timeout": 1800,
        },
        {
            "function": recalculate_current_period,
            "cron": "30 * * * *",  # Every hour at minute 30
            "timeout": 600,
        },
    ]

    on_startup = startup

    keep_result = 86400  # Keep results for 24 hours
    max_jobs = 4
    job_timeout = 3600


if __name__ == "__main__":
    """
    Run daily maintenance once.

    Usage:
        python -m billing_metrics.workers.billing_maintenance
    """
    import asyncio

    async def main() -> dict:
        ctx = {"job_id": f"manual_{utcnow().isoformat()}"}
        await startup(ctx)
        return await daily_maintenance(ctx)

    result = asyncio.run(main())
    print(result)
