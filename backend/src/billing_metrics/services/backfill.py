"""Historical backfill of metrics snapshots."""
from typing import Any

import structlog

from billing_metrics import metrics
from billing_metrics.services.metrics_calculator import MetricsCalculator
from billing_metrics.utils.periods import format_period, iter_periods, parse_period

logger = structlog.get_logger(__name__)


class BackfillRunner:
    """Recomputes a range of periods one after another."""

    def __init__(self, calculator: MetricsCalculator):
        self.calculator = calculator

    async def backfill(self, start_year: int, start_month: int, end_year: int, end_month: int) -> dict[str, Any]:
        """
        Compute every period from start to end inclusive, oldest first.

        A failing period is logged and skipped; the remaining periods are
        still processed.

        Args:
            start_year: First year
            start_month: First month (1-12)
            end_year: Last year
            end_month: Last month (1-12)

        Returns:
            Summary dict with processed, succeeded and failed periods

        Raises:
            InvalidPeriodError: If either bound has an invalid month
        """
        start_period = format_period(start_year, start_month)
        end_period = format_period(end_year, end_month)

        logger.info("metrics_backfill_started", start_period=start_period, end_period=end_period)

        succeeded: list[str] = []
        failed: list[dict[str, str]] = []

        for period in iter_periods(start_period, end_period):
            try:
                await self.calculator.compute_and_persist(*parse_period(period))
                succeeded.append(period)
                metrics.backfill_periods_total.labels(status="success").inc()
            except Exception as e:
                failed.append({"period": period, "error": str(e)})
                metrics.backfill_periods_total.labels(status="failed").inc()
                logger.exception("metrics_backfill_period_failed", period=period, error=str(e))

        summary = {
            "start_period": start_period,
            "end_period": end_period,
            "periods_processed": len(succeeded) + len(failed),
            "succeeded": succeeded,
            "failed": failed,
        }

        logger.info(
            "metrics_backfill_completed",
            start_period=start_period,
            end_period=end_period,
            succeeded=len(succeeded),
            failed=len(failed),
        )

        return summary
