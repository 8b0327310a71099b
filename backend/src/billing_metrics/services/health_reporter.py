"""
Health reporting for billing metrics.

Checks:
- A snapshot has been calculated at all
- The latest snapshot was updated within the staleness window
- Active tenants have a monthly price configured
- Paid invoices carry a payment date
- No invoice has a zero amount

Status: healthy (no issues), warning (up to the configured maximum), error
(more issues, or the report itself failed).
"""

import asyncio
from datetime import timedelta

import structlog

from billing_metrics import metrics
from billing_metrics.config import settings
from billing_metrics.schemas.metrics_snapshot import HealthReport, HealthStatus
from billing_metrics.schemas.metrics_snapshot import MetricsSnapshot as MetricsSnapshotSchema
from billing_metrics.services.snapshot_store import SnapshotStore
from billing_metrics.services.source_aggregates import SourceAggregates
from billing_metrics.utils.clock import Clock, utcnow

logger = structlog.get_logger(__name__)


class HealthReporter:
    """Read-only consistency checks over source data and stored snapshots."""

    def __init__(self, store: SnapshotStore, aggregates: SourceAggregates, clock: Clock = utcnow):
        self.store = store
        self.aggregates = aggregates
        self.clock = clock

    async def get_health_report(self) -> HealthReport:
        """
        Build the health report.

        Never raises: a failure while checking is reported as an error
        status with the failure as its only issue.
        """
        checked_at = self.clock()

        try:
            issues: list[str] = []

            latest = await self.store.find_latest()
            if latest is None:
                issues.append("No metrics snapshot has been calculated")
            else:
                age = checked_at - latest.updated_at
                if age > timedelta(hours=settings.metrics_stale_after_hours):
                    hours = int(age.total_seconds() // 3600)
                    issues.append(f"Metrics are stale: last calculation for {latest.period} was {hours}h ago")

            issues.extend(await self.validate_data_consistency())
        except Exception as e:
            logger.exception("billing_health_check_failed", error=str(e))
            return HealthReport(
                status=HealthStatus.ERROR,
                issues=[f"Health check failed: {e}"],
                checked_at=checked_at,
            )

        if not issues:
            status = HealthStatus.HEALTHY
        elif len(issues) <= settings.health_warning_max_issues:
            status = HealthStatus.WARNING
        else:
            status = HealthStatus.ERROR

        metrics.health_issues_gauge.set(len(issues))
        logger.info("billing_health_checked", status=status.value, issue_count=len(issues))

        return HealthReport(
            status=status,
            issues=issues,
            metrics=MetricsSnapshotSchema.model_validate(latest) if latest else None,
            last_calculation=latest.updated_at if latest else None,
            checked_at=checked_at,
        )

    async def validate_data_consistency(self) -> list[str]:
        """
        Look for source records that distort the metrics.

        Returns:
            Human-readable issue descriptions, empty when consistent
        """
        unpriced, unpaid_dates, zero_amount = await asyncio.gather(
            self.aggregates.count_active_tenants_without_price(),
            self.aggregates.count_paid_invoices_without_payment_date(),
            self.aggregates.count_zero_amount_invoices(),
        )

        issues = []
        if unpriced:
            issues.append(f"{unpriced} active tenant(s) without a monthly price")
        if unpaid_dates:
            issues.append(f"{unpaid_dates} paid invoice(s) without a payment date")
        if zero_amount:
            issues.append(f"{zero_amount} invoice(s) with zero amount")

        for issue in issues:
            logger.warning("data_consistency_issue", issue=issue)

        return issues
