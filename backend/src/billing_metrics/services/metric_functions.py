"""
Metric functions for SaaS billing metrics.

Calculations:
- MRR: Sum of monthly prices of active tenants (point-in-time, ignores period)
- ARR: MRR * 12
- Monthly Revenue: Paid invoice amounts with payment date in the month
- Churn Rate: (Tenants cancelled in month / Active tenants at month start) * 100
- ARPU: Monthly revenue / Active tenants
- LTV: ARPU / (Churn rate / 100), read from the latest stored snapshot
- Collection Rate: (Paid invoices issued in month / Invoices issued in month) * 100
- Pending / Overdue: Global count and sum of invoices by status

Churn uses ``status`` plus ``updated_at`` as the cancellation date, which
drifts when a cancelled tenant is edited later. That approximation is kept
and capped at 100%.
"""

from decimal import Decimal
from typing import Awaitable, Callable, Optional

import structlog

from billing_metrics.models.invoice import InvoiceStatus
from billing_metrics.models.metrics_snapshot import MetricsSnapshot
from billing_metrics.services.source_aggregates import SourceAggregates
from billing_metrics.utils.money import percentage, safe_ratio, to_decimal, to_money
from billing_metrics.utils.periods import month_bounds

logger = structlog.get_logger(__name__)

ARR_MONTHS = 12
MAX_CHURN_RATE = Decimal(100)

LatestSnapshotProvider = Callable[[], Awaitable[Optional[MetricsSnapshot]]]


def ltv_from_snapshot(snapshot: Optional[MetricsSnapshot]) -> Decimal:
    """
    Lifetime value from a stored snapshot's ARPU and churn rate.

    Returns 0 when there is no snapshot, ARPU is missing, or churn is zero
    or missing.
    """
    if snapshot is None or snapshot.arpu is None or not snapshot.churn_rate:
        return to_money(0)
    churn_fraction = to_decimal(snapshot.churn_rate) / 100
    return to_money(to_decimal(snapshot.arpu) / churn_fraction)


class MetricFunctions:
    """Individual metric calculations over the source aggregates."""

    def __init__(
        self,
        aggregates: SourceAggregates,
        latest_snapshot_provider: Optional[LatestSnapshotProvider] = None,
    ):
        """
        Initialize metric functions.

        Args:
            aggregates: Read-only tenant/invoice aggregate queries
            latest_snapshot_provider: Coroutine returning the most recent
                snapshot, used by ``calculate_ltv``
        """
        self.aggregates = aggregates
        self.latest_snapshot_provider = latest_snapshot_provider

    async def calculate_mrr(self, year: int, month: int) -> Decimal:
        """MRR from active tenants' monthly prices. The period is accepted but not used."""
        return await self.aggregates.sum_active_monthly_prices()

    async def calculate_arr(self, year: int, month: int) -> Decimal:
        mrr = await self.calculate_mrr(year, month)
        return to_money(mrr * ARR_MONTHS)

    async def calculate_monthly_revenue(self, year: int, month: int) -> Decimal:
        start, end = month_bounds(year, month)
        return await self.aggregates.sum_paid_between(start, end)

    async def calculate_churn_rate(self, year: int, month: int) -> Decimal:
        """
        Calculate churn rate for a month.

        Args:
            year: Calendar year
            month: Calendar month (1-12)

        Returns:
            Churn percentage in [0, 100]; 0 if nobody was active at month start
        """
        start, end = month_bounds(year, month)
        cancelled = await self.aggregates.count_inactive_tenants_updated_between(start, end)
        active_at_start = await self.aggregates.count_active_tenants_created_before(start)

        churn_rate = percentage(cancelled, active_at_start, cap=MAX_CHURN_RATE)

        logger.debug(
            "churn_rate_calculated",
            year=year,
            month=month,
            cancelled=cancelled,
            active_at_start=active_at_start,
            churn_rate=float(churn_rate),
        )

        return churn_rate

    async def calculate_arpu(self, year: int, month: int) -> Decimal:
        revenue = await self.calculate_monthly_revenue(year, month)
        active = await self.aggregates.count_active_tenants()
        return to_money(safe_ratio(revenue, active))

    async def calculate_ltv(self, latest_snapshot: Optional[MetricsSnapshot] = None) -> Decimal:
        """
        Calculate LTV from the latest stored snapshot.

        Args:
            latest_snapshot: Snapshot to derive from; fetched through the
                latest snapshot provider when omitted

        Returns:
            LTV, or 0 when it cannot be derived
        """
        if latest_snapshot is None and self.latest_snapshot_provider is not None:
            latest_snapshot = await self.latest_snapshot_provider()
        return ltv_from_snapshot(latest_snapshot)

    async def calculate_collection_rate(self, year: int, month: int) -> Decimal:
        """Paid share of the invoices issued in the month, by issue date."""
        start, end = month_bounds(year, month)
        issued = await self.aggregates.count_invoices_created_between(start, end)
        paid = await self.aggregates.count_invoices_created_between(start, end, status=InvoiceStatus.PAID)
        return percentage(paid, issued)

    async def calculate_pending_invoices(self) -> int:
        return await self.aggregates.count_invoices_by_status(InvoiceStatus.PENDING)

    async def calculate_pending_value(self) -> Decimal:
        return await self.aggregates.sum_invoices_by_status(InvoiceStatus.PENDING)

    async def calculate_overdue_invoices(self) -> int:
        return await self.aggregates.count_invoices_by_status(InvoiceStatus.OVERDUE)

    async def calculate_overdue_value(self) -> Decimal:
        return await self.aggregates.sum_invoices_by_status(InvoiceStatus.OVERDUE)
