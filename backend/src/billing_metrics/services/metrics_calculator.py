"""
Metrics calculator: computes a period's snapshot and persists it.

A computation reads the latest stored snapshot once (for LTV), runs the
independent metric functions concurrently, then writes the complete
snapshot with a single upsert. Nothing is written if any read fails.
"""

import asyncio
from decimal import Decimal
from typing import Optional

import structlog

from billing_metrics import metrics
from billing_metrics.config import settings
from billing_metrics.models.metrics_snapshot import MetricsSnapshot
from billing_metrics.models.tenant import TenantPlan
from billing_metrics.schemas.metrics_snapshot import (
    ARR_MONTHS,
    MetricsEvolutionPoint,
    MetricsSnapshotCreate,
    PlanDistribution,
    SaasMetrics,
)
from billing_metrics.services.cost_model import CostModel, FixedCostModel
from billing_metrics.services.metric_functions import MetricFunctions
from billing_metrics.services.period_locks import PeriodLocks
from billing_metrics.services.snapshot_store import SnapshotStore
from billing_metrics.services.source_aggregates import SourceAggregates
from billing_metrics.tracing import get_tracer
from billing_metrics.utils.clock import Clock, utcnow
from billing_metrics.utils.money import to_decimal, to_money, to_percentage
from billing_metrics.utils.periods import (
    format_period,
    month_bounds,
    parse_period,
    period_of,
    previous_period,
    validate_period,
)

logger = structlog.get_logger(__name__)
tracer = get_tracer(__name__)


def mrr_growth(current: Decimal, previous: Optional[Decimal]) -> Decimal:
    """Percentage change of MRR; 0 when there is no previous value or it is 0."""
    if not previous:
        return to_percentage(0)
    current, previous = to_decimal(current), to_decimal(previous)
    return to_percentage((current - previous) / previous * 100)


class MetricsCalculator:
    """
    Computes and stores billing metrics snapshots.

    Used by the recalculation trigger, historical backfill and daily
    maintenance, and serves the dashboard read models.
    """

    def __init__(
        self,
        functions: MetricFunctions,
        store: SnapshotStore,
        aggregates: SourceAggregates,
        cost_model: Optional[CostModel] = None,
        clock: Clock = utcnow,
        period_locks: Optional[PeriodLocks] = None,
    ):
        """
        Initialize metrics calculator.

        Args:
            functions: Metric functions over the source aggregates
            store: Snapshot persistence
            aggregates: Source aggregates for the read models
            cost_model: CAC source (defaults to the configured fixed amount)
            clock: Time source used to resolve the current period
            period_locks: When given, computations of one period run one at a time
        """
        self.functions = functions
        self.store = store
        self.aggregates = aggregates
        self.cost_model = cost_model or FixedCostModel()
        self.clock = clock
        self.period_locks = period_locks

    async def compute_and_persist(self, year: int, month: int) -> MetricsSnapshot:
        """
        Compute every metric of a period and upsert its snapshot.

        Args:
            year: Calendar year
            month: Calendar month (1-12)

        Returns:
            Persisted MetricsSnapshot

        Raises:
            InvalidPeriodError: If the month is out of range (before any I/O)
        """
        period = format_period(year, month)

        if self.period_locks is None:
            return await self._compute(period, year, month)

        async with self.period_locks.hold(period):
            return await self._compute(period, year, month)

    async def _compute(self, period: str, year: int, month: int) -> MetricsSnapshot:
        logger.info("calculating_metrics_snapshot", period=period)

        with tracer.start_as_current_span("compute_metrics_snapshot") as span:
            span.set_attribute("billing.period", period)

            try:
                with metrics.snapshot_duration_seconds.time():
                    ltv = await self.functions.calculate_ltv()

                    (
                        mrr,
                        monthly_revenue,
                        churn_rate,
                        arpu,
                        collection_rate,
                        pending_count,
                        pending_amount,
                        overdue_count,
                        overdue_amount,
                        cac,
                    ) = await asyncio.gather(
                        self.functions.calculate_mrr(year, month),
                        self.functions.calculate_monthly_revenue(year, month),
                        self.functions.calculate_churn_rate(year, month),
                        self.functions.calculate_arpu(year, month),
                        self.functions.calculate_collection_rate(year, month),
                        self.functions.calculate_pending_invoices(),
                        self.functions.calculate_pending_value(),
                        self.functions.calculate_overdue_invoices(),
                        self.functions.calculate_overdue_value(),
                        self.cost_model.customer_acquisition_cost(year, month),
                    )

                    payload = MetricsSnapshotCreate(
                        period=period,
                        mrr=to_money(mrr),
                        arr=to_money(mrr * ARR_MONTHS),
                        monthly_revenue=to_money(monthly_revenue),
                        churn_rate=churn_rate,
                        arpu=to_money(arpu),
                        ltv=ltv,
                        cac=to_money(cac),
                        pending_invoice_count=pending_count,
                        pending_amount=to_money(pending_amount),
                        overdue_invoice_count=overdue_count,
                        overdue_amount=to_money(overdue_amount),
                        collection_rate=collection_rate,
                    )

                    snapshot = await self.store.upsert(payload)
            except Exception as e:
                metrics.snapshot_failures_total.inc()
                logger.exception("metrics_calculation_failed", period=period, error=str(e))
                raise

        metrics.snapshots_computed_total.inc()
        if period == period_of(self.clock()):
            metrics.mrr_amount.labels(currency=settings.currency).set(float(snapshot.mrr))
            metrics.arr_amount.labels(currency=settings.currency).set(float(snapshot.arr))
            metrics.churn_rate_percent.set(float(snapshot.churn_rate or 0))

        logger.info(
            "metrics_snapshot_saved",
            period=period,
            mrr=float(snapshot.mrr),
            arr=float(snapshot.arr),
            monthly_revenue=float(snapshot.monthly_revenue),
            churn_rate=float(snapshot.churn_rate or 0),
            collection_rate=float(snapshot.collection_rate or 0),
        )

        return snapshot

    async def get_saas_metrics(self, period: Optional[str] = None) -> SaasMetrics:
        """
        Dashboard metrics for a period, or for the latest stored one.

        When the requested period has no snapshot, the current calendar
        month is computed and returned instead of the requested one.

        Args:
            period: Period key YYYY-MM; latest snapshot when omitted

        Returns:
            SaasMetrics for the period actually served
        """
        if period is not None:
            validate_period(period)
            snapshot = await self.store.find_by_period(period)
        else:
            snapshot = await self.store.find_latest()

        if snapshot is None:
            now = self.clock()
            logger.warning(
                "metrics_period_fallback_to_current",
                requested_period=period,
                period=period_of(now),
            )
            snapshot = await self.compute_and_persist(now.year, now.month)

        previous = await self.store.find_by_period(previous_period(snapshot.period))

        start, end = month_bounds(*parse_period(snapshot.period))
        total, active, new, distribution = await asyncio.gather(
            self.aggregates.count_tenants(),
            self.aggregates.count_active_tenants(),
            self.aggregates.count_tenants_created_between(start, end),
            self.aggregates.active_plan_distribution(),
        )

        plan_distribution = {}
        for plan in TenantPlan:
            customers, revenue = distribution.get(plan, (0, to_money(0)))
            plan_distribution[plan.value] = PlanDistribution(customers=customers, revenue=revenue)

        return SaasMetrics(
            period=snapshot.period,
            mrr=snapshot.mrr,
            arr=snapshot.arr,
            monthly_revenue=snapshot.monthly_revenue,
            mrr_growth=mrr_growth(snapshot.mrr, previous.mrr if previous else None),
            total_customers=total,
            active_customers=active,
            new_customers=new,
            cancelled_customers=total - active,
            churn_rate=to_percentage(snapshot.churn_rate),
            arpu=to_money(snapshot.arpu),
            ltv=to_money(snapshot.ltv),
            cac=to_money(snapshot.cac),
            pending_invoice_count=snapshot.pending_invoice_count,
            pending_amount=snapshot.pending_amount,
            overdue_invoice_count=snapshot.overdue_invoice_count,
            overdue_amount=snapshot.overdue_amount,
            collection_rate=to_percentage(snapshot.collection_rate),
            plan_distribution=plan_distribution,
        )

    async def get_metrics_evolution(self, months: int = 6) -> list[MetricsEvolutionPoint]:
        """
        Trend of the most recent stored periods.

        Args:
            months: Number of periods to return

        Returns:
            Points oldest first; growth is relative to the preceding point
        """
        snapshots = list(reversed(await self.store.find_last_n(months)))

        points = []
        previous_mrr = None
        for snapshot in snapshots:
            points.append(
                MetricsEvolutionPoint(
                    period=snapshot.period,
                    mrr=snapshot.mrr,
                    arr=snapshot.arr,
                    churn_rate=to_percentage(snapshot.churn_rate),
                    monthly_revenue=snapshot.monthly_revenue,
                    mrr_growth=mrr_growth(snapshot.mrr, previous_mrr),
                )
            )
            previous_mrr = snapshot.mrr

        return points
