"""Wiring of the metrics engine services around one session factory."""
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from billing_metrics.config import settings
from billing_metrics.services.backfill import BackfillRunner
from billing_metrics.services.cost_model import CostModel
from billing_metrics.services.health_reporter import HealthReporter
from billing_metrics.services.invoice_service import InvoiceService
from billing_metrics.services.metric_functions import MetricFunctions
from billing_metrics.services.metrics_calculator import MetricsCalculator
from billing_metrics.services.period_locks import PeriodLocks
from billing_metrics.services.recalculation_trigger import RecalculationTrigger
from billing_metrics.services.snapshot_store import SnapshotStore
from billing_metrics.services.source_aggregates import SourceAggregates
from billing_metrics.utils.clock import Clock, utcnow


@dataclass
class MetricsEngine:
    """Every service of the engine, sharing one clock and session factory."""

    aggregates: SourceAggregates
    store: SnapshotStore
    functions: MetricFunctions
    calculator: MetricsCalculator
    trigger: RecalculationTrigger
    backfill: BackfillRunner
    health: HealthReporter
    invoices: InvoiceService
    clock: Clock = utcnow

    @classmethod
    def from_session_factory(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock = utcnow,
        cost_model: Optional[CostModel] = None,
        serialize_period_writes: Optional[bool] = None,
    ) -> "MetricsEngine":
        """
        Build the engine.

        Args:
            session_factory: Factory producing async database sessions
            clock: Time source shared by every service
            cost_model: CAC source (configured fixed amount when omitted)
            serialize_period_writes: Overrides ``settings.serialize_period_writes``
        """
        if serialize_period_writes is None:
            serialize_period_writes = settings.serialize_period_writes

        aggregates = SourceAggregates(session_factory)
        store = SnapshotStore(session_factory, clock=clock)
        functions = MetricFunctions(aggregates, latest_snapshot_provider=store.find_latest)
        calculator = MetricsCalculator(
            functions,
            store,
            aggregates,
            cost_model=cost_model,
            clock=clock,
            period_locks=PeriodLocks() if serialize_period_writes else None,
        )

        return cls(
            aggregates=aggregates,
            store=store,
            functions=functions,
            calculator=calculator,
            trigger=RecalculationTrigger(calculator, aggregates, clock=clock),
            backfill=BackfillRunner(calculator),
            health=HealthReporter(store, aggregates, clock=clock),
            invoices=InvoiceService(session_factory, clock=clock),
            clock=clock,
        )
