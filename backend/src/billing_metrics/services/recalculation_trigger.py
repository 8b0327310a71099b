"""
Recalculation trigger: maps business events to snapshot recomputations.

Routing:
- Every event recomputes the current period
- invoice_paid: also the period of the payment date, when it differs
- tenant_activated: also the previous period
"""

from typing import Any, Optional
from uuid import UUID

import structlog

from billing_metrics import metrics
from billing_metrics.models.metrics_snapshot import MetricsSnapshot
from billing_metrics.schemas.billing_event import BillingEvent, BillingEventType
from billing_metrics.services.metrics_calculator import MetricsCalculator
from billing_metrics.services.source_aggregates import SourceAggregates
from billing_metrics.utils.clock import Clock, utcnow
from billing_metrics.utils.periods import parse_period, period_of, previous_period

logger = structlog.get_logger(__name__)


class RecalculationTrigger:
    """Recomputes the snapshots affected by a billing event."""

    def __init__(self, calculator: MetricsCalculator, aggregates: SourceAggregates, clock: Clock = utcnow):
        """
        Initialize recalculation trigger.

        Args:
            calculator: Computes and persists snapshots
            aggregates: Used to look up the invoice of invoice_paid events
            clock: Time source for the current period
        """
        self.calculator = calculator
        self.aggregates = aggregates
        self.clock = clock

    async def process_event(self, event: BillingEvent) -> list[MetricsSnapshot]:
        """
        Recompute every period affected by an event.

        Args:
            event: Business event

        Returns:
            Snapshots written, current period first

        Raises:
            Any error from the lookup or computation, after logging it
        """
        logger.info(
            "processing_billing_event",
            event_type=event.type.value,
            tenant_id=str(event.tenant_id) if event.tenant_id else None,
            invoice_id=str(event.invoice_id) if event.invoice_id else None,
            triggered_by=event.triggered_by,
        )

        try:
            periods = await self._affected_periods(event)
            snapshots = []
            for period in periods:
                snapshots.append(await self.calculator.compute_and_persist(*parse_period(period)))
        except Exception as e:
            metrics.billing_events_total.labels(event_type=event.type.value, status="failed").inc()
            logger.exception("billing_event_failed", event_type=event.type.value, error=str(e))
            raise

        metrics.billing_events_total.labels(event_type=event.type.value, status="success").inc()
        logger.info("billing_event_processed", event_type=event.type.value, periods=periods)
        return snapshots

    async def _affected_periods(self, event: BillingEvent) -> list[str]:
        current = period_of(self.clock())
        periods = [current]

        if event.type == BillingEventType.INVOICE_PAID and event.invoice_id:
            invoice = await self.aggregates.get_invoice(event.invoice_id)
            if invoice and invoice.paid_at:
                payment_period = period_of(invoice.paid_at)
                if payment_period != current:
                    periods.append(payment_period)

        elif event.type == BillingEventType.TENANT_ACTIVATED:
            # New tenants can shift the previous month's churn base
            periods.append(previous_period(current))

        return periods

    async def trigger_invoice_paid(self, invoice_id: UUID, tenant_id: Optional[UUID] = None) -> list[MetricsSnapshot]:
        return await self.process_event(
            BillingEvent(type=BillingEventType.INVOICE_PAID, invoice_id=invoice_id, tenant_id=tenant_id)
        )

    async def trigger_invoice_created(self, invoice_id: UUID, tenant_id: Optional[UUID] = None) -> list[MetricsSnapshot]:
        return await self.process_event(
            BillingEvent(type=BillingEventType.INVOICE_CREATED, invoice_id=invoice_id, tenant_id=tenant_id)
        )

    async def trigger_tenant_activated(self, tenant_id: UUID) -> list[MetricsSnapshot]:
        return await self.process_event(BillingEvent(type=BillingEventType.TENANT_ACTIVATED, tenant_id=tenant_id))

    async def trigger_tenant_cancelled(self, tenant_id: UUID) -> list[MetricsSnapshot]:
        return await self.process_event(BillingEvent(type=BillingEventType.TENANT_CANCELLED, tenant_id=tenant_id))

    async def trigger_plan_changed(self, tenant_id: UUID, old_plan: Any, new_plan: Any) -> list[MetricsSnapshot]:
        return await self.process_event(
            BillingEvent(
                type=BillingEventType.PLAN_CHANGED,
                tenant_id=tenant_id,
                old_value=old_plan,
                new_value=new_plan,
            )
        )

    async def trigger_manual_calculation(self, triggered_by: Optional[str] = None) -> list[MetricsSnapshot]:
        return await self.process_event(BillingEvent(type=BillingEventType.MANUAL_TRIGGER, triggered_by=triggered_by))
