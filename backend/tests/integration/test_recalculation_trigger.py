"""Integration tests for event-driven recalculation."""
from datetime import datetime
from uuid import uuid4

import pytest

from billing_metrics.models.invoice import InvoiceStatus
from billing_metrics.models.tenant import TenantPlan
from billing_metrics.schemas.billing_event import BillingEvent, BillingEventType


@pytest.mark.asyncio
async def test_invoice_paid_in_earlier_month_recomputes_both_periods(metrics_engine, add_invoice) -> None:
    """Test a payment dated 2024-01-15 processed in 2024-03 recomputes 2024-03 and 2024-01."""
    invoice = await add_invoice(
        status=InvoiceStatus.PAID,
        created_at=datetime(2024, 1, 2),
        paid_at=datetime(2024, 1, 15),
    )

    snapshots = await metrics_engine.trigger.trigger_invoice_paid(invoice.id)

    assert [s.period for s in snapshots] == ["2024-03", "2024-01"]
    assert await metrics_engine.store.find_by_period("2024-01") is not None


@pytest.mark.asyncio
async def test_invoice_paid_in_current_month_recomputes_once(metrics_engine, add_invoice) -> None:
    invoice = await add_invoice(status=InvoiceStatus.PAID, paid_at=datetime(2024, 3, 2))

    snapshots = await metrics_engine.trigger.trigger_invoice_paid(invoice.id)

    assert [s.period for s in snapshots] == ["2024-03"]


@pytest.mark.asyncio
async def test_invoice_paid_for_unknown_invoice_recomputes_current(metrics_engine) -> None:
    snapshots = await metrics_engine.trigger.trigger_invoice_paid(uuid4())

    assert [s.period for s in snapshots] == ["2024-03"]


@pytest.mark.asyncio
async def test_tenant_activated_recomputes_previous_period(metrics_engine, add_tenant) -> None:
    tenant = await add_tenant()

    snapshots = await metrics_engine.trigger.trigger_tenant_activated(tenant.id)

    assert [s.period for s in snapshots] == ["2024-03", "2024-02"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "event",
    [
        BillingEvent(type=BillingEventType.INVOICE_CREATED, invoice_id=uuid4()),
        BillingEvent(type=BillingEventType.TENANT_CANCELLED, tenant_id=uuid4()),
        BillingEvent(
            type=BillingEventType.PLAN_CHANGED,
            tenant_id=uuid4(),
            old_value=TenantPlan.BASIC.value,
            new_value=TenantPlan.PREMIUM.value,
        ),
        BillingEvent(type=BillingEventType.MANUAL_TRIGGER, triggered_by="admin@example.com"),
    ],
)
async def test_other_events_recompute_current_period_only(metrics_engine, event: BillingEvent) -> None:
    snapshots = await metrics_engine.trigger.process_event(event)

    assert [s.period for s in snapshots] == ["2024-03"]


@pytest.mark.asyncio
async def test_convenience_triggers(metrics_engine) -> None:
    trigger = metrics_engine.trigger
    tenant_id = uuid4()

    assert len(await trigger.trigger_invoice_created(uuid4(), tenant_id=tenant_id)) == 1
    assert len(await trigger.trigger_tenant_cancelled(tenant_id)) == 1
    assert len(await trigger.trigger_plan_changed(tenant_id, "basic", "enterprise")) == 1
    assert len(await trigger.trigger_manual_calculation(triggered_by="ops")) == 1


@pytest.mark.asyncio
async def test_current_period_follows_clock(metrics_engine, clock) -> None:
    clock.now = datetime(2024, 5, 1, 0, 0, 1)

    snapshots = await metrics_engine.trigger.trigger_manual_calculation()

    assert [s.period for s in snapshots] == ["2024-05"]


@pytest.mark.asyncio
async def test_calculation_error_propagates(metrics_engine, monkeypatch) -> None:
    async def failing_compute(year, month):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(metrics_engine.calculator, "compute_and_persist", failing_compute)

    with pytest.raises(RuntimeError, match="database unavailable"):
        await metrics_engine.trigger.trigger_manual_calculation()
