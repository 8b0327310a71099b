"""Unit tests for snapshot and event schemas."""
from decimal import Decimal

import pytest
from pydantic import ValidationError

from billing_metrics.schemas.billing_event import BillingEvent, BillingEventType
from billing_metrics.schemas.metrics_snapshot import MetricsSnapshotCreate, MetricsSnapshotUpdate
from utils.factories import SnapshotFactory


def test_snapshot_create_accepts_consistent_payload() -> None:
    payload = MetricsSnapshotCreate(**SnapshotFactory.create())

    assert payload.period == "2024-03"
    assert payload.arr == payload.mrr * 12


def test_snapshot_create_rejects_arr_mismatch() -> None:
    with pytest.raises(ValidationError, match="arr must equal mrr"):
        MetricsSnapshotCreate(**SnapshotFactory.create({"arr": Decimal("100.00")}))


@pytest.mark.parametrize("period", ["2024-13", "2024-3", "2024_03"])
def test_snapshot_create_rejects_invalid_period(period: str) -> None:
    with pytest.raises(ValidationError):
        MetricsSnapshotCreate(**SnapshotFactory.create({"period": period}))


@pytest.mark.parametrize(
    "field",
    ["mrr", "monthly_revenue", "pending_amount", "overdue_amount", "pending_invoice_count", "arpu"],
)
def test_snapshot_create_rejects_negative_values(field: str) -> None:
    with pytest.raises(ValidationError):
        MetricsSnapshotCreate(**SnapshotFactory.create({field: -1}))


def test_snapshot_create_rejects_percentage_above_100() -> None:
    with pytest.raises(ValidationError):
        MetricsSnapshotCreate(**SnapshotFactory.create({"collection_rate": Decimal("100.5")}))


def test_snapshot_update_tracks_only_set_fields() -> None:
    changes = MetricsSnapshotUpdate(mrr=Decimal("10.00"))

    assert changes.model_dump(exclude_unset=True) == {"mrr": Decimal("10.00")}


def test_billing_event_defaults() -> None:
    event = BillingEvent(type="manual_trigger")

    assert event.type is BillingEventType.MANUAL_TRIGGER
    assert event.tenant_id is None
    assert event.timestamp is not None


def test_billing_event_rejects_unknown_type() -> None:
    with pytest.raises(ValidationError):
        BillingEvent(type="invoice_refunded")
