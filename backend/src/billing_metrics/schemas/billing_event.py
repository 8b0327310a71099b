"""Pydantic schemas for business events that trigger metric recalculation."""
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from billing_metrics.utils.clock import utcnow


class BillingEventType(str, Enum):
    """Closed set of events that invalidate metrics snapshots."""

    INVOICE_PAID = "invoice_paid"
    INVOICE_CREATED = "invoice_created"
    TENANT_ACTIVATED = "tenant_activated"
    TENANT_CANCELLED = "tenant_cancelled"
    PLAN_CHANGED = "plan_changed"
    MANUAL_TRIGGER = "manual_trigger"


class BillingEvent(BaseModel):
    """Business event routed to the recalculation trigger."""

    type: BillingEventType
    tenant_id: UUID | None = Field(default=None, description="Tenant the event refers to")
    invoice_id: UUID | None = Field(default=None, description="Invoice the event refers to")
    old_value: Any | None = Field(default=None, description="Previous value (e.g. old plan)")
    new_value: Any | None = Field(default=None, description="New value (e.g. new plan)")
    triggered_by: str | None = Field(default=None, description="User or system that raised the event")
    timestamp: datetime = Field(default_factory=utcnow)
