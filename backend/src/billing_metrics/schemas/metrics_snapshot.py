"""Pydantic schemas for MetricsSnapshot and the read models built from it."""
from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from billing_metrics.utils.periods import validate_period

ARR_MONTHS = 12


class MetricsSnapshotValues(BaseModel):
    """Value fields shared by snapshot write and read schemas."""

    mrr: Decimal = Field(..., ge=0, description="Monthly recurring revenue")
    arr: Decimal = Field(..., ge=0, description="Annual recurring revenue (mrr * 12)")
    monthly_revenue: Decimal = Field(..., ge=0, description="Payments received in the period")
    churn_rate: Decimal | None = Field(default=None, ge=0, le=100, description="Churn rate (%)")
    arpu: Decimal | None = Field(default=None, ge=0, description="Average revenue per active customer")
    ltv: Decimal | None = Field(default=None, ge=0, description="Customer lifetime value")
    cac: Decimal | None = Field(default=None, ge=0, description="Customer acquisition cost")
    pending_invoice_count: int = Field(..., ge=0)
    pending_amount: Decimal = Field(..., ge=0)
    overdue_invoice_count: int = Field(..., ge=0)
    overdue_amount: Decimal = Field(..., ge=0)
    collection_rate: Decimal | None = Field(default=None, ge=0, le=100, description="Collection rate (%)")


class MetricsSnapshotCreate(MetricsSnapshotValues):
    """Complete payload for creating or replacing the snapshot of a period."""

    period: str = Field(..., pattern=r"^\d{4}-\d{2}$", description="Calendar month YYYY-MM")

    @field_validator("period")
    @classmethod
    def check_period(cls, value: str) -> str:
        return validate_period(value)

    @model_validator(mode="after")
    def check_arr(self) -> "MetricsSnapshotCreate":
        if self.arr != self.mrr * ARR_MONTHS:
            raise ValueError(f"arr must equal mrr * {ARR_MONTHS} (mrr={self.mrr}, arr={self.arr})")
        return self


class MetricsSnapshotUpdate(BaseModel):
    """Partial administrative edit of an existing snapshot."""

    mrr: Decimal | None = Field(default=None, ge=0)
    arr: Decimal | None = Field(default=None, ge=0)
    monthly_revenue: Decimal | None = Field(default=None, ge=0)
    churn_rate: Decimal | None = Field(default=None, ge=0, le=100)
    arpu: Decimal | None = Field(default=None, ge=0)
    ltv: Decimal | None = Field(default=None, ge=0)
    cac: Decimal | None = Field(default=None, ge=0)
    pending_invoice_count: int | None = Field(default=None, ge=0)
    pending_amount: Decimal | None = Field(default=None, ge=0)
    overdue_invoice_count: int | None = Field(default=None, ge=0)
    overdue_amount: Decimal | None = Field(default=None, ge=0)
    collection_rate: Decimal | None = Field(default=None, ge=0, le=100)


class MetricsSnapshot(MetricsSnapshotValues):
    """Schema for returning snapshot data."""

    id: int
    period: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PlanDistribution(BaseModel):
    """Active customers and MRR of one plan."""

    customers: int
    revenue: Decimal


class SaasMetrics(BaseModel):
    """Dashboard view: stored snapshot plus values derived at read time."""

    period: str

    # Revenue
    mrr: Decimal
    arr: Decimal
    monthly_revenue: Decimal
    mrr_growth: Decimal = Field(..., description="MRR change vs previous period (%)")

    # Customers (live counts, not historical)
    total_customers: int
    active_customers: int
    new_customers: int
    cancelled_customers: int
    churn_rate: Decimal
    arpu: Decimal
    ltv: Decimal
    cac: Decimal

    # Billing operations
    pending_invoice_count: int
    pending_amount: Decimal
    overdue_invoice_count: int
    overdue_amount: Decimal
    collection_rate: Decimal

    plan_distribution: dict[str, PlanDistribution]


class MetricsEvolutionPoint(BaseModel):
    """One period of the metrics trend."""

    period: str
    mrr: Decimal
    arr: Decimal
    churn_rate: Decimal
    monthly_revenue: Decimal
    mrr_growth: Decimal


class HealthStatus(str, Enum):
    """Overall billing metrics health classification."""

    HEALTHY = "healthy"
    WARNING = "warning"
    ERROR = "error"


class HealthReport(BaseModel):
    """Result of the consistency checks over source data and the latest snapshot."""

    status: HealthStatus
    issues: list[str] = Field(default_factory=list)
    metrics: MetricsSnapshot | None = None
    last_calculation: datetime | None = None
    checked_at: datetime
