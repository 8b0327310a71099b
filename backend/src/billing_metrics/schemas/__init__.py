"""Pydantic schemas for the billing metrics engine."""

from billing_metrics.schemas.billing_event import BillingEvent, BillingEventType
from billing_metrics.schemas.metrics_snapshot import (
    HealthReport,
    HealthStatus,
    MetricsEvolutionPoint,
    MetricsSnapshot,
    MetricsSnapshotCreate,
    MetricsSnapshotUpdate,
    PlanDistribution,
    SaasMetrics,
)

__all__ = [
    "BillingEvent",
    "BillingEventType",
    "HealthReport",
    "HealthStatus",
    "MetricsEvolutionPoint",
    "MetricsSnapshot",
    "MetricsSnapshotCreate",
    "MetricsSnapshotUpdate",
    "PlanDistribution",
    "SaasMetrics",
]
