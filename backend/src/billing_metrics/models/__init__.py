"""SQLAlchemy ORM models for the billing metrics engine."""
# Import all models here to ensure they are registered with Alembic

from billing_metrics.models.base import Base
from billing_metrics.models.tenant import Tenant, TenantPlan, TenantStatus
from billing_metrics.models.invoice import Invoice, InvoiceStatus
from billing_metrics.models.metrics_snapshot import MetricsSnapshot

__all__ = [
    "Base",
    "Tenant",
    "TenantPlan",
    "TenantStatus",
    "Invoice",
    "InvoiceStatus",
    "MetricsSnapshot",
]
