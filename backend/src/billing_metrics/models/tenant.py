"""Tenant model: a municipality subscribed to the platform."""
import enum

from sqlalchemy import Column, Enum as SQLEnum, Index, Numeric, String
from sqlalchemy.orm import relationship

from billing_metrics.models.base import Base, enum_values


class TenantStatus(enum.Enum):
    """Subscription status of a tenant."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class TenantPlan(enum.Enum):
    """Commercial plan of a tenant."""

    BASIC = "basic"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class Tenant(Base):
    """
    Subscribing tenant.

    Read-only source for the metrics engine: ``monthly_price`` of active
    tenants makes up MRR, while ``status`` together with ``created_at`` and
    ``updated_at`` approximates activations and cancellations.
    """

    __tablename__ = "tenants"

    tenant_code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    city = Column(String, nullable=True)
    state = Column(String(2), nullable=True)
    plan = Column(SQLEnum(TenantPlan, values_callable=enum_values), nullable=False, default=TenantPlan.BASIC, index=True)
    status = Column(SQLEnum(TenantStatus, values_callable=enum_values), nullable=False, default=TenantStatus.ACTIVE, index=True)
    monthly_price = Column(Numeric(precision=12, scale=2), nullable=True)  # NULL = billing not configured

    # Relationships
    invoices = relationship("Invoice", back_populates="tenant")

    __table_args__ = (
        Index("ix_tenants_status_created_at", "status", "created_at"),
        Index("ix_tenants_status_updated_at", "status", "updated_at"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Tenant(id={self.id}, code={self.tenant_code}, status={self.status.value})>"
