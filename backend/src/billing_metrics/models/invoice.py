"""Invoice model for tenant billing."""
import enum

from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, Index, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from billing_metrics.models.base import Base, enum_values
from billing_metrics.models.tenant import TenantPlan


class InvoiceStatus(enum.Enum):
    """Invoice lifecycle status."""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class Invoice(Base):
    """
    Tenant invoice.

    ``created_at`` is the issue date used by the collection rate, ``paid_at``
    the payment date used by monthly revenue.
    """

    __tablename__ = "invoices"

    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    number = Column(String, nullable=False, unique=True, index=True)  # INV-2024-000001
    billing_period = Column(String(7), nullable=False)  # YYYY-MM the invoice charges for
    amount = Column(Numeric(precision=12, scale=2), nullable=False)
    status = Column(SQLEnum(InvoiceStatus, values_callable=enum_values), nullable=False, default=InvoiceStatus.PENDING, index=True)
    due_date = Column(DateTime, nullable=False, index=True)
    paid_at = Column(DateTime, nullable=True)
    payment_method = Column(String, nullable=True)
    plan = Column(SQLEnum(TenantPlan, values_callable=enum_values), nullable=False, default=TenantPlan.BASIC)

    # Relationships
    tenant = relationship("Tenant", back_populates="invoices")

    __table_args__ = (
        Index("ix_invoices_status_paid_at", "status", "paid_at"),
        Index("ix_invoices_status_due_date", "status", "due_date"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Invoice(id={self.id}, number={self.number}, status={self.status.value}, amount={self.amount})>"
