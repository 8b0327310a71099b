"""
Metrics snapshot model for pre-calculated SaaS billing metrics.

One row per calendar month (``period`` = ``YYYY-MM``) holding:
- MRR / ARR and revenue received in the month
- Churn rate, ARPU, LTV and CAC
- Pending / overdue invoice counts and amounts
- Collection rate of invoices issued in the month

Rows are replaced in place on recomputation, never deleted.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String

from billing_metrics.database import Base
from billing_metrics.utils.clock import utcnow

MONEY = Numeric(precision=15, scale=2)
PERCENT = Numeric(precision=9, scale=4)


class MetricsSnapshot(Base):
    """
    Point-in-time billing metrics for one period.

    Values are recomputed from live tenant and invoice data, so an older
    period can change when it is recomputed after late-arriving records.
    """

    __tablename__ = "billing_metrics"

    id = Column(Integer, primary_key=True, autoincrement=True)

    period = Column(
        String(7),
        nullable=False,
        unique=True,
        index=True,
        comment="Calendar month key YYYY-MM",
    )

    # Revenue
    mrr = Column(MONEY, nullable=False, comment="Monthly recurring revenue")
    arr = Column(MONEY, nullable=False, comment="Annual recurring revenue (mrr * 12)")
    monthly_revenue = Column(MONEY, nullable=False, comment="Payments received in the period")

    # Customer health
    churn_rate = Column(PERCENT, nullable=True, comment="Cancelled / active at period start (%)")
    arpu = Column(MONEY, nullable=True, comment="Average revenue per active customer")
    ltv = Column(MONEY, nullable=True, comment="Lifetime value from the latest snapshot")
    cac = Column(MONEY, nullable=True, comment="Customer acquisition cost")

    # Billing operations
    pending_invoice_count = Column(Integer, nullable=False)
    pending_amount = Column(MONEY, nullable=False)
    overdue_invoice_count = Column(Integer, nullable=False)
    overdue_amount = Column(MONEY, nullable=False)
    collection_rate = Column(PERCENT, nullable=True, comment="Paid / issued invoices in the period (%)")

    # Audit fields
    created_at = Column(DateTime, default=utcnow, nullable=False, comment="First computation timestamp")
    updated_at = Column(DateTime, default=utcnow, nullable=False, comment="Last computation timestamp")

    __table_args__ = (
        CheckConstraint("mrr >= 0", name="ck_billing_metrics_mrr_non_negative"),
        CheckConstraint("arr >= 0", name="ck_billing_metrics_arr_non_negative"),
        CheckConstraint("monthly_revenue >= 0", name="ck_billing_metrics_revenue_non_negative"),
        CheckConstraint("pending_invoice_count >= 0", name="ck_billing_metrics_pending_count_non_negative"),
        CheckConstraint("overdue_invoice_count >= 0", name="ck_billing_metrics_overdue_count_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<MetricsSnapshot("
            f"period={self.period}, "
            f"mrr={self.mrr}, "
            f"arr={self.arr}"
            f")>"
        )


# Fields written by every recomputation (everything except identity and audit)
VALUE_FIELDS = (
    "mrr",
    "arr",
    "monthly_revenue",
    "churn_rate",
    "arpu",
    "ltv",
    "cac",
    "pending_invoice_count",
    "pending_amount",
    "overdue_invoice_count",
    "overdue_amount",
    "collection_rate",
)
