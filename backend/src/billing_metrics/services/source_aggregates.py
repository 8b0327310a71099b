"""
Read-only aggregate queries over tenants and invoices.

Every query opens its own short-lived session from the session factory, so
callers may run several aggregates concurrently with ``asyncio.gather``.
Datetime ranges are half-open: ``start <= column < end``.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from billing_metrics.models.invoice import Invoice, InvoiceStatus
from billing_metrics.models.tenant import Tenant, TenantPlan, TenantStatus
from billing_metrics.utils.money import to_money

logger = structlog.get_logger(__name__)


class SourceAggregates:
    """Sum/count queries the metric functions are built from."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        """
        Initialize source aggregates.

        Args:
            session_factory: Factory producing async database sessions
        """
        self.session_factory = session_factory

    async def _scalar(self, stmt: Any) -> Any:
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar()

    async def _count(self, stmt: Any) -> int:
        return int(await self._scalar(stmt) or 0)

    async def _sum(self, stmt: Any) -> Decimal:
        return to_money(await self._scalar(stmt))

    # Tenants

    async def sum_active_monthly_prices(self) -> Decimal:
        """Sum of ``monthly_price`` over active tenants with a configured price."""
        stmt = select(func.coalesce(func.sum(Tenant.monthly_price), 0)).where(
            Tenant.status == TenantStatus.ACTIVE,
            Tenant.monthly_price.is_not(None),
        )
        return await self._sum(stmt)

    async def count_tenants(self) -> int:
        return await self._count(select(func.count(Tenant.id)))

    async def count_active_tenants(self) -> int:
        stmt = select(func.count(Tenant.id)).where(Tenant.status == TenantStatus.ACTIVE)
        return await self._count(stmt)

    async def count_active_tenants_created_before(self, moment: datetime) -> int:
        """Active tenants whose ``created_at`` precedes ``moment``."""
        stmt = select(func.count(Tenant.id)).where(
            Tenant.status == TenantStatus.ACTIVE,
            Tenant.created_at < moment,
        )
        return await self._count(stmt)

    async def count_inactive_tenants_updated_between(self, start: datetime, end: datetime) -> int:
        """Non-active tenants last modified within ``[start, end)``."""
        stmt = select(func.count(Tenant.id)).where(
            Tenant.status != TenantStatus.ACTIVE,
            Tenant.updated_at >= start,
            Tenant.updated_at < end,
        )
        return await self._count(stmt)

    async def count_tenants_created_between(self, start: datetime, end: datetime) -> int:
        stmt = select(func.count(Tenant.id)).where(
            Tenant.created_at >= start,
            Tenant.created_at < end,
        )
        return await self._count(stmt)

    async def count_active_tenants_without_price(self) -> int:
        stmt = select(func.count(Tenant.id)).where(
            Tenant.status == TenantStatus.ACTIVE,
            Tenant.monthly_price.is_(None),
        )
        return await self._count(stmt)

    async def active_plan_distribution(self) -> dict[TenantPlan, tuple[int, Decimal]]:
        """
        Active tenant count and MRR grouped by plan.

        Returns:
            Mapping of plan to ``(customers, revenue)``; plans without active
            tenants are absent
        """
        stmt = (
            select(
                Tenant.plan,
                func.count(Tenant.id),
                func.coalesce(func.sum(Tenant.monthly_price), 0),
            )
            .where(Tenant.status == TenantStatus.ACTIVE)
            .group_by(Tenant.plan)
        )

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            rows = result.all()

        return {plan: (int(customers), to_money(revenue)) for plan, customers, revenue in rows}

    # Invoices

    async def sum_paid_between(self, start: datetime, end: datetime) -> Decimal:
        """Amount of paid invoices whose ``paid_at`` lies within ``[start, end)``."""
        stmt = select(func.coalesce(func.sum(Invoice.amount), 0)).where(
            Invoice.status == InvoiceStatus.PAID,
            Invoice.paid_at >= start,
            Invoice.paid_at < end,
        )
        return await self._sum(stmt)

    async def count_invoices_created_between(
        self, start: datetime, end: datetime, status: InvoiceStatus | None = None
    ) -> int:
        """Invoices issued within ``[start, end)``, optionally restricted to one status."""
        stmt = select(func.count(Invoice.id)).where(
            Invoice.created_at >= start,
            Invoice.created_at < end,
        )
        if status is not None:
            stmt = stmt.where(Invoice.status == status)
        return await self._count(stmt)

    async def count_invoices_by_status(self, status: InvoiceStatus) -> int:
        stmt = select(func.count(Invoice.id)).where(Invoice.status == status)
        return await self._count(stmt)

    async def sum_invoices_by_status(self, status: InvoiceStatus) -> Decimal:
        stmt = select(func.coalesce(func.sum(Invoice.amount), 0)).where(Invoice.status == status)
        return await self._sum(stmt)

    async def count_paid_invoices_without_payment_date(self) -> int:
        stmt = select(func.count(Invoice.id)).where(
            Invoice.status == InvoiceStatus.PAID,
            Invoice.paid_at.is_(None),
        )
        return await self._count(stmt)

    async def count_zero_amount_invoices(self) -> int:
        stmt = select(func.count(Invoice.id)).where(Invoice.amount == 0)
        return await self._count(stmt)

    async def get_invoice(self, invoice_id: UUID) -> Invoice | None:
        """Load a single invoice by ID."""
        async with self.session_factory() as session:
            return await session.get(Invoice, invoice_id)
