"""Invoice status maintenance used by the daily routine."""
from datetime import datetime, time

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from billing_metrics import metrics
from billing_metrics.models.invoice import Invoice, InvoiceStatus
from billing_metrics.utils.clock import Clock, utcnow

logger = structlog.get_logger(__name__)


class InvoiceService:
    """Service for invoice status transitions driven by time."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], clock: Clock = utcnow):
        self.session_factory = session_factory
        self.clock = clock

    async def mark_overdue(self, now: datetime | None = None) -> int:
        """
        Move pending invoices whose due date precedes today to overdue.

        An invoice due today is not overdue yet.

        Args:
            now: Reference time; the injected clock when omitted

        Returns:
            Number of invoices marked overdue
        """
        now = now or self.clock()
        today_start = datetime.combine(now.date(), time.min)

        stmt = (
            update(Invoice)
            .where(
                Invoice.status == InvoiceStatus.PENDING,
                Invoice.due_date < today_start,
            )
            .values(status=InvoiceStatus.OVERDUE, updated_at=now)
            .execution_options(synchronize_session=False)
        )

        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(stmt)
                marked = result.rowcount or 0

        metrics.overdue_invoices_marked_total.inc(marked)

        logger.info("invoices_marked_overdue", count=marked, cutoff=today_start.isoformat())
        return marked
