"""
Snapshot store for pre-calculated billing metrics.

One row per period. ``upsert`` is the only write used by the engine; it
replaces every value field of an existing row in a single transaction so
readers never see a partially updated snapshot.
"""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from billing_metrics.errors import SnapshotExistsError, SnapshotNotFoundError
from billing_metrics.models.metrics_snapshot import VALUE_FIELDS, MetricsSnapshot
from billing_metrics.schemas.metrics_snapshot import (
    ARR_MONTHS,
    MetricsSnapshotCreate,
    MetricsSnapshotUpdate,
)
from billing_metrics.utils.clock import Clock, utcnow
from billing_metrics.utils.money import to_money
from billing_metrics.utils.periods import validate_period

logger = structlog.get_logger(__name__)

NON_NULLABLE_FIELDS = frozenset(
    column.name
    for column in MetricsSnapshot.__table__.columns
    if column.name in VALUE_FIELDS and not column.nullable
)


class SnapshotStore:
    """Persistence of MetricsSnapshot rows keyed by period."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], clock: Clock = utcnow):
        """
        Initialize snapshot store.

        Args:
            session_factory: Factory producing async database sessions
            clock: Time source for audit timestamps
        """
        self.session_factory = session_factory
        self.clock = clock

    async def upsert(self, payload: MetricsSnapshotCreate) -> MetricsSnapshot:
        """
        Insert the snapshot for ``payload.period`` or overwrite the existing one.

        A unique violation from a concurrent insert of the same period is
        retried once as an update, so the last writer wins.

        Args:
            payload: Complete, validated snapshot values

        Returns:
            Persisted MetricsSnapshot
        """
        values = payload.model_dump(exclude={"period"})
        try:
            return await self._write(payload.period, values)
        except IntegrityError:
            logger.warning("metrics_snapshot_upsert_conflict", period=payload.period)
            return await self._write(payload.period, values)

    async def _write(self, period: str, values: dict) -> MetricsSnapshot:
        async with self.session_factory() as session:
            async with session.begin():
                snapshot = await self._get(session, period)
                now = self.clock()

                if snapshot:
                    for field, value in values.items():
                        setattr(snapshot, field, value)
                    snapshot.updated_at = now
                    event = "metrics_snapshot_updated"
                else:
                    snapshot = MetricsSnapshot(period=period, created_at=now, updated_at=now, **values)
                    session.add(snapshot)
                    event = "metrics_snapshot_created"

            await session.refresh(snapshot)

        logger.info(event, period=period, mrr=float(snapshot.mrr), arr=float(snapshot.arr))
        return snapshot

    async def create(self, payload: MetricsSnapshotCreate) -> MetricsSnapshot:
        """
        Create the snapshot of a period that has none yet.

        Raises:
            SnapshotExistsError: If the period already has a snapshot
        """
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    if await self._get(session, payload.period):
                        raise SnapshotExistsError(payload.period)

                    now = self.clock()
                    snapshot = MetricsSnapshot(
                        period=payload.period,
                        created_at=now,
                        updated_at=now,
                        **payload.model_dump(exclude={"period"}),
                    )
                    session.add(snapshot)
            except IntegrityError as e:
                raise SnapshotExistsError(payload.period) from e

            await session.refresh(snapshot)

        logger.info("metrics_snapshot_created", period=snapshot.period, action="create")
        return snapshot

    async def update(self, period: str, changes: MetricsSnapshotUpdate) -> MetricsSnapshot:
        """
        Apply an administrative partial edit to an existing snapshot.

        ``arr`` follows ``mrr`` when only ``mrr`` is changed.

        Args:
            period: Period key YYYY-MM
            changes: Fields to change; unset fields are left alone

        Returns:
            Updated MetricsSnapshot

        Raises:
            SnapshotNotFoundError: If the period has no snapshot
            ValueError: If the change breaks ``arr == mrr * 12`` or clears a required field
        """
        validate_period(period)
        fields = changes.model_dump(exclude_unset=True)

        cleared = sorted(name for name, value in fields.items() if value is None and name in NON_NULLABLE_FIELDS)
        if cleared:
            raise ValueError(f"Fields cannot be cleared: {', '.join(cleared)}")

        async with self.session_factory() as session:
            async with session.begin():
                snapshot = await self._get(session, period)
                if not snapshot:
                    raise SnapshotNotFoundError(period)

                if "mrr" in fields and "arr" not in fields:
                    fields["arr"] = to_money(fields["mrr"] * ARR_MONTHS)

                mrr = fields.get("mrr", snapshot.mrr)
                arr = fields.get("arr", snapshot.arr)
                if to_money(arr) != to_money(mrr * ARR_MONTHS):
                    raise ValueError(f"arr must equal mrr * {ARR_MONTHS} (mrr={mrr}, arr={arr})")

                for field, value in fields.items():
                    setattr(snapshot, field, value)
                snapshot.updated_at = self.clock()

            await session.refresh(snapshot)

        logger.info("metrics_snapshot_updated", period=period, action="update", fields=sorted(fields))
        return snapshot

    async def find_by_period(self, period: str) -> Optional[MetricsSnapshot]:
        validate_period(period)
        async with self.session_factory() as session:
            return await self._get(session, period)

    async def find_latest(self) -> Optional[MetricsSnapshot]:
        """Snapshot with the greatest period, or None when the store is empty."""
        stmt = select(MetricsSnapshot).order_by(MetricsSnapshot.period.desc()).limit(1)
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    async def find_range(self, start: str, end: str) -> list[MetricsSnapshot]:
        """Snapshots with ``start <= period <= end``, oldest first."""
        validate_period(start)
        validate_period(end)
        stmt = (
            select(MetricsSnapshot)
            .where(MetricsSnapshot.period >= start, MetricsSnapshot.period <= end)
            .order_by(MetricsSnapshot.period.asc())
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def find_last_n(self, n: int) -> list[MetricsSnapshot]:
        """The ``n`` most recent snapshots, newest first."""
        if n <= 0:
            return []
        stmt = select(MetricsSnapshot).order_by(MetricsSnapshot.period.desc()).limit(n)
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    @staticmethod
    async def _get(session: AsyncSession, period: str) -> Optional[MetricsSnapshot]:
        stmt = select(MetricsSnapshot).where(MetricsSnapshot.period == period)
        result = await session.execute(stmt)
        return result.scalars().first()
