"""Integration tests for the metrics snapshot store."""
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from billing_metrics.errors import InvalidPeriodError, SnapshotExistsError, SnapshotNotFoundError
from billing_metrics.models.metrics_snapshot import MetricsSnapshot
from billing_metrics.schemas.metrics_snapshot import MetricsSnapshotCreate, MetricsSnapshotUpdate
from utils.factories import SnapshotFactory


def _payload(**overrides) -> MetricsSnapshotCreate:
    return MetricsSnapshotCreate(**SnapshotFactory.create(overrides))


async def _row_count(session_factory) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count(MetricsSnapshot.id)))
        return result.scalar()


@pytest.mark.asyncio
async def test_upsert_inserts_new_period(metrics_engine, clock) -> None:
    """Test first upsert of a period creates the row with both audit timestamps."""
    snapshot = await metrics_engine.store.upsert(_payload())

    assert snapshot.id is not None
    assert snapshot.period == "2024-03"
    assert snapshot.mrr == Decimal("1000.00")
    assert snapshot.arr == Decimal("12000.00")
    assert snapshot.created_at == clock.now
    assert snapshot.updated_at == clock.now


@pytest.mark.asyncio
async def test_upsert_overwrites_existing_period(metrics_engine, session_factory, clock) -> None:
    """Test a second upsert replaces values, keeps created_at and advances updated_at."""
    first = await metrics_engine.store.upsert(_payload())
    created_at = first.created_at

    clock.advance(hours=2)
    second = await metrics_engine.store.upsert(
        _payload(mrr=Decimal("1500.00"), churn_rate=None, collection_rate=Decimal("50.0000"))
    )

    assert second.id == first.id
    assert second.mrr == Decimal("1500.00")
    assert second.arr == Decimal("18000.00")
    assert second.churn_rate is None
    assert second.collection_rate == Decimal("50.0000")
    assert second.created_at == created_at
    assert second.updated_at == clock.now
    assert await _row_count(session_factory) == 1


@pytest.mark.asyncio
async def test_upsert_retries_unique_violation_as_update(metrics_engine, monkeypatch) -> None:
    """Test a concurrent insert conflict is retried once and the last writer wins."""
    store = metrics_engine.store
    await store.upsert(_payload())

    original_write = store._write
    calls = []

    async def conflicting_write(period, values):
        calls.append(period)
        if len(calls) == 1:
            raise IntegrityError("INSERT INTO billing_metrics", {}, Exception("UNIQUE constraint failed"))
        return await original_write(period, values)

    monkeypatch.setattr(store, "_write", conflicting_write)

    snapshot = await store.upsert(_payload(mrr=Decimal("2000.00")))

    assert calls == ["2024-03", "2024-03"]
    assert snapshot.mrr == Decimal("2000.00")


@pytest.mark.asyncio
async def test_create_rejects_existing_period(metrics_engine) -> None:
    """Test administrative create of an existing period fails."""
    await metrics_engine.store.create(_payload())

    with pytest.raises(SnapshotExistsError):
        await metrics_engine.store.create(_payload(mrr=Decimal("1.00")))


@pytest.mark.asyncio
async def test_update_missing_period_raises(metrics_engine) -> None:
    with pytest.raises(SnapshotNotFoundError):
        await metrics_engine.store.update("2024-03", MetricsSnapshotUpdate(mrr=Decimal("10.00")))


@pytest.mark.asyncio
async def test_update_mrr_derives_arr(metrics_engine) -> None:
    """Test changing only MRR keeps ARR at twelve times MRR."""
    await metrics_engine.store.create(_payload())

    snapshot = await metrics_engine.store.update("2024-03", MetricsSnapshotUpdate(mrr=Decimal("250.00")))

    assert snapshot.mrr == Decimal("250.00")
    assert snapshot.arr == Decimal("3000.00")
    # Untouched fields keep their values
    assert snapshot.monthly_revenue == Decimal("800.00")


@pytest.mark.asyncio
async def test_update_rejects_inconsistent_arr(metrics_engine) -> None:
    await metrics_engine.store.create(_payload())

    with pytest.raises(ValueError, match="arr must equal mrr"):
        await metrics_engine.store.update("2024-03", MetricsSnapshotUpdate(arr=Decimal("1.00")))

    stored = await metrics_engine.store.find_by_period("2024-03")
    assert stored.arr == Decimal("12000.00")


@pytest.mark.asyncio
async def test_update_rejects_clearing_required_field(metrics_engine) -> None:
    await metrics_engine.store.create(_payload())

    with pytest.raises(ValueError, match="cannot be cleared"):
        await metrics_engine.store.update("2024-03", MetricsSnapshotUpdate(monthly_revenue=None))


@pytest.mark.asyncio
async def test_update_can_clear_optional_field(metrics_engine) -> None:
    await metrics_engine.store.create(_payload())

    snapshot = await metrics_engine.store.update("2024-03", MetricsSnapshotUpdate(ltv=None))

    assert snapshot.ltv is None


@pytest.mark.asyncio
async def test_finders(metrics_engine) -> None:
    """Test latest, range and last-N lookups order by period."""
    store = metrics_engine.store
    for period in ["2024-02", "2023-12", "2024-03", "2024-01"]:
        await store.upsert(_payload(period=period))

    latest = await store.find_latest()
    assert latest.period == "2024-03"

    in_range = await store.find_range("2024-01", "2024-02")
    assert [s.period for s in in_range] == ["2024-01", "2024-02"]

    last_two = await store.find_last_n(2)
    assert [s.period for s in last_two] == ["2024-03", "2024-02"]

    assert await store.find_last_n(0) == []
    assert (await store.find_by_period("2023-12")).period == "2023-12"
    assert await store.find_by_period("2023-11") is None


@pytest.mark.asyncio
async def test_find_latest_empty_store(metrics_engine) -> None:
    assert await metrics_engine.store.find_latest() is None


@pytest.mark.asyncio
async def test_find_by_period_validates_key(metrics_engine) -> None:
    with pytest.raises(InvalidPeriodError):
        await metrics_engine.store.find_by_period("2024-13")
