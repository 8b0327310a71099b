"""Unit tests for per-period write serialization."""
import asyncio

import pytest

from billing_metrics.services.period_locks import PeriodLocks


@pytest.mark.asyncio
async def test_same_period_runs_one_at_a_time() -> None:
    locks = PeriodLocks()
    events = []

    async def job(name: str) -> None:
        async with locks.hold("2024-03"):
            events.append(f"{name}_start")
            await asyncio.sleep(0.01)
            events.append(f"{name}_end")

    await asyncio.gather(job("a"), job("b"))

    assert events == ["a_start", "a_end", "b_start", "b_end"]


@pytest.mark.asyncio
async def test_different_periods_do_not_block() -> None:
    locks = PeriodLocks()

    async with locks.hold("2024-03"):
        assert locks.is_locked("2024-03")
        assert not locks.is_locked("2024-02")

        async with locks.hold("2024-02"):
            assert locks.is_locked("2024-02")

    assert not locks.is_locked("2024-03")
