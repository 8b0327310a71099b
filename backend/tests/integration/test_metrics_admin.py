"""Integration tests for the metrics administration CLI."""
from decimal import Decimal

import pytest

from metrics_admin import build_parser, run


@pytest.mark.asyncio
async def test_calculate_defaults_to_current_period(metrics_engine, add_tenant) -> None:
    await add_tenant(monthly_price=Decimal("100.00"))
    args = build_parser().parse_args(["--action", "calculate"])

    result = await run(args, metrics_engine)

    assert result["period"] == "2024-03"
    assert result["mrr"] == "100.00"


@pytest.mark.asyncio
async def test_calculate_explicit_period(metrics_engine) -> None:
    args = build_parser().parse_args(["--action", "calculate", "--period", "2023-11"])

    result = await run(args, metrics_engine)

    assert result["period"] == "2023-11"


@pytest.mark.asyncio
async def test_backfill_range(metrics_engine) -> None:
    args = build_parser().parse_args(["--action", "backfill", "--start", "2024-01", "--end", "2024-02"])

    result = await run(args, metrics_engine)

    assert result["succeeded"] == ["2024-01", "2024-02"]


@pytest.mark.asyncio
async def test_health(metrics_engine) -> None:
    args = build_parser().parse_args(["--action", "health"])

    result = await run(args, metrics_engine)

    assert result["status"] == "warning"


@pytest.mark.asyncio
async def test_event_requires_type(metrics_engine) -> None:
    args = build_parser().parse_args(["--action", "event"])

    with pytest.raises(ValueError, match="--event-type"):
        await run(args, metrics_engine)


@pytest.mark.asyncio
async def test_event_tenant_activated(metrics_engine) -> None:
    args = build_parser().parse_args(["--action", "event", "--event-type", "tenant_activated"])

    result = await run(args, metrics_engine)

    assert result == {"recalculated_periods": ["2024-03", "2024-02"]}


@pytest.mark.asyncio
async def test_mark_overdue(metrics_engine) -> None:
    args = build_parser().parse_args(["--action", "mark-overdue"])

    assert await run(args, metrics_engine) == {"overdue_marked": 0}


def test_parser_rejects_unknown_action() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--action", "drop-everything"])
