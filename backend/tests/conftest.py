"""Pytest configuration and fixtures for async testing."""
import os

# Settings are read at import time; keep the module-level engine off PostgreSQL
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./billing_metrics_test.db"

from datetime import datetime
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import billing_metrics.models  # noqa: F401  registers every table on Base.metadata
from billing_metrics.database import Base
from billing_metrics.engine import MetricsEngine
from billing_metrics.models.invoice import Invoice
from billing_metrics.models.tenant import Tenant, TenantStatus
from utils.factories import FakeClock, InvoiceFactory, TenantFactory

# Reference "now" for every test: mid-March 2024
NOW = datetime(2024, 3, 15, 12, 0, 0)


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """
    Create a fresh on-disk SQLite database for each test.

    Yields:
        AsyncEngine: Engine with all tables created
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'billing_metrics.db'}",
        echo=False,
        poolclass=NullPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    """
    Session for seeding source data.

    Yields:
        AsyncSession: Database session for testing
    """
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture(scope="function")
def metrics_engine(session_factory: async_sessionmaker[AsyncSession], clock: FakeClock) -> MetricsEngine:
    """
    Metrics engine wired to the test database and the fake clock.

    Returns:
        MetricsEngine: Engine without per-period serialization
    """
    return MetricsEngine.from_session_factory(session_factory, clock=clock, serialize_period_writes=False)


@pytest.fixture(scope="function")
def add_tenant(db_session: AsyncSession):
    """
    Insert a tenant built by TenantFactory.

    Returns:
        Coroutine function taking field overrides and returning the Tenant
    """

    async def _add_tenant(**overrides) -> Tenant:
        tenant = Tenant(**TenantFactory.create(overrides))
        db_session.add(tenant)
        await db_session.commit()
        return tenant

    return _add_tenant


@pytest.fixture(scope="function")
def add_invoice(db_session: AsyncSession, add_tenant):
    """
    Insert an invoice built by InvoiceFactory.

    Invoices without a ``tenant_id`` share one inactive tenant, which does
    not count towards MRR, active customers or churn of 2024 periods.

    Returns:
        Coroutine function taking field overrides and returning the Invoice
    """
    shared: dict[str, Tenant] = {}

    async def _add_invoice(**overrides) -> Invoice:
        if "tenant_id" not in overrides:
            if "tenant" not in shared:
                shared["tenant"] = await add_tenant(status=TenantStatus.INACTIVE, monthly_price=None)
            overrides["tenant_id"] = shared["tenant"].id
        invoice = Invoice(**InvoiceFactory.create(overrides))
        db_session.add(invoice)
        await db_session.commit()
        return invoice

    return _add_invoice
