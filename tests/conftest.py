"""Shared test fixtures — async DB, client, ledger and employee factories.

Reusable across all test modules (holidays, entitlements, ledger, reports,
employees). Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Point settings at an in-memory database before anything imports them
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

from datetime import date
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from leave_ledger.database import Base, get_db
from leave_ledger.main import create_app

# Import ALL model modules so the metadata knows every table
import leave_ledger.common.audit  # noqa: F401
import leave_ledger.core_hr.models  # noqa: F401

from leave_ledger.core_hr.schemas import EmployeeCreate
from leave_ledger.leave.entitlements import seed_leave_types
from leave_ledger.leave.schemas import EmployeeLedger, LeaveEntry


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from leave_ledger.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Factories ───────────────────────────────────────────────────────

# Reference date used wherever tenure matters
AS_OF = date(2025, 6, 1)


def _make_employee(
    *,
    name: str = "Laia Puig",
    id_number: str = "12345678Z",
    department: str = "Operations",
    hire_date: date = date(2015, 3, 1),
) -> EmployeeCreate:
    return EmployeeCreate(
        name=name,
        id_number=id_number,
        department=department,
        hire_date=hire_date,
    )


def _employee_payload(**kwargs) -> dict:
    """JSON body for POST /employees."""
    return _make_employee(**kwargs).model_dump(mode="json", by_alias=True)


def _make_ledger(
    *,
    days: Optional[dict[str, tuple[str, str]]] = None,
    hire_date: date = date(2015, 3, 1),
    as_of: date = AS_OF,
) -> EmployeeLedger:
    """Ledger with the default catalog and ``{iso: (category, status)}`` days."""
    leave_days = {
        iso: LeaveEntry(category_key=key, status=status)
        for iso, (key, status) in (days or {}).items()
    }
    return EmployeeLedger(
        leave_days=leave_days,
        leave_types=seed_leave_types(hire_date, as_of),
    )


@pytest.fixture
def ledger() -> EmployeeLedger:
    """Empty ledger with the default catalog (10 years of service)."""
    return _make_ledger()
