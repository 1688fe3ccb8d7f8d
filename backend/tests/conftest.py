"""Shared fixtures: in-memory SQLite database, HTTP client and collaborators.

Each test gets a fresh in-memory database so that services can commit and
roll back freely. Collaborators (clock, employee directory, notification and
email sinks) are replaced with in-memory versions for every test.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leavedesk.db import engine_options, get_session
from leavedesk.main import app
from leavedesk.models import SQLModel
from leavedesk.schemas.leave_type import CreateLeaveTypeRequest
from leavedesk.services.balance import create_balance, set_balance, set_max_balance
from leavedesk.services.clock import FixedClock, SystemClock, set_clock
from leavedesk.services.employee import EmployeeInfo, InMemoryEmployeeService, set_employee_service
from leavedesk.services.leave_type import create_leave_type
from leavedesk.services.notification import (
    InMemoryEmailSink,
    InMemoryNotificationSink,
    set_email_sink,
    set_notification_sink,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine

    from leavedesk.models import EmployeeBalance, LeaveType

TEST_DATABASE_URL = "sqlite+aiosqlite://"

# Default "today" for every test unless a test pins its own clock.
TODAY = date(2024, 3, 1)


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """Create a fresh in-memory database with all tables."""
    _engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool, **engine_options(TEST_DATABASE_URL))
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Yield a session on the test database (same settings as the app factory)."""
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clock() -> Iterator[FixedClock]:
    """Pin today to TODAY. Tests may call set_clock to move it."""
    fixed = FixedClock.on(TODAY)
    set_clock(fixed)
    yield fixed
    set_clock(SystemClock())


@pytest.fixture(autouse=True)
def employee_service() -> Iterator[InMemoryEmployeeService]:
    """Empty employee directory; test modules seed the people they need."""
    svc = InMemoryEmployeeService()
    set_employee_service(svc)
    yield svc
    set_employee_service(InMemoryEmployeeService())


@pytest.fixture(autouse=True)
def notification_sink() -> Iterator[InMemoryNotificationSink]:
    sink = InMemoryNotificationSink()
    set_notification_sink(sink)
    yield sink
    set_notification_sink(InMemoryNotificationSink())


@pytest.fixture(autouse=True)
def email_sink() -> Iterator[InMemoryEmailSink]:
    sink = InMemoryEmailSink()
    set_email_sink(sink)
    yield sink
    set_email_sink(InMemoryEmailSink())


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_employee(employee_service: InMemoryEmployeeService) -> Callable[..., EmployeeInfo]:
    """Seed an employee into the directory. Keyword arguments override defaults."""

    def _make(**overrides: Any) -> EmployeeInfo:
        employee_id = overrides.pop("id", uuid.uuid4())
        data: dict[str, Any] = {
            "id": employee_id,
            "first_name": "Jane",
            "last_name": "Doe",
            "email": f"{employee_id.hex[:8]}@example.com",
            "joined_date": date(2023, 1, 1),
        }
        data.update(overrides)
        employee = EmployeeInfo(**data)
        employee_service.seed(employee)
        return employee

    return _make


@pytest.fixture
def make_leave_type(db_session: AsyncSession) -> Callable[..., Awaitable[LeaveType]]:
    """Create an accrual-based leave type (1.75/month, max 21 days) unless overridden."""

    async def _make(**overrides: Any) -> LeaveType:
        data: dict[str, Any] = {
            "name": f"Annual {uuid.uuid4().hex[:6]}",
            "max_duration": 21,
            "accrual_based": True,
            "accrual_rate": Decimal("1.75"),
        }
        data.update(overrides)
        return await create_leave_type(db_session, CreateLeaveTypeRequest(**data))

    return _make


@pytest.fixture
def make_balance(db_session: AsyncSession) -> Callable[..., Awaitable[EmployeeBalance]]:
    """Create a balance, optionally starting at ``current`` with a custom ``max_balance``."""

    async def _make(
        employee: EmployeeInfo,
        leave_type: LeaveType,
        current: Decimal | None = None,
        max_balance: Decimal | None = None,
    ) -> EmployeeBalance:
        balance = await create_balance(db_session, employee, leave_type.id)
        if max_balance is not None:
            balance = await set_max_balance(db_session, balance.id, max_balance)
        if current is not None:
            balance = await set_balance(db_session, balance.id, current)
            await db_session.commit()
        return balance

    return _make
