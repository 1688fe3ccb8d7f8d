"""Tests for the collaborator stubs: employee directory, sinks and clock."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime

from leavedesk.models.enums import EmployeeRole, EmployeeStatus
from leavedesk.services.clock import Clock, FixedClock, SystemClock
from leavedesk.services.employee import EmployeeInfo, EmployeeService, InMemoryEmployeeService
from leavedesk.services.notification import (
    EmailSink,
    InMemoryEmailSink,
    InMemoryNotificationSink,
    NotificationSink,
)


def _make_employee(name: str = "Jane", status: EmployeeStatus = EmployeeStatus.ACTIVE) -> EmployeeInfo:
    return EmployeeInfo(
        id=uuid.uuid4(),
        first_name=name,
        last_name="Doe",
        email=f"{name.lower()}@example.com",
        joined_date=date(2023, 1, 1),
        status=status,
    )


# ---------------------------------------------------------------------------
# InMemoryEmployeeService tests
# ---------------------------------------------------------------------------


async def test_employee_service_get_not_found() -> None:
    svc = InMemoryEmployeeService()
    assert await svc.get_employee(uuid.uuid4()) is None


async def test_employee_service_seed_and_get() -> None:
    svc = InMemoryEmployeeService()
    emp = _make_employee()
    svc.seed(emp)

    result = await svc.get_employee(emp.id)

    assert result is not None
    assert result.full_name == "Jane Doe"
    assert result.role == EmployeeRole.EMPLOYEE
    assert result.is_admin is False


async def test_employee_service_lists_department_members_of_any_status() -> None:
    svc = InMemoryEmployeeService()
    department = uuid.uuid4()
    active = _make_employee("Alice").model_copy(update={"department_id": department})
    leaver = _make_employee("Bob", EmployeeStatus.INACTIVE).model_copy(update={"department_id": department})
    svc.seed(active)
    svc.seed(leaver)
    svc.seed(_make_employee("Carol"))

    assert [e.id for e in await svc.list_department_members(department)] == [active.id, leaver.id]


def test_employee_service_satisfies_protocol() -> None:
    assert isinstance(InMemoryEmployeeService(), EmployeeService)


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


async def test_notification_sink_records() -> None:
    sink = InMemoryNotificationSink()
    user_id = uuid.uuid4()

    await sink.notify(user_id, "Hello", "World")

    assert isinstance(sink, NotificationSink)
    assert [(n.user_id, n.title, n.message) for n in sink.sent] == [(user_id, "Hello", "World")]


async def test_email_sink_records() -> None:
    sink = InMemoryEmailSink()

    await sink.send_leave_submitted({"request_id": "1"})
    await sink.send_leave_decision({"request_id": "1"})

    assert isinstance(sink, EmailSink)
    assert [kind for kind, _ in sink.sent] == ["submitted", "decision"]


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


def test_fixed_clock() -> None:
    clock = FixedClock.on(date(2024, 2, 29))
    assert isinstance(clock, Clock)
    assert clock.today() == date(2024, 2, 29)
    assert clock.now() == datetime(2024, 2, 29, tzinfo=UTC)


def test_fixed_clock_assumes_utc() -> None:
    assert FixedClock(datetime(2024, 1, 1, 12, 30)).now().tzinfo is UTC


def test_system_clock_is_utc() -> None:
    assert SystemClock().now().tzinfo is UTC
