"""Tests for the leave request lifecycle: submission rules, decisions and cancellation."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, select

from leavedesk.exceptions import (
    AuthorizationError,
    DisabledTypeError,
    NotFoundError,
    StateError,
    ValidationError,
)
from leavedesk.models.enums import EmployeeRole, EmployeeStatus, LeaveRequestStatus, OutboxEventType
from leavedesk.models.outbox import OutboxEvent
from leavedesk.schemas.request import DecisionPayload, DocumentPayload, SubmitLeaveRequestPayload
from leavedesk.services.balance import create_balance, get_balance, set_balance
from leavedesk.services.outbox import dispatch_pending_events
from leavedesk.services.request import (
    cancel_request,
    decide_request,
    get_request,
    list_approved_requests,
    list_request_documents,
    list_requests,
    submit_request,
)

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from leavedesk.models.leave_type import LeaveType
    from leavedesk.services.employee import EmployeeInfo

DEPT_ENG = uuid.uuid4()
DEPT_OPS = uuid.uuid4()

MONDAY = date(2024, 3, 4)
FRIDAY = date(2024, 3, 8)

APPROVE = DecisionPayload(status=LeaveRequestStatus.APPROVED)


class People:
    def __init__(self, admin: EmployeeInfo, manager: EmployeeInfo, employee: EmployeeInfo, outsider: EmployeeInfo):
        self.admin = admin
        self.manager = manager
        self.employee = employee
        self.outsider = outsider


@pytest.fixture
def people(make_employee) -> People:
    manager = make_employee(first_name="Maria", last_name="Lopez", role=EmployeeRole.MANAGER, department_id=DEPT_ENG)
    return People(
        admin=make_employee(first_name="Ada", last_name="Admin", role=EmployeeRole.ADMIN, department_id=DEPT_OPS),
        manager=manager,
        employee=make_employee(first_name="Sam", last_name="Smith", manager_id=manager.id, department_id=DEPT_ENG),
        outsider=make_employee(first_name="Olly", last_name="Other", role=EmployeeRole.MANAGER, department_id=DEPT_OPS),
    )


@pytest.fixture
async def vacation(make_leave_type) -> LeaveType:
    return await make_leave_type(name="Vacation", accrual_based=False, accrual_rate=None, max_duration=10)


def _payload(
    leave_type: LeaveType, start: date = MONDAY, end: date = FRIDAY, **extra: object
) -> SubmitLeaveRequestPayload:
    return SubmitLeaveRequestPayload(leave_type_id=leave_type.id, start_date=start, end_date=end, **extra)


async def _count_events(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(OutboxEvent))
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


async def test_submit_creates_pending_request(db_session: AsyncSession, people: People, vacation) -> None:
    request = await submit_request(db_session, people.employee.id, _payload(vacation))

    assert request.status == LeaveRequestStatus.PENDING
    assert request.duration == Decimal(5)
    assert request.manager_id == people.manager.id
    assert await _count_events(db_session) == 1


async def test_submit_half_days(db_session: AsyncSession, people: People, vacation) -> None:
    request = await submit_request(
        db_session,
        people.employee.id,
        _payload(vacation, half_day_start=True, half_day_end=True),
    )
    assert request.duration == Decimal(4)


async def test_submit_without_manager_records_no_event(
    db_session: AsyncSession, make_employee, vacation
) -> None:
    loner = make_employee()

    request = await submit_request(db_session, loner.id, _payload(vacation))

    assert request.manager_id is None
    assert await _count_events(db_session) == 0


async def test_submit_notifies_manager_after_dispatch(
    db_session: AsyncSession, people: People, vacation, notification_sink, email_sink
) -> None:
    await submit_request(db_session, people.employee.id, _payload(vacation))
    assert notification_sink.sent == []

    result = await dispatch_pending_events(db_session)

    assert result.delivered == 1
    [sent] = notification_sink.sent
    assert sent.user_id == people.manager.id
    assert sent.title == "New Leave Request"
    assert sent.message == f"Sam Smith has submitted a {vacation.name} request from 2024-03-04 to 2024-03-08."
    assert [kind for kind, _ in email_sink.sent] == ["submitted"]


async def test_submit_unknown_employee(db_session: AsyncSession, vacation) -> None:
    with pytest.raises(NotFoundError):
        await submit_request(db_session, uuid.uuid4(), _payload(vacation))


async def test_submit_disabled_type(db_session: AsyncSession, people: People, make_leave_type) -> None:
    disabled = await make_leave_type(name="Sabbatical", is_enabled=False)
    with pytest.raises(DisabledTypeError):
        await submit_request(db_session, people.employee.id, _payload(disabled))


async def test_submit_exceeding_max_duration(db_session: AsyncSession, people: People, vacation) -> None:
    with pytest.raises(ValidationError) as exc_info:
        await submit_request(db_session, people.employee.id, _payload(vacation, end=date(2024, 3, 14)))
    assert [v.field for v in exc_info.value.violations] == ["duration"]


async def test_submit_end_before_start(db_session: AsyncSession, people: People, vacation) -> None:
    with pytest.raises(ValidationError) as exc_info:
        await submit_request(db_session, people.employee.id, _payload(vacation, start=FRIDAY, end=MONDAY))
    assert [v.field for v in exc_info.value.violations] == ["end_date"]


async def test_submit_zero_duration(db_session: AsyncSession, people: People, vacation) -> None:
    with pytest.raises(ValidationError):
        await submit_request(
            db_session,
            people.employee.id,
            _payload(vacation, end=MONDAY, half_day_start=True, half_day_end=True),
        )


async def test_submit_requires_reason(db_session: AsyncSession, people: People, make_leave_type) -> None:
    lt = await make_leave_type(name="Compassionate", accrual_based=False, accrual_rate=None, require_reason=True)

    with pytest.raises(ValidationError) as exc_info:
        await submit_request(db_session, people.employee.id, _payload(lt, reason="   "))
    assert [v.field for v in exc_info.value.violations] == ["reason"]

    request = await submit_request(db_session, people.employee.id, _payload(lt, reason="Family"))
    assert request.reason == "Family"


async def test_submit_requires_document(db_session: AsyncSession, people: People, make_leave_type) -> None:
    lt = await make_leave_type(name="Sick", accrual_based=False, accrual_rate=None, require_document=True)

    with pytest.raises(ValidationError):
        await submit_request(db_session, people.employee.id, _payload(lt))

    note = DocumentPayload(name="note.pdf", url="https://files.example.com/note.pdf")
    request = await submit_request(db_session, people.employee.id, _payload(lt, primary_document=note))

    [document] = await list_request_documents(db_session, request.id)
    assert document.is_primary is True
    assert document.name == "note.pdf"


async def test_submit_stores_all_documents(db_session: AsyncSession, people: People, vacation) -> None:
    docs = [
        DocumentPayload(name="a.pdf", url="https://files.example.com/a.pdf"),
        DocumentPayload(name="b.pdf", url="https://files.example.com/b.pdf", visible=False),
    ]
    primary = DocumentPayload(name="main.pdf", url="https://files.example.com/main.pdf")

    request = await submit_request(
        db_session, people.employee.id, _payload(vacation, documents=docs, primary_document=primary)
    )

    documents = await list_request_documents(db_session, request.id)
    assert len(documents) == 3
    assert documents[0].name == "main.pdf"


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------


async def test_manager_approves(db_session: AsyncSession, people: People, vacation) -> None:
    request = await submit_request(db_session, people.employee.id, _payload(vacation))

    approved = await decide_request(db_session, request.id, people.manager.id, APPROVE)

    assert approved.status == LeaveRequestStatus.APPROVED
    assert approved.approved_at is not None
    assert approved.manager_id == people.manager.id
    assert [r.id for r in await list_approved_requests(db_session, people.employee.id, vacation.id)] == [request.id]


async def test_approval_does_not_touch_balance(db_session: AsyncSession, people: People, vacation) -> None:
    balance = await create_balance(db_session, people.employee, vacation.id)
    await set_balance(db_session, balance.id, Decimal("8.00"))
    await db_session.commit()
    request = await submit_request(db_session, people.employee.id, _payload(vacation))

    await decide_request(db_session, request.id, people.manager.id, APPROVE)

    assert (await get_balance(db_session, balance.id)).current_balance == Decimal("8.00")


async def test_admin_from_other_department_can_decide(db_session: AsyncSession, people: People, vacation) -> None:
    request = await submit_request(db_session, people.employee.id, _payload(vacation))

    decided = await decide_request(db_session, request.id, people.admin.id, APPROVE)

    assert decided.status == LeaveRequestStatus.APPROVED
    assert decided.manager_id == people.admin.id


async def test_other_department_cannot_decide(db_session: AsyncSession, people: People, vacation) -> None:
    request = await submit_request(db_session, people.employee.id, _payload(vacation))

    with pytest.raises(AuthorizationError):
        await decide_request(db_session, request.id, people.outsider.id, APPROVE)
    with pytest.raises(AuthorizationError):
        await decide_request(db_session, request.id, uuid.uuid4(), APPROVE)

    assert (await get_request(db_session, request.id)).status == LeaveRequestStatus.PENDING


async def test_reject_requires_reason(db_session: AsyncSession, people: People, vacation) -> None:
    request = await submit_request(db_session, people.employee.id, _payload(vacation))

    with pytest.raises(ValidationError):
        await decide_request(
            db_session, request.id, people.manager.id, DecisionPayload(status=LeaveRequestStatus.REJECTED)
        )

    rejected = await decide_request(
        db_session,
        request.id,
        people.manager.id,
        DecisionPayload(status=LeaveRequestStatus.REJECTED, rejection_reason="Release week"),
    )
    assert rejected.status == LeaveRequestStatus.REJECTED
    assert rejected.rejection_reason == "Release week"


async def test_decision_must_be_approve_or_reject(db_session: AsyncSession, people: People, vacation) -> None:
    request = await submit_request(db_session, people.employee.id, _payload(vacation))

    for status in (LeaveRequestStatus.PENDING, LeaveRequestStatus.CANCELLED):
        with pytest.raises(ValidationError):
            await decide_request(db_session, request.id, people.manager.id, DecisionPayload(status=status))


async def test_decide_unknown_request(db_session: AsyncSession, people: People) -> None:
    with pytest.raises(NotFoundError):
        await decide_request(db_session, uuid.uuid4(), people.manager.id, APPROVE)


async def test_rejection_notifies_employee(
    db_session: AsyncSession, people: People, vacation, notification_sink, email_sink
) -> None:
    request = await submit_request(db_session, people.employee.id, _payload(vacation))
    await decide_request(
        db_session,
        request.id,
        people.manager.id,
        DecisionPayload(status=LeaveRequestStatus.REJECTED, rejection_reason="Release week"),
    )

    await dispatch_pending_events(db_session)

    decision = notification_sink.sent[-1]
    assert decision.user_id == people.employee.id
    assert decision.title == "Leave Request Rejected"
    assert decision.message.endswith("has been rejected. Reason: Release week")
    assert [kind for kind, _ in email_sink.sent] == ["submitted", "decision"]


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class TestStateMachine:
    async def test_second_decision_rejected(self, db_session: AsyncSession, people: People, vacation) -> None:
        request = await submit_request(db_session, people.employee.id, _payload(vacation))
        await decide_request(db_session, request.id, people.manager.id, APPROVE)

        with pytest.raises(StateError):
            await decide_request(
                db_session,
                request.id,
                people.manager.id,
                DecisionPayload(status=LeaveRequestStatus.REJECTED, rejection_reason="Changed my mind"),
            )

    async def test_cancel_pending(self, db_session: AsyncSession, people: People, vacation) -> None:
        request = await submit_request(db_session, people.employee.id, _payload(vacation))

        cancelled = await cancel_request(db_session, request.id, people.employee.id)

        assert cancelled.status == LeaveRequestStatus.CANCELLED
        with pytest.raises(StateError):
            await decide_request(db_session, request.id, people.manager.id, APPROVE)
        with pytest.raises(StateError):
            await cancel_request(db_session, request.id, people.employee.id)

    async def test_cannot_cancel_approved(self, db_session: AsyncSession, people: People, vacation) -> None:
        request = await submit_request(db_session, people.employee.id, _payload(vacation))
        await decide_request(db_session, request.id, people.manager.id, APPROVE)

        with pytest.raises(StateError):
            await cancel_request(db_session, request.id, people.employee.id)

    async def test_only_owner_can_cancel(self, db_session: AsyncSession, people: People, vacation) -> None:
        request = await submit_request(db_session, people.employee.id, _payload(vacation))

        with pytest.raises(AuthorizationError):
            await cancel_request(db_session, request.id, people.manager.id)

    async def test_cancel_notifies_manager(
        self, db_session: AsyncSession, people: People, vacation, notification_sink
    ) -> None:
        request = await submit_request(db_session, people.employee.id, _payload(vacation))
        await cancel_request(db_session, request.id, people.employee.id)

        await dispatch_pending_events(db_session)

        cancelled = notification_sink.sent[-1]
        assert cancelled.user_id == people.manager.id
        assert cancelled.title == "Leave Request Cancelled"
        assert cancelled.message.startswith("Sam Smith has cancelled their")


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


async def test_list_requests_filters(db_session: AsyncSession, people: People, make_employee, vacation) -> None:
    ops_member = make_employee(department_id=DEPT_OPS)
    mine = await submit_request(db_session, people.employee.id, _payload(vacation))
    theirs = await submit_request(db_session, ops_member.id, _payload(vacation))
    await decide_request(db_session, theirs.id, people.admin.id, APPROVE)

    items, total = await list_requests(db_session, employee_id=people.employee.id)
    assert total == 1
    assert items[0].id == mine.id

    items, total = await list_requests(db_session, status=LeaveRequestStatus.APPROVED)
    assert [r.id for r in items] == [theirs.id]

    items, total = await list_requests(db_session, department_id=DEPT_ENG)
    assert [r.id for r in items] == [mine.id]

    items, total = await list_requests(db_session, department_id=uuid.uuid4())
    assert (items, total) == ([], 0)

    _, total = await list_requests(db_session, limit=1)
    assert total == 2


async def test_department_listing_keeps_former_members(
    db_session: AsyncSession, people: People, make_employee, vacation
) -> None:
    request = await submit_request(db_session, people.employee.id, _payload(vacation))
    make_employee(
        id=people.employee.id,
        first_name="Sam",
        last_name="Smith",
        status=EmployeeStatus.INACTIVE,
        department_id=DEPT_ENG,
    )

    items, total = await list_requests(db_session, department_id=DEPT_ENG)

    assert total == 1
    assert [r.id for r in items] == [request.id]


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


class TestRequestAPI:
    async def test_submit_and_approve_flow(
        self, async_client: AsyncClient, people: People, vacation, notification_sink
    ) -> None:
        response = await async_client.post(
            "/requests",
            json={"leave_type_id": str(vacation.id), "start_date": "2024-03-04", "end_date": "2024-03-08"},
            headers={"X-User-Id": str(people.employee.id)},
        )
        assert response.status_code == 201
        request_id = response.json()["id"]
        assert response.json()["status"] == "PENDING"
        assert [n.user_id for n in notification_sink.sent] == [people.manager.id]

        response = await async_client.post(
            f"/requests/{request_id}/decision",
            json={"status": "APPROVED"},
            headers={"X-User-Id": str(people.manager.id), "X-Role": "MANAGER"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "APPROVED"
        assert notification_sink.sent[-1].title == "Leave Request Approved"

        response = await async_client.post(
            f"/requests/{request_id}/cancel",
            headers={"X-User-Id": str(people.employee.id)},
        )
        assert response.status_code == 409

    async def test_submit_delivers_only_its_own_events(
        self, async_client: AsyncClient, db_session: AsyncSession, people: People, vacation, notification_sink
    ) -> None:
        stale = OutboxEvent(
            event_type=OutboxEventType.LEAVE_REQUEST_CANCELLED.value,
            payload_json={"notify_user_id": str(people.admin.id), "title": "Stale", "message": "left for the worker"},
        )
        db_session.add(stale)
        await db_session.commit()
        stale_id = stale.id

        response = await async_client.post(
            "/requests",
            json={"leave_type_id": str(vacation.id), "start_date": "2024-03-04", "end_date": "2024-03-08"},
            headers={"X-User-Id": str(people.employee.id)},
        )

        assert response.status_code == 201
        assert [n.title for n in notification_sink.sent] == ["New Leave Request"]
        stored = await db_session.get(OutboxEvent, stale_id, populate_existing=True)
        assert stored is not None
        assert stored.attempts == 0
        assert stored.delivered_at is None

    async def test_outsider_decision_is_403(self, async_client: AsyncClient, people: People, vacation) -> None:
        created = await async_client.post(
            "/requests",
            json={"leave_type_id": str(vacation.id), "start_date": "2024-03-04", "end_date": "2024-03-05"},
            headers={"X-User-Id": str(people.employee.id)},
        )
        response = await async_client.post(
            f"/requests/{created.json()['id']}/decision",
            json={"status": "APPROVED"},
            headers={"X-User-Id": str(people.outsider.id), "X-Role": "MANAGER"},
        )
        assert response.status_code == 403

    async def test_employee_lists_only_own(
        self, async_client: AsyncClient, people: People, make_employee, vacation
    ) -> None:
        other = make_employee(department_id=DEPT_ENG)
        for employee_id in (people.employee.id, other.id):
            await async_client.post(
                "/requests",
                json={"leave_type_id": str(vacation.id), "start_date": "2024-03-04", "end_date": "2024-03-05"},
                headers={"X-User-Id": str(employee_id)},
            )

        own = await async_client.get(
            "/requests",
            params={"employee_id": str(other.id)},
            headers={"X-User-Id": str(people.employee.id)},
        )
        everyone = await async_client.get(
            "/requests",
            headers={"X-User-Id": str(people.admin.id), "X-Role": "ADMIN"},
        )

        assert own.json()["total"] == 1
        assert own.json()["items"][0]["employee_id"] == str(people.employee.id)
        assert everyone.json()["total"] == 2

    async def test_detail_includes_documents(self, async_client: AsyncClient, people: People, vacation) -> None:
        created = await async_client.post(
            "/requests",
            json={
                "leave_type_id": str(vacation.id),
                "start_date": "2024-03-04",
                "end_date": "2024-03-04",
                "primary_document": {"name": "ticket.pdf", "url": "https://files.example.com/ticket.pdf"},
            },
            headers={"X-User-Id": str(people.employee.id)},
        )

        response = await async_client.get(
            f"/requests/{created.json()['id']}", headers={"X-User-Id": str(people.employee.id)}
        )

        assert response.status_code == 200
        assert [d["name"] for d in response.json()["documents"]] == ["ticket.pdf"]

    async def test_over_max_duration_is_422(self, async_client: AsyncClient, people: People, vacation) -> None:
        response = await async_client.post(
            "/requests",
            json={"leave_type_id": str(vacation.id), "start_date": "2024-03-01", "end_date": "2024-03-31"},
            headers={"X-User-Id": str(people.employee.id)},
        )
        assert response.status_code == 422
        assert response.json()["violations"][0]["field"] == "duration"
