"""Leave request lifecycle: submit, decide (approve/reject) and cancel.

State machine: PENDING -> APPROVED | REJECTED | CANCELLED, all terminal.
Approval does not touch the employee balance. Notifications are recorded
as outbox events in the same transaction and delivered after commit.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlmodel import col

from leavedesk.exceptions import (
    AuthorizationError,
    DisabledTypeError,
    NotFoundError,
    StateError,
    ValidationError,
    Violation,
)
from leavedesk.models.enums import LeaveRequestStatus, OutboxEventType
from leavedesk.models.request import LeaveDocument, LeaveRequest
from leavedesk.services.clock import get_clock
from leavedesk.services.duration import calculate_submission_duration
from leavedesk.services.employee import get_employee_service
from leavedesk.services.leave_type import get_leave_type
from leavedesk.services.outbox import record_event
from leavedesk.services.validation import raise_for_violations

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from leavedesk.models.leave_type import LeaveType
    from leavedesk.schemas.request import DecisionPayload, SubmitLeaveRequestPayload
    from leavedesk.services.employee import EmployeeInfo

logger = logging.getLogger(__name__)

_DECISION_STATUSES = (LeaveRequestStatus.APPROVED, LeaveRequestStatus.REJECTED)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


async def _get_employee_or_404(employee_id: uuid.UUID) -> EmployeeInfo:
    employee = await get_employee_service().get_employee(employee_id)
    if employee is None:
        raise NotFoundError(f"Employee not found: {employee_id}")
    return employee


def _event_payload(
    request: LeaveRequest,
    employee: EmployeeInfo,
    leave_type: LeaveType,
    *,
    notify_user_id: uuid.UUID | None,
    title: str,
    message: str,
) -> dict[str, Any]:
    """JSON-safe snapshot of a request for notification and email delivery."""
    return {
        "request_id": str(request.id),
        "employee_id": str(employee.id),
        "employee_name": employee.full_name,
        "employee_email": employee.email,
        "manager_id": str(request.manager_id) if request.manager_id else None,
        "leave_type": leave_type.name,
        "start_date": request.start_date.isoformat(),
        "end_date": request.end_date.isoformat(),
        "duration": str(request.duration),
        "status": request.status,
        "reason": request.reason,
        "rejection_reason": request.rejection_reason,
        "notify_user_id": str(notify_user_id) if notify_user_id else None,
        "title": title,
        "message": message,
    }


def _submission_violations(
    payload: SubmitLeaveRequestPayload,
    leave_type: LeaveType,
    document_count: int,
) -> list[Violation]:
    violations: list[Violation] = []

    if payload.end_date < payload.start_date:
        violations.append(Violation(field="end_date", message="End date must be on or after start date"))
        return violations

    if leave_type.require_reason and not (payload.reason and payload.reason.strip()):
        violations.append(Violation(field="reason", message=f"A reason is required for {leave_type.name}"))

    if leave_type.require_document and document_count == 0:
        violations.append(
            Violation(field="documents", message=f"A supporting document is required for {leave_type.name}")
        )

    duration = calculate_submission_duration(
        payload.start_date, payload.end_date, payload.half_day_start, payload.half_day_end
    )
    if duration <= 0:
        violations.append(Violation(field="duration", message="Leave duration must be greater than zero"))
    elif leave_type.max_duration is not None and duration > leave_type.max_duration:
        violations.append(
            Violation(
                field="duration",
                message=(
                    f"Leave duration of {duration} days exceeds the maximum of "
                    f"{leave_type.max_duration} days for {leave_type.name}"
                ),
            )
        )
    return violations


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def submit_request(
    session: AsyncSession,
    employee_id: uuid.UUID,
    payload: SubmitLeaveRequestPayload,
) -> LeaveRequest:
    """Submit a leave request as PENDING, assigned to the employee's manager."""
    employee = await _get_employee_or_404(employee_id)
    leave_type = await get_leave_type(session, payload.leave_type_id)
    if not leave_type.is_enabled:
        raise DisabledTypeError(f"Leave type {leave_type.name} is disabled")

    documents = list(payload.documents)
    if payload.primary_document is not None:
        documents.append(payload.primary_document)
    raise_for_violations(_submission_violations(payload, leave_type, len(documents)))

    request = LeaveRequest(
        employee_id=employee.id,
        leave_type_id=leave_type.id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        half_day_start=payload.half_day_start,
        half_day_end=payload.half_day_end,
        duration=calculate_submission_duration(
            payload.start_date, payload.end_date, payload.half_day_start, payload.half_day_end
        ),
        status=LeaveRequestStatus.PENDING.value,
        reason=payload.reason,
        manager_id=employee.manager_id,
    )
    session.add(request)
    await session.flush()

    now = get_clock().now()
    for doc in payload.documents:
        session.add(
            LeaveDocument(leave_request_id=request.id, name=doc.name, url=doc.url, visible=doc.visible, uploaded_at=now)
        )
    if payload.primary_document is not None:
        doc = payload.primary_document
        session.add(
            LeaveDocument(
                leave_request_id=request.id,
                name=doc.name,
                url=doc.url,
                visible=doc.visible,
                is_primary=True,
                uploaded_at=now,
            )
        )

    if request.manager_id is not None:
        await record_event(
            session,
            OutboxEventType.LEAVE_REQUEST_SUBMITTED,
            _event_payload(
                request,
                employee,
                leave_type,
                notify_user_id=request.manager_id,
                title="New Leave Request",
                message=(
                    f"{employee.full_name} has submitted a {leave_type.name} request from "
                    f"{request.start_date.isoformat()} to {request.end_date.isoformat()}."
                ),
            ),
        )

    await session.commit()
    logger.info(
        "Leave request %s submitted by employee=%s type=%s duration=%s",
        request.id,
        employee.id,
        leave_type.name,
        request.duration,
    )
    return request


async def decide_request(
    session: AsyncSession,
    request_id: uuid.UUID,
    approver_id: uuid.UUID,
    decision: DecisionPayload,
) -> LeaveRequest:
    """Approve or reject a PENDING request.

    The approver must be an ADMIN or belong to the same department as the
    requesting employee.
    """
    request = await get_request(session, request_id)
    employee = await _get_employee_or_404(request.employee_id)

    approver = await get_employee_service().get_employee(approver_id)
    same_department = (
        approver is not None
        and approver.department_id is not None
        and approver.department_id == employee.department_id
    )
    if approver is None or not (approver.is_admin or same_department):
        raise AuthorizationError("You are not authorized to approve this leave request")

    if request.status != LeaveRequestStatus.PENDING:
        raise StateError(f"Leave request is already {request.status}")

    if decision.status not in _DECISION_STATUSES:
        raise ValidationError(
            "Decision status must be APPROVED or REJECTED",
            [Violation(field="status", message="Decision status must be APPROVED or REJECTED")],
        )
    rejection_reason = (decision.rejection_reason or "").strip()
    if decision.status == LeaveRequestStatus.REJECTED and not rejection_reason:
        raise ValidationError(
            "A rejection reason is required",
            [Violation(field="rejection_reason", message="A rejection reason is required")],
        )

    leave_type = await get_leave_type(session, request.leave_type_id)

    request.status = decision.status.value
    request.approved_at = get_clock().now()
    request.manager_id = approver.id
    if decision.status == LeaveRequestStatus.REJECTED:
        request.rejection_reason = rejection_reason

    period = f"from {request.start_date.isoformat()} to {request.end_date.isoformat()}"
    if decision.status == LeaveRequestStatus.APPROVED:
        title = "Leave Request Approved"
        message = f"Your {leave_type.name} leave request {period} has been approved."
    else:
        title = "Leave Request Rejected"
        message = f"Your {leave_type.name} leave request {period} has been rejected. Reason: {rejection_reason}"

    await record_event(
        session,
        OutboxEventType.LEAVE_REQUEST_DECIDED,
        _event_payload(request, employee, leave_type, notify_user_id=employee.id, title=title, message=message),
    )
    await session.commit()

    logger.info("Leave request %s %s by %s", request.id, request.status, approver.id)
    return request


async def cancel_request(session: AsyncSession, request_id: uuid.UUID, employee_id: uuid.UUID) -> LeaveRequest:
    """Cancel a PENDING request. Only its owner may cancel it."""
    request = await get_request(session, request_id)
    if request.employee_id != employee_id:
        raise AuthorizationError("You can only cancel your own leave requests")
    if request.status != LeaveRequestStatus.PENDING:
        raise StateError("Only pending leave requests can be cancelled")

    request.status = LeaveRequestStatus.CANCELLED.value

    if request.manager_id is not None:
        employee = await _get_employee_or_404(request.employee_id)
        leave_type = await get_leave_type(session, request.leave_type_id)
        await record_event(
            session,
            OutboxEventType.LEAVE_REQUEST_CANCELLED,
            _event_payload(
                request,
                employee,
                leave_type,
                notify_user_id=request.manager_id,
                title="Leave Request Cancelled",
                message=(
                    f"{employee.full_name} has cancelled their {leave_type.name} leave request from "
                    f"{request.start_date.isoformat()} to {request.end_date.isoformat()}."
                ),
            ),
        )

    await session.commit()
    logger.info("Leave request %s cancelled by employee=%s", request.id, employee_id)
    return request


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_request(session: AsyncSession, request_id: uuid.UUID) -> LeaveRequest:
    """Fetch a request by ID. Raises 404 if not found."""
    request = await session.get(LeaveRequest, request_id)
    if request is None:
        raise NotFoundError(f"Leave request not found with ID: {request_id}")
    return request


async def list_request_documents(session: AsyncSession, request_id: uuid.UUID) -> list[LeaveDocument]:
    result = await session.execute(
        select(LeaveDocument)
        .where(col(LeaveDocument.leave_request_id) == request_id)
        .order_by(col(LeaveDocument.is_primary).desc(), col(LeaveDocument.uploaded_at))
    )
    return list(result.scalars().all())


async def list_requests(
    session: AsyncSession,
    *,
    employee_id: uuid.UUID | None = None,
    status: LeaveRequestStatus | None = None,
    department_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[LeaveRequest], int]:
    """List requests, newest first, with optional filters. Returns (items, total)."""
    filters = []
    if employee_id is not None:
        filters.append(col(LeaveRequest.employee_id) == employee_id)
    if status is not None:
        filters.append(col(LeaveRequest.status) == status.value)
    if department_id is not None:
        # Former members keep their requests visible under the department.
        members = [e.id for e in await get_employee_service().list_department_members(department_id)]
        if not members:
            return [], 0
        filters.append(col(LeaveRequest.employee_id).in_(members))

    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRequest)
        .where(*filters)
        .order_by(col(LeaveRequest.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def list_approved_requests(
    session: AsyncSession,
    employee_id: uuid.UUID,
    leave_type_id: uuid.UUID,
) -> list[LeaveRequest]:
    result = await session.execute(
        select(LeaveRequest)
        .where(
            col(LeaveRequest.employee_id) == employee_id,
            col(LeaveRequest.leave_type_id) == leave_type_id,
            col(LeaveRequest.status) == LeaveRequestStatus.APPROVED.value,
        )
        .order_by(col(LeaveRequest.start_date))
    )
    return list(result.scalars().all())
