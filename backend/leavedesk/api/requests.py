# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from leavedesk.api.deps import AuthDep, ensure_self_or_admin
from leavedesk.db import SessionDep
from leavedesk.models.enums import EmployeeRole, LeaveRequestStatus
from leavedesk.schemas.request import (
    DecisionPayload,
    DocumentResponse,
    LeaveRequestDetailResponse,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    SubmitLeaveRequestPayload,
)
from leavedesk.services import request as request_service
from leavedesk.services.outbox import dispatch_recorded_events

requests_router = APIRouter(prefix="/requests", tags=["requests"])


@requests_router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_request(
    payload: SubmitLeaveRequestPayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Submit a leave request for the calling employee."""
    request = await request_service.submit_request(session, auth.user_id, payload)
    response = LeaveRequestResponse.model_validate(request)
    await dispatch_recorded_events(session)
    return response


@requests_router.get("", response_model=LeaveRequestListResponse)
async def list_requests(
    session: SessionDep,
    auth: AuthDep,
    status_filter: LeaveRequestStatus | None = Query(default=None, alias="status"),
    employee_id: uuid.UUID | None = Query(default=None),
    department_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List leave requests with optional filters.

    Employees only see their own requests. Managers and admins may filter
    by employee or department.
    """
    if auth.role == EmployeeRole.EMPLOYEE:
        employee_id = auth.user_id
        department_id = None

    items, total = await request_service.list_requests(
        session,
        employee_id=employee_id,
        status=status_filter,
        department_id=department_id,
        offset=offset,
        limit=limit,
    )
    return LeaveRequestListResponse(
        items=[LeaveRequestResponse.model_validate(r) for r in items],
        total=total,
    )


@requests_router.get("/approved", response_model=LeaveRequestListResponse)
async def list_approved_requests(
    session: SessionDep,
    auth: AuthDep,
    employee_id: uuid.UUID = Query(),
    leave_type_id: uuid.UUID = Query(),
) -> LeaveRequestListResponse:
    """Approved requests of an employee for one leave type (self or admin)."""
    ensure_self_or_admin(auth, employee_id)
    items = await request_service.list_approved_requests(session, employee_id, leave_type_id)
    return LeaveRequestListResponse(
        items=[LeaveRequestResponse.model_validate(r) for r in items],
        total=len(items),
    )


@requests_router.get("/{request_id}", response_model=LeaveRequestDetailResponse)
async def get_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestDetailResponse:
    """Get a single leave request with its documents."""
    request = await request_service.get_request(session, request_id)
    if auth.role == EmployeeRole.EMPLOYEE:
        ensure_self_or_admin(auth, request.employee_id)
    documents = await request_service.list_request_documents(session, request_id)
    response = LeaveRequestDetailResponse.model_validate(request)
    response.documents = [DocumentResponse.model_validate(d) for d in documents]
    return response


@requests_router.post("/{request_id}/decision", response_model=LeaveRequestResponse)
async def decide_request(
    request_id: uuid.UUID,
    payload: DecisionPayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Approve or reject a pending request (admin or same-department approver)."""
    request = await request_service.decide_request(session, request_id, auth.user_id, payload)
    response = LeaveRequestResponse.model_validate(request)
    await dispatch_recorded_events(session)
    return response


@requests_router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
async def cancel_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Cancel one of your own pending requests."""
    request = await request_service.cancel_request(session, request_id, auth.user_id)
    response = LeaveRequestResponse.model_validate(request)
    await dispatch_recorded_events(session)
    return response
