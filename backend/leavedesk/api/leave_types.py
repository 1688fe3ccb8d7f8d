# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from leavedesk.api.deps import AdminDep, AuthDep
from leavedesk.db import SessionDep
from leavedesk.models.leave_type import LeaveType
from leavedesk.schemas.leave_type import (
    CreateLeaveTypeRequest,
    LeaveTypeListResponse,
    LeaveTypeResponse,
    UpdateLeaveTypeRequest,
)
from leavedesk.services import leave_type as leave_type_service

leave_types_router = APIRouter(prefix="/leave-types", tags=["leave-types"])


def _list_response(items: list[LeaveType]) -> LeaveTypeListResponse:
    return LeaveTypeListResponse(
        items=[LeaveTypeResponse.model_validate(lt) for lt in items],
        total=len(items),
    )


@leave_types_router.post("", response_model=LeaveTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_leave_type(
    payload: CreateLeaveTypeRequest,
    session: SessionDep,
    auth: AdminDep,
) -> LeaveTypeResponse:
    """Create a leave type (admin only)."""
    leave_type = await leave_type_service.create_leave_type(session, payload)
    return LeaveTypeResponse.model_validate(leave_type)


@leave_types_router.get("", response_model=LeaveTypeListResponse)
async def list_leave_types(
    session: SessionDep,
    auth: AuthDep,
    default_only: bool = Query(default=False),
) -> LeaveTypeListResponse:
    """List leave types, optionally only the defaults."""
    if default_only:
        return _list_response(await leave_type_service.list_default_leave_types(session))
    return _list_response(await leave_type_service.list_leave_types(session))


@leave_types_router.get("/eligible/accrual", response_model=LeaveTypeListResponse)
async def list_eligible_for_accrual(session: SessionDep, auth: AuthDep) -> LeaveTypeListResponse:
    """Leave types that accrue monthly."""
    return _list_response(await leave_type_service.list_eligible_for_accrual(session))


@leave_types_router.get("/eligible/carry-forward", response_model=LeaveTypeListResponse)
async def list_eligible_for_carry_forward(session: SessionDep, auth: AuthDep) -> LeaveTypeListResponse:
    """Leave types whose unused balance carries into the next year."""
    return _list_response(await leave_type_service.list_eligible_for_carry_forward(session))


@leave_types_router.get("/by-name/{name}", response_model=LeaveTypeResponse)
async def get_leave_type_by_name(name: str, session: SessionDep, auth: AuthDep) -> LeaveTypeResponse:
    """Get a leave type by its unique name."""
    return LeaveTypeResponse.model_validate(await leave_type_service.get_leave_type_by_name(session, name))


@leave_types_router.get("/{leave_type_id}", response_model=LeaveTypeResponse)
async def get_leave_type(leave_type_id: uuid.UUID, session: SessionDep, auth: AuthDep) -> LeaveTypeResponse:
    """Get a single leave type."""
    return LeaveTypeResponse.model_validate(await leave_type_service.get_leave_type(session, leave_type_id))


@leave_types_router.patch("/{leave_type_id}", response_model=LeaveTypeResponse)
async def update_leave_type(
    leave_type_id: uuid.UUID,
    payload: UpdateLeaveTypeRequest,
    session: SessionDep,
    auth: AdminDep,
) -> LeaveTypeResponse:
    """Update a leave type (admin only). Fields left out keep their value."""
    leave_type = await leave_type_service.update_leave_type(session, leave_type_id, payload)
    return LeaveTypeResponse.model_validate(leave_type)
