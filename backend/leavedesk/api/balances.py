# ruff: noqa: B008, TC001, TC003
"""Balance endpoints: per-employee listing and admin mutations."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, status

from leavedesk.api.deps import AdminDep, AuthDep, ensure_self_or_admin
from leavedesk.db import SessionDep
from leavedesk.exceptions import NotFoundError
from leavedesk.models.balance import EmployeeBalance
from leavedesk.schemas.balance import (
    AdjustBalanceRequest,
    BalanceListResponse,
    BalanceResponse,
    CreateBalanceRequest,
    SetEligibilityRequest,
    SetMaxBalanceRequest,
)
from leavedesk.services import balance as balance_service
from leavedesk.services.employee import get_employee_service


def _list_response(items: list[EmployeeBalance]) -> BalanceListResponse:
    return BalanceListResponse(
        items=[BalanceResponse.model_validate(b) for b in items],
        total=len(items),
    )


# ---------------------------------------------------------------------------
# Employee-scoped: /employees/{employee_id}/balances
# ---------------------------------------------------------------------------

employee_balance_router = APIRouter(prefix="/employees/{employee_id}/balances", tags=["balances"])


@employee_balance_router.get("", response_model=BalanceListResponse)
async def list_employee_balances(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> BalanceListResponse:
    """List all balances of an employee (self or admin)."""
    ensure_self_or_admin(auth, employee_id)
    return _list_response(await balance_service.list_employee_balances(session, employee_id))


@employee_balance_router.post("", response_model=BalanceResponse, status_code=status.HTTP_201_CREATED)
async def create_balance(
    employee_id: uuid.UUID,
    payload: CreateBalanceRequest,
    session: SessionDep,
    auth: AdminDep,
) -> BalanceResponse:
    """Create an empty balance for one leave type (admin only)."""
    employee = await get_employee_service().get_employee(employee_id)
    if employee is None:
        raise NotFoundError(f"Employee not found: {employee_id}")
    balance = await balance_service.create_balance(session, employee, payload.leave_type_id)
    return BalanceResponse.model_validate(balance)


@employee_balance_router.post("/initialize", response_model=BalanceListResponse, status_code=status.HTTP_201_CREATED)
async def initialize_balances(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
) -> BalanceListResponse:
    """Create balances for every default leave type (admin only)."""
    employee = await get_employee_service().get_employee(employee_id)
    if employee is None:
        raise NotFoundError(f"Employee not found: {employee_id}")
    return _list_response(await balance_service.initialize_balances_for_employee(session, employee))


# ---------------------------------------------------------------------------
# Balance-scoped: /balances/{balance_id}
# ---------------------------------------------------------------------------

balance_router = APIRouter(prefix="/balances", tags=["balances"])


@balance_router.get("/exceeding-max", response_model=BalanceListResponse)
async def list_exceeding_max_balance(session: SessionDep, auth: AdminDep) -> BalanceListResponse:
    """Integrity report: balances above their maximum (admin only)."""
    return _list_response(await balance_service.find_exceeding_max_balance(session))


@balance_router.get("/{balance_id}", response_model=BalanceResponse)
async def get_balance(balance_id: uuid.UUID, session: SessionDep, auth: AuthDep) -> BalanceResponse:
    """Get a single balance (owner or admin)."""
    balance = await balance_service.get_balance(session, balance_id)
    ensure_self_or_admin(auth, balance.employee_id)
    return BalanceResponse.model_validate(balance)


@balance_router.post("/{balance_id}/adjust", response_model=BalanceResponse)
async def adjust_balance(
    balance_id: uuid.UUID,
    payload: AdjustBalanceRequest,
    session: SessionDep,
    auth: AdminDep,
) -> BalanceResponse:
    """Add a signed amount to a balance (admin only)."""
    balance = await balance_service.adjust_balance(session, balance_id, payload.delta)
    await session.commit()
    return BalanceResponse.model_validate(balance)


@balance_router.put("/{balance_id}/max-balance", response_model=BalanceResponse)
async def set_max_balance(
    balance_id: uuid.UUID,
    payload: SetMaxBalanceRequest,
    session: SessionDep,
    auth: AdminDep,
) -> BalanceResponse:
    """Change the maximum of a balance (admin only)."""
    balance = await balance_service.set_max_balance(session, balance_id, payload.max_balance)
    return BalanceResponse.model_validate(balance)


@balance_router.put("/{balance_id}/eligibility", response_model=BalanceResponse)
async def set_accrual_eligibility(
    balance_id: uuid.UUID,
    payload: SetEligibilityRequest,
    session: SessionDep,
    auth: AdminDep,
) -> BalanceResponse:
    """Turn monthly accrual on or off for a balance (admin only)."""
    balance = await balance_service.set_accrual_eligibility(session, balance_id, payload.is_eligible_for_accrual)
    return BalanceResponse.model_validate(balance)
