# ruff: noqa: B008, TC001, TC003
"""API endpoints for monthly accrual runs and accrual history."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from leavedesk.api.deps import AdminDep, AuthDep, ensure_self_or_admin
from leavedesk.db import SessionDep
from leavedesk.schemas.accrual import (
    AccrualHistoryResponse,
    AccrualListResponse,
    AccrualPeriodRequest,
    AccrualResponse,
    AccrualRunResponse,
)
from leavedesk.services import accrual as accrual_service
from leavedesk.services.balance import get_balance
from leavedesk.services.clock import get_clock
from leavedesk.services.outbox import dispatch_recorded_events

accrual_router = APIRouter(prefix="/accruals", tags=["accruals"])


def _resolve_period(payload: AccrualPeriodRequest | None) -> accrual_service.YearMonth:
    """Requested period, or the month before today when none is given."""
    default = accrual_service.previous_year_month(get_clock().today())
    if payload is None:
        return default
    return accrual_service.YearMonth(payload.year or default.year, payload.month or default.month)


@accrual_router.post("/monthly", response_model=AccrualRunResponse)
async def process_monthly_accruals(
    session: SessionDep,
    auth: AdminDep,
    payload: AccrualPeriodRequest | None = None,
) -> AccrualRunResponse:
    """Accrue a month for every eligible balance (admin only).

    Defaults to the previous month. Balances already processed for the
    period are skipped, so re-running is safe.
    """
    result = await accrual_service.process_monthly_accruals(session, _resolve_period(payload))
    await dispatch_recorded_events(session)
    return AccrualRunResponse(
        year=result.year_month.year,
        month=result.year_month.month,
        processed=result.processed,
        accrued=result.accrued,
        skipped=result.skipped,
        errors=result.errors,
        accruals=[AccrualResponse.model_validate(a) for a in result.accruals],
    )


@accrual_router.post("/employees/{employee_id}", response_model=AccrualListResponse)
async def process_employee_accruals(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
    payload: AccrualPeriodRequest | None = None,
) -> AccrualListResponse:
    """Accrue a month for every balance of one employee (admin only).

    Fails with 409 if the period was already processed for the employee.
    """
    accruals = await accrual_service.process_employee_accruals(session, employee_id, _resolve_period(payload))
    await dispatch_recorded_events(session)
    return AccrualListResponse(
        items=[AccrualResponse.model_validate(a) for a in accruals],
        total=len(accruals),
    )


@accrual_router.get("/processed")
async def has_accruals_been_processed(
    session: SessionDep,
    auth: AdminDep,
    year: int = Query(ge=1),
    month: int = Query(),
) -> dict[str, bool]:
    """Whether any accrual was posted for the period (admin only)."""
    return {"processed": await accrual_service.has_accruals_been_processed(session, year, month)}


@accrual_router.get("/history", response_model=AccrualHistoryResponse)
async def get_accrual_history(session: SessionDep, auth: AdminDep) -> AccrualHistoryResponse:
    """Per-period accrual summaries, newest first (admin only)."""
    items = await accrual_service.get_accrual_history_summary(session)
    return AccrualHistoryResponse(items=items, total=len(items))


@accrual_router.get("/history/{accrual_id}", response_model=AccrualListResponse)
async def get_accrual_details(accrual_id: uuid.UUID, session: SessionDep, auth: AdminDep) -> AccrualListResponse:
    """All accruals of the period the given accrual belongs to (admin only)."""
    accruals = await accrual_service.get_accrual_details(session, accrual_id)
    return AccrualListResponse(
        items=[AccrualResponse.model_validate(a) for a in accruals],
        total=len(accruals),
    )


@accrual_router.get("/balances/{balance_id}", response_model=AccrualListResponse)
async def list_balance_accruals(
    balance_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    year: int | None = Query(default=None),
    month: int | None = Query(default=None, ge=1, le=12),
) -> AccrualListResponse:
    """Accruals posted to one balance (owner or admin)."""
    balance = await get_balance(session, balance_id)
    ensure_self_or_admin(auth, balance.employee_id)
    accruals = await accrual_service.list_accruals_for_balance(session, balance_id, year, month)
    return AccrualListResponse(
        items=[AccrualResponse.model_validate(a) for a in accruals],
        total=len(accruals),
    )
