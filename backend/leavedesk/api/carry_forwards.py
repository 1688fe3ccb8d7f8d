# ruff: noqa: B008, TC001, TC003
"""API endpoints for the annual carry-forward run and its history."""

from __future__ import annotations

import uuid
from decimal import Decimal

from fastapi import APIRouter, Query

from leavedesk.api.deps import AdminDep, AuthDep, ensure_self_or_admin
from leavedesk.db import SessionDep
from leavedesk.schemas.carry_forward import (
    CarryForwardListResponse,
    CarryForwardResponse,
    CarryForwardRunRequest,
    CarryForwardRunResponse,
)
from leavedesk.services import carry_forward as carry_forward_service
from leavedesk.services.balance import get_balance
from leavedesk.services.clock import get_clock
from leavedesk.services.outbox import dispatch_recorded_events

carry_forward_router = APIRouter(prefix="/carry-forwards", tags=["carry-forwards"])


@carry_forward_router.post("/annual", response_model=CarryForwardRunResponse)
async def process_annual_carry_forward(
    session: SessionDep,
    auth: AdminDep,
    payload: CarryForwardRunRequest | None = None,
) -> CarryForwardRunResponse:
    """Cap and roll every carry-forward-enabled balance into the next year (admin only).

    Defaults to last year into the current year.
    """
    this_year = get_clock().today().year
    from_year = payload.from_year if payload and payload.from_year else this_year - 1
    to_year = payload.to_year if payload and payload.to_year else from_year + 1

    result = await carry_forward_service.process_annual_carry_forward(session, from_year, to_year)
    await dispatch_recorded_events(session)
    return CarryForwardRunResponse(
        from_year=result.from_year,
        to_year=result.to_year,
        processed=result.processed,
        carried=result.carried,
        skipped=result.skipped,
        errors=result.errors,
        records=[CarryForwardResponse.model_validate(r) for r in result.records],
    )


@carry_forward_router.get("", response_model=CarryForwardListResponse)
async def list_carry_forwards(
    session: SessionDep,
    auth: AdminDep,
    from_year: int = Query(ge=1),
    to_year: int = Query(ge=1),
) -> CarryForwardListResponse:
    """All carry-forwards of one year transition (admin only)."""
    records = await carry_forward_service.list_carry_forwards_for_transition(session, from_year, to_year)
    return CarryForwardListResponse(
        items=[CarryForwardResponse.model_validate(r) for r in records],
        total=len(records),
    )


@carry_forward_router.get("/balances/{balance_id}", response_model=CarryForwardListResponse)
async def get_carry_forward_history(
    balance_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> CarryForwardListResponse:
    """Carry-forward history of a balance, newest first (owner or admin)."""
    balance = await get_balance(session, balance_id)
    ensure_self_or_admin(auth, balance.employee_id)
    records = await carry_forward_service.get_carry_forward_history(session, balance_id)
    return CarryForwardListResponse(
        items=[CarryForwardResponse.model_validate(r) for r in records],
        total=len(records),
    )


@carry_forward_router.get("/balances/{balance_id}/total")
async def get_total_carried_forward(
    balance_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    from_year: int = Query(ge=1),
    to_year: int = Query(ge=1),
) -> dict[str, Decimal]:
    """Amount carried into ``to_year`` for a balance (owner or admin)."""
    balance = await get_balance(session, balance_id)
    ensure_self_or_admin(auth, balance.employee_id)
    total = await carry_forward_service.get_total_carried_forward(session, balance_id, from_year, to_year)
    return {"total": total}
