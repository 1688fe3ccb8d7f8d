# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Query, status

from leavedesk.api.deps import AdminDep, AuthDep
from leavedesk.db import SessionDep
from leavedesk.schemas.holiday import (
    CreateHolidayRequest,
    HolidayCheckResponse,
    HolidayListResponse,
    HolidayResponse,
    UpdateHolidayRequest,
)
from leavedesk.services import holiday as holiday_service

holidays_router = APIRouter(prefix="/holidays", tags=["holidays"])


@holidays_router.post("", response_model=HolidayResponse, status_code=status.HTTP_201_CREATED)
async def create_holiday(
    payload: CreateHolidayRequest,
    session: SessionDep,
    auth: AdminDep,
) -> HolidayResponse:
    """Create a public holiday (admin only)."""
    return HolidayResponse.model_validate(await holiday_service.create_holiday(session, payload))


@holidays_router.get("", response_model=HolidayListResponse)
async def list_holidays(
    session: SessionDep,
    auth: AuthDep,
    year: int | None = Query(default=None),
) -> HolidayListResponse:
    """List public holidays with optional year filter."""
    holidays = await holiday_service.list_holidays(session, year)
    return HolidayListResponse(
        items=[HolidayResponse.model_validate(h) for h in holidays],
        total=len(holidays),
    )


@holidays_router.get("/check", response_model=HolidayCheckResponse)
async def check_holiday(
    session: SessionDep,
    auth: AuthDep,
    day: date = Query(alias="date"),
) -> HolidayCheckResponse:
    """Whether a date is a public holiday."""
    return HolidayCheckResponse(date=day, is_public_holiday=await holiday_service.is_public_holiday(session, day))


@holidays_router.patch("/{holiday_id}", response_model=HolidayResponse)
async def update_holiday(
    holiday_id: uuid.UUID,
    payload: UpdateHolidayRequest,
    session: SessionDep,
    auth: AdminDep,
) -> HolidayResponse:
    """Update a public holiday (admin only). Fields left out keep their value."""
    return HolidayResponse.model_validate(await holiday_service.update_holiday(session, holiday_id, payload))


@holidays_router.delete("/{holiday_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_holiday(
    holiday_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
) -> None:
    """Delete a public holiday (admin only)."""
    await holiday_service.delete_holiday(session, holiday_id)
