# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

from fastapi import APIRouter, Query

from leavedesk.api.deps import AuthDep
from leavedesk.db import SessionDep
from leavedesk.schemas.calendar import CompanyCalendarResponse
from leavedesk.services.calendar import get_company_calendar

calendar_router = APIRouter(prefix="/calendar", tags=["calendar"])


@calendar_router.get("", response_model=CompanyCalendarResponse)
async def company_calendar(
    session: SessionDep,
    auth: AuthDep,
    year: int = Query(ge=1),
    month: int | None = Query(default=None),
) -> CompanyCalendarResponse:
    """Approved leaves and public holidays for a year, or one month of it."""
    return await get_company_calendar(session, year, month)
