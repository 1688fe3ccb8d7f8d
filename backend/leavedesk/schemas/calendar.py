# ruff: noqa: TC001, TC003
from __future__ import annotations

import datetime
import uuid
from decimal import Decimal

from pydantic import BaseModel

from leavedesk.schemas.holiday import HolidayResponse


class CalendarLeaveEntry(BaseModel):
    """An approved leave shown on the company calendar."""

    request_id: uuid.UUID
    employee_id: uuid.UUID
    employee_name: str | None
    department_id: uuid.UUID | None
    leave_type_id: uuid.UUID
    leave_type_name: str
    start_date: datetime.date
    end_date: datetime.date
    half_day_start: bool
    half_day_end: bool
    working_days: Decimal


class CompanyCalendarResponse(BaseModel):
    """Approved leaves and public holidays within a year or month."""

    start_date: datetime.date
    end_date: datetime.date
    leaves: list[CalendarLeaveEntry]
    holidays: list[HolidayResponse]
    department_ids: list[uuid.UUID]
