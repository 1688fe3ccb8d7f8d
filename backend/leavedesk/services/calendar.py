"""Company calendar: approved leaves and public holidays for a year or month."""

from __future__ import annotations

import logging
from calendar import monthrange
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leavedesk.exceptions import ValidationError, Violation
from leavedesk.models.enums import LeaveRequestStatus
from leavedesk.models.leave_type import LeaveType
from leavedesk.models.request import LeaveRequest
from leavedesk.schemas.calendar import CalendarLeaveEntry, CompanyCalendarResponse
from leavedesk.schemas.holiday import HolidayResponse
from leavedesk.services.duration import calculate_working_days
from leavedesk.services.employee import get_employee_service
from leavedesk.services.holiday import list_holidays_between

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from leavedesk.services.employee import EmployeeInfo

logger = logging.getLogger(__name__)


def calendar_range(year: int, month: int | None = None) -> tuple[date, date]:
    """The whole year, or a single month of it, as an inclusive range."""
    if month is None:
        return date(year, 1, 1), date(year, 12, 31)
    if not 1 <= month <= 12:
        raise ValidationError(
            f"Invalid month: {month}",
            [Violation(field="month", message="Month must be between 1 and 12")],
        )
    _, days_in_month = monthrange(year, month)
    return date(year, month, 1), date(year, month, days_in_month)


async def get_company_calendar(session: AsyncSession, year: int, month: int | None = None) -> CompanyCalendarResponse:
    """Approved leaves overlapping the range, with working-day durations, and its holidays."""
    start_date, end_date = calendar_range(year, month)

    result = await session.execute(
        select(LeaveRequest, LeaveType)
        .join(LeaveType, col(LeaveType.id) == col(LeaveRequest.leave_type_id))
        .where(
            col(LeaveRequest.status) == LeaveRequestStatus.APPROVED.value,
            col(LeaveRequest.start_date) <= end_date,
            col(LeaveRequest.end_date) >= start_date,
        )
        .order_by(col(LeaveRequest.start_date))
    )

    employee_service = get_employee_service()
    employees: dict[uuid.UUID, EmployeeInfo | None] = {}
    leaves: list[CalendarLeaveEntry] = []
    department_ids: list[uuid.UUID] = []

    for request, leave_type in result.all():
        if request.employee_id not in employees:
            employees[request.employee_id] = await employee_service.get_employee(request.employee_id)
        employee = employees[request.employee_id]
        department_id = employee.department_id if employee is not None else None
        if department_id is not None and department_id not in department_ids:
            department_ids.append(department_id)

        leaves.append(
            CalendarLeaveEntry(
                request_id=request.id,
                employee_id=request.employee_id,
                employee_name=employee.full_name if employee is not None else None,
                department_id=department_id,
                leave_type_id=leave_type.id,
                leave_type_name=leave_type.name,
                start_date=request.start_date,
                end_date=request.end_date,
                half_day_start=request.half_day_start,
                half_day_end=request.half_day_end,
                working_days=calculate_working_days(
                    request.start_date, request.end_date, request.half_day_start, request.half_day_end
                ),
            )
        )

    holidays = await list_holidays_between(session, start_date, end_date)
    logger.info(
        "Company calendar %s..%s: %d approved leaves, %d holidays",
        start_date,
        end_date,
        len(leaves),
        len(holidays),
    )

    return CompanyCalendarResponse(
        start_date=start_date,
        end_date=end_date,
        leaves=leaves,
        holidays=[HolidayResponse.model_validate(h) for h in holidays],
        department_ids=department_ids,
    )
