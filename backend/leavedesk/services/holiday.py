"""Public holidays.

A recurring holiday is stored once and observed on the same month and day
every year. Range queries return it on each of those days that fall in the
range, unless a holiday is stored for that exact date. A recurring holiday
on 29 February is only observed in leap years.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leavedesk.exceptions import AlreadyExistsError, NotFoundError
from leavedesk.models.holiday import PublicHoliday

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from leavedesk.schemas.holiday import CreateHolidayRequest, UpdateHolidayRequest

logger = logging.getLogger(__name__)


async def _flush_or_duplicate(session: AsyncSession, day: date) -> None:
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise AlreadyExistsError(f"Holiday already exists for {day.isoformat()}") from None


async def create_holiday(session: AsyncSession, payload: CreateHolidayRequest) -> PublicHoliday:
    """Create a public holiday. One holiday per date."""
    holiday = PublicHoliday(
        date=payload.date,
        name=payload.name,
        description=payload.description,
        is_recurring=payload.is_recurring,
    )
    session.add(holiday)
    await _flush_or_duplicate(session, payload.date)
    await session.commit()

    logger.info("Created holiday %s on %s (recurring=%s)", holiday.name, holiday.date, holiday.is_recurring)
    return holiday


async def get_holiday(session: AsyncSession, holiday_id: uuid.UUID) -> PublicHoliday:
    holiday = await session.get(PublicHoliday, holiday_id)
    if holiday is None:
        raise NotFoundError(f"Public holiday not found with ID: {holiday_id}")
    return holiday


async def update_holiday(
    session: AsyncSession,
    holiday_id: uuid.UUID,
    payload: UpdateHolidayRequest,
) -> PublicHoliday:
    """Merge the non-null fields of ``payload`` into a holiday."""
    holiday = await get_holiday(session, holiday_id)
    changes = payload.model_dump(exclude_none=True)
    for key, value in changes.items():
        setattr(holiday, key, value)

    await _flush_or_duplicate(session, holiday.date)
    await session.commit()

    logger.info("Updated holiday %s fields=%s", holiday_id, sorted(changes))
    return holiday


async def delete_holiday(session: AsyncSession, holiday_id: uuid.UUID) -> None:
    holiday = await get_holiday(session, holiday_id)
    await session.delete(holiday)
    await session.commit()
    logger.info("Deleted holiday %s", holiday_id)


def _observed_on(holiday: PublicHoliday, year: int) -> date | None:
    """The day a recurring holiday falls on in ``year``, if it has one."""
    if holiday.date.month == 2 and holiday.date.day == 29 and not calendar.isleap(year):
        return None
    return holiday.date.replace(year=year)


async def list_holidays_between(session: AsyncSession, start_date: date, end_date: date) -> list[PublicHoliday]:
    """Holidays in the inclusive date range, in date order.

    Projected occurrences of recurring holidays are detached copies and must
    not be added to the session.
    """
    result = await session.execute(
        select(PublicHoliday)
        .where(
            col(PublicHoliday.date) >= start_date,
            col(PublicHoliday.date) <= end_date,
        )
        .order_by(col(PublicHoliday.date))
    )
    holidays = list(result.scalars().all())
    covered = {h.date for h in holidays}

    recurring = await session.execute(select(PublicHoliday).where(col(PublicHoliday.is_recurring).is_(True)))
    for holiday in recurring.scalars().all():
        for year in range(start_date.year, end_date.year + 1):
            observed = _observed_on(holiday, year)
            if observed is None or observed in covered or not start_date <= observed <= end_date:
                continue
            holidays.append(
                PublicHoliday(
                    id=holiday.id,
                    date=observed,
                    name=holiday.name,
                    description=holiday.description,
                    is_recurring=True,
                )
            )
            covered.add(observed)

    holidays.sort(key=lambda h: h.date)
    return holidays


async def list_holidays(session: AsyncSession, year: int | None = None) -> list[PublicHoliday]:
    """List public holidays with an optional year filter.

    Without a year the stored holidays are returned as they are.
    """
    if year is not None:
        return await list_holidays_between(session, date(year, 1, 1), date(year, 12, 31))

    result = await session.execute(select(PublicHoliday).order_by(col(PublicHoliday.date)))
    return list(result.scalars().all())


async def is_public_holiday(session: AsyncSession, day: date) -> bool:
    """Whether ``day`` is a holiday, counting recurring ones."""
    return bool(await list_holidays_between(session, day, day))
