"""Leave duration arithmetic.

Two computations are kept apart on purpose. Submission validates the raw
calendar-day span against a leave type's ``max_duration``, while listings and
the company calendar show working days with weekends excluded.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

_HALF_DAY = Decimal("0.5")
_SATURDAY = 5


def _is_weekday(day: date) -> bool:
    return day.weekday() < _SATURDAY


def calculate_submission_duration(
    start_date: date,
    end_date: date,
    half_day_start: bool = False,
    half_day_end: bool = False,
) -> Decimal:
    """Inclusive calendar days, minus half a day per half-day flag."""
    duration = Decimal((end_date - start_date).days + 1)
    if half_day_start:
        duration -= _HALF_DAY
    if half_day_end:
        duration -= _HALF_DAY
    return duration


def calculate_working_days(
    start_date: date,
    end_date: date,
    half_day_start: bool = False,
    half_day_end: bool = False,
) -> Decimal:
    """Weekdays (Mon-Fri) in the inclusive range.

    Half-day flags only reduce the count when their boundary day is itself a
    weekday.
    """
    days = Decimal(0)
    current = start_date
    one_day = timedelta(days=1)
    while current <= end_date:
        if _is_weekday(current):
            days += 1
        current += one_day

    if half_day_start and _is_weekday(start_date):
        days -= _HALF_DAY
    if half_day_end and _is_weekday(end_date):
        days -= _HALF_DAY
    return max(days, Decimal(0))
