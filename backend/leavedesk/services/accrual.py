"""Accrual engine: monthly leave accrual with proration for mid-month joiners."""

from __future__ import annotations

import logging
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leavedesk.exceptions import NotFoundError, StateError, ValidationError
from leavedesk.models.accrual import LeaveAccrual
from leavedesk.models.balance import EmployeeBalance
from leavedesk.models.enums import AccrualPeriodStatus, OutboxEventType
from leavedesk.schemas.accrual import AccrualHistorySummary
from leavedesk.services.balance import (
    _apply_new_balance,
    find_eligible_for_accrual,
    get_balance_for_update,
    list_employee_balances,
)
from leavedesk.services.clock import get_clock
from leavedesk.services.employee import get_employee_service
from leavedesk.services.leave_type import get_leave_type
from leavedesk.services.outbox import record_event
from leavedesk.services.validation import raise_for_violations, validate_year_month

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from leavedesk.models.leave_type import LeaveType
    from leavedesk.services.employee import EmployeeInfo

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_ZERO = Decimal("0.00")


@dataclass(frozen=True, order=True)
class YearMonth:
    """A calendar month, the period key of an accrual."""

    year: int
    month: int

    def __post_init__(self) -> None:
        raise_for_violations(validate_year_month(self.year, self.month))

    @classmethod
    def of(cls, day: date) -> YearMonth:
        return cls(day.year, day.month)

    def previous(self) -> YearMonth:
        if self.month == 1:
            return YearMonth(self.year - 1, 12)
        return YearMonth(self.year, self.month - 1)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass
class AccrualRunResult:
    """Summary of a monthly accrual run."""

    year_month: YearMonth
    processed: int = 0
    accrued: int = 0
    skipped: int = 0
    errors: int = 0
    accruals: list[LeaveAccrual] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Pure computation helpers (no DB)
# ---------------------------------------------------------------------------


def month_bounds(year_month: YearMonth) -> tuple[date, date]:
    """Return (first day, last day) of the month, both inclusive."""
    _, days_in_month = monthrange(year_month.year, year_month.month)
    return date(year_month.year, year_month.month, 1), date(year_month.year, year_month.month, days_in_month)


def compute_accrual_amount(rate: Decimal, joined_date: date, year_month: YearMonth) -> Decimal:
    """Amount accrued for one month at a monthly ``rate``.

    Employees who joined before the month get the full rate, those who join
    after it get nothing, and a join inside the month is prorated by the
    number of days from the join date to month end (inclusive), rounded
    half-up to 2 decimals.
    """
    month_start, month_end = month_bounds(year_month)
    if joined_date < month_start:
        return rate.quantize(_CENT, rounding=ROUND_HALF_UP)
    if joined_date > month_end:
        return _ZERO

    worked_days = (month_end - joined_date).days + 1
    total_days = (month_end - month_start).days + 1
    return (rate * worked_days / total_days).quantize(_CENT, rounding=ROUND_HALF_UP)


def is_prorated(joined_date: date, year_month: YearMonth) -> bool:
    """True iff the employee joined during this exact month."""
    month_start, month_end = month_bounds(year_month)
    return month_start <= joined_date <= month_end


def is_eligible(balance: EmployeeBalance, leave_type: LeaveType, employee: EmployeeInfo) -> bool:
    return balance.is_eligible_for_accrual and employee.is_active and leave_type.accrual_based


def previous_year_month(today: date) -> YearMonth:
    """The period a run on ``today`` processes by default: last month."""
    return YearMonth.of(today).previous()


# ---------------------------------------------------------------------------
# DB-backed helpers
# ---------------------------------------------------------------------------


async def _get_employee_or_404(employee_id: uuid.UUID) -> EmployeeInfo:
    employee = await get_employee_service().get_employee(employee_id)
    if employee is None:
        raise NotFoundError(f"Employee not found: {employee_id}")
    return employee


async def _period_processed_for_balance(session: AsyncSession, balance_id: uuid.UUID, year_month: YearMonth) -> bool:
    result = await session.execute(
        select(LeaveAccrual.id).where(
            col(LeaveAccrual.employee_balance_id) == balance_id,
            col(LeaveAccrual.accrual_year) == year_month.year,
            col(LeaveAccrual.accrual_month) == year_month.month,
        )
    )
    return result.first() is not None


# ---------------------------------------------------------------------------
# Single-balance processing
# ---------------------------------------------------------------------------


async def _post_accrual(
    session: AsyncSession,
    balance: EmployeeBalance,
    leave_type: LeaveType,
    employee: EmployeeInfo,
    year_month: YearMonth,
) -> LeaveAccrual:
    """Add the period's amount to a locked balance and stage the accrual row and event.

    Flushes but does not commit. A duplicate period caught by the unique
    constraint rolls the transaction back and raises StateError.
    """
    today = get_clock().today()
    if is_eligible(balance, leave_type, employee) and leave_type.accrual_rate is not None:
        amount = compute_accrual_amount(leave_type.accrual_rate, employee.joined_date, year_month)
    else:
        amount = _ZERO
    prorated = is_prorated(employee.joined_date, year_month)

    balance_id = balance.id
    await _apply_new_balance(session, balance, balance.current_balance + amount)
    balance.last_accrual_date = today

    accrual = LeaveAccrual(
        employee_balance_id=balance_id,
        accrual_date=today,
        accrual_year=year_month.year,
        accrual_month=year_month.month,
        amount=amount,
        is_prorated=prorated,
    )
    session.add(accrual)

    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise StateError(f"Accrual already processed for balance {balance_id} for {year_month}") from None

    await record_event(
        session,
        OutboxEventType.ACCRUAL_PROCESSED,
        {
            "accrual_id": str(accrual.id),
            "employee_balance_id": str(balance_id),
            "employee_id": str(employee.id),
            "leave_type": leave_type.name,
            "year_month": str(year_month),
            "amount": str(amount),
            "is_prorated": prorated,
        },
    )
    logger.info(
        "Accrued %s to balance=%s employee=%s for %s (prorated=%s)",
        amount,
        balance_id,
        employee.id,
        year_month,
        prorated,
    )
    return accrual


async def process_accrual_for_balance(
    session: AsyncSession,
    balance_id: uuid.UUID,
    year_month: YearMonth,
) -> LeaveAccrual:
    """Post the accrual for one balance and period in a single transaction.

    1. Lock the balance and resolve its leave type and employee.
    2. Reject a period that was already accrued (StateError).
    3. Compute the amount (zero for ineligible balances) and proration flag.
    4. Add the amount through the balance store (InvalidBalanceError on cap).
    5. Stamp last_accrual_date, insert the accrual, record the event, commit.
    """
    balance = await get_balance_for_update(session, balance_id)
    leave_type = await get_leave_type(session, balance.leave_type_id)
    employee = await _get_employee_or_404(balance.employee_id)

    if await _period_processed_for_balance(session, balance.id, year_month):
        raise StateError(f"Accrual already processed for balance {balance.id} for {year_month}")

    accrual = await _post_accrual(session, balance, leave_type, employee, year_month)
    await session.commit()
    return accrual


# ---------------------------------------------------------------------------
# Batch orchestration
# ---------------------------------------------------------------------------


async def process_monthly_accruals(session: AsyncSession, year_month: YearMonth) -> AccrualRunResult:
    """Accrue ``year_month`` for every eligible balance not yet processed.

    Each balance runs in its own transaction; a failure is logged, counted
    and rolled back without stopping the run.
    """
    result = AccrualRunResult(year_month=year_month)

    balance_ids = [b.id for b in await find_eligible_for_accrual(session, as_of=None)]

    for balance_id in balance_ids:
        result.processed += 1
        try:
            if await _period_processed_for_balance(session, balance_id, year_month):
                result.skipped += 1
                continue

            accrual = await process_accrual_for_balance(session, balance_id, year_month)
            session.expunge(accrual)
            result.accruals.append(accrual)
            result.accrued += 1

        except Exception:
            logger.exception("Error processing accrual for balance=%s period=%s", balance_id, year_month)
            await session.rollback()
            result.errors += 1

    logger.info(
        "Accrual run %s: processed=%d accrued=%d skipped=%d errors=%d",
        year_month,
        result.processed,
        result.accrued,
        result.skipped,
        result.errors,
    )
    return result


async def process_employee_accruals(
    session: AsyncSession,
    employee_id: uuid.UUID,
    year_month: YearMonth,
) -> list[LeaveAccrual]:
    """Accrue ``year_month`` for every eligible balance of one employee, atomically.

    Balances are filtered with the same rule as the monthly run. Balances
    that already accrued the period are skipped, so a run interrupted by an
    earlier failure can be retried. StateError is raised only when every
    eligible balance has already accrued. Any failure rolls back the whole run.
    """
    employee = await _get_employee_or_404(employee_id)

    balances = await list_employee_balances(session, employee_id)
    if not balances:
        raise ValidationError(f"Employee has no leave balances configured: {employee_id}")

    eligible: list[tuple[uuid.UUID, LeaveType]] = []
    for balance in balances:
        leave_type = await get_leave_type(session, balance.leave_type_id)
        if is_eligible(balance, leave_type, employee):
            eligible.append((balance.id, leave_type))

    pending = [
        (balance_id, leave_type)
        for balance_id, leave_type in eligible
        if not await _period_processed_for_balance(session, balance_id, year_month)
    ]
    if eligible and not pending:
        raise StateError(f"Accruals have already been processed for employee {employee_id} for {year_month}")

    accruals: list[LeaveAccrual] = []
    try:
        for balance_id, leave_type in pending:
            balance = await get_balance_for_update(session, balance_id)
            accruals.append(await _post_accrual(session, balance, leave_type, employee, year_month))
    except Exception:
        await session.rollback()
        raise

    await session.commit()
    logger.info(
        "Employee accrual run employee=%s period=%s accrued=%d skipped=%d",
        employee_id,
        year_month,
        len(accruals),
        len(eligible) - len(pending),
    )
    return accruals


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def has_accruals_been_processed(session: AsyncSession, year: int, month: int) -> bool:
    """True if any accrual was posted for the given period."""
    raise_for_violations(validate_year_month(year, month))
    result = await session.execute(
        select(LeaveAccrual.id)
        .where(
            col(LeaveAccrual.accrual_year) == year,
            col(LeaveAccrual.accrual_month) == month,
        )
        .limit(1)
    )
    return result.first() is not None


async def list_accruals_for_balance(
    session: AsyncSession,
    balance_id: uuid.UUID,
    year: int | None = None,
    month: int | None = None,
) -> list[LeaveAccrual]:
    query = select(LeaveAccrual).where(col(LeaveAccrual.employee_balance_id) == balance_id)
    if year is not None:
        query = query.where(col(LeaveAccrual.accrual_year) == year)
    if month is not None:
        query = query.where(col(LeaveAccrual.accrual_month) == month)

    result = await session.execute(
        query.order_by(col(LeaveAccrual.accrual_year).desc(), col(LeaveAccrual.accrual_month).desc())
    )
    return list(result.scalars().all())


def _period_status(zero_amounts: int, prorated: int) -> AccrualPeriodStatus:
    if zero_amounts > 0:
        return AccrualPeriodStatus.FAILED
    if prorated > 0:
        return AccrualPeriodStatus.PARTIAL
    return AccrualPeriodStatus.COMPLETED


async def get_accrual_history_summary(session: AsyncSession) -> list[AccrualHistorySummary]:
    """One summary row per processed period, newest first."""
    result = await session.execute(
        select(  # type: ignore[call-overload]
            col(LeaveAccrual.accrual_year),
            col(LeaveAccrual.accrual_month),
            func.count(func.distinct(col(EmployeeBalance.employee_id))).label("employee_count"),
            func.count(col(LeaveAccrual.id)).label("total_accruals"),
            func.coalesce(func.sum(col(LeaveAccrual.amount)), 0).label("total_amount"),
            func.sum(case((col(LeaveAccrual.amount) == 0, 1), else_=0)).label("zero_amounts"),
            func.sum(case((col(LeaveAccrual.is_prorated).is_(True), 1), else_=0)).label("prorated"),
        )
        .join(EmployeeBalance, col(EmployeeBalance.id) == col(LeaveAccrual.employee_balance_id))
        .group_by(col(LeaveAccrual.accrual_year), col(LeaveAccrual.accrual_month))
        .order_by(col(LeaveAccrual.accrual_year).desc(), col(LeaveAccrual.accrual_month).desc())
    )

    return [
        AccrualHistorySummary(
            year=row.accrual_year,
            month=row.accrual_month,
            employee_count=row.employee_count,
            total_accruals=row.total_accruals,
            total_days_accrued=Decimal(str(row.total_amount)).quantize(_CENT, rounding=ROUND_HALF_UP),
            status=_period_status(row.zero_amounts or 0, row.prorated or 0),
        )
        for row in result.all()
    ]


async def get_accrual_details(session: AsyncSession, accrual_id: uuid.UUID) -> list[LeaveAccrual]:
    """All accruals posted in the same period as ``accrual_id``."""
    accrual = await session.get(LeaveAccrual, accrual_id)
    if accrual is None:
        raise NotFoundError(f"Accrual not found with ID: {accrual_id}")

    result = await session.execute(
        select(LeaveAccrual)
        .where(
            col(LeaveAccrual.accrual_year) == accrual.accrual_year,
            col(LeaveAccrual.accrual_month) == accrual.accrual_month,
        )
        .order_by(col(LeaveAccrual.created_at))
    )
    return list(result.scalars().all())
