"""Carry-forward engine: year-end capping of unused leave."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leavedesk.exceptions import ValidationError, Violation
from leavedesk.models.balance import EmployeeBalance
from leavedesk.models.carry_forward import LeaveCarryForward
from leavedesk.models.enums import OutboxEventType
from leavedesk.services.balance import _apply_new_balance, get_balance_for_update
from leavedesk.services.clock import get_clock
from leavedesk.services.leave_type import get_leave_type, list_eligible_for_carry_forward
from leavedesk.services.outbox import record_event
from leavedesk.services.validation import raise_for_violations, validate_carry_forward

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_ZERO = Decimal("0.00")


@dataclass
class CarryForwardRunResult:
    """Summary of an annual carry-forward run."""

    from_year: int
    to_year: int
    processed: int = 0
    carried: int = 0
    skipped: int = 0
    errors: int = 0
    records: list[LeaveCarryForward] = field(default_factory=list)


def split_carry_forward(original: Decimal, cap: Decimal) -> tuple[Decimal, Decimal]:
    """Split a year-end balance into (carried, forfeited) under ``cap``."""
    carried = min(original, cap)
    return carried, original - carried


def _check_transition(from_year: int, to_year: int) -> None:
    if to_year != from_year + 1:
        raise ValidationError(
            f"Carry-forward must go into the following year (got {from_year} -> {to_year})",
            [Violation(field="to_year", message="to_year must equal from_year + 1")],
        )


async def find_by_balance_and_years(
    session: AsyncSession,
    balance_id: uuid.UUID,
    from_year: int,
    to_year: int,
) -> LeaveCarryForward | None:
    result = await session.execute(
        select(LeaveCarryForward).where(
            col(LeaveCarryForward.employee_balance_id) == balance_id,
            col(LeaveCarryForward.from_year) == from_year,
            col(LeaveCarryForward.to_year) == to_year,
        )
    )
    return result.scalar_one_or_none()


async def process_carry_forward(
    session: AsyncSession,
    balance_id: uuid.UUID,
    from_year: int,
    to_year: int,
) -> LeaveCarryForward | None:
    """Cap one balance at its type's carry-forward limit for a year transition.

    Returns None without changing anything when the transition was already
    processed for this balance or the leave type does not carry forward,
    releasing the balance lock first. Otherwise the record and the new
    balance are committed together.
    """
    _check_transition(from_year, to_year)

    balance = await get_balance_for_update(session, balance_id)
    if await find_by_balance_and_years(session, balance.id, from_year, to_year) is not None:
        logger.debug("Carry-forward %d->%d already processed for balance=%s", from_year, to_year, balance.id)
        await session.rollback()
        return None

    leave_type = await get_leave_type(session, balance.leave_type_id)
    if not leave_type.is_carry_forward_enabled or leave_type.carry_forward_cap is None:
        await session.rollback()
        return None

    original = balance.current_balance
    carried, forfeited = split_carry_forward(original, leave_type.carry_forward_cap)

    record = LeaveCarryForward(
        employee_balance_id=balance.id,
        from_year=from_year,
        to_year=to_year,
        carry_forward_date=get_clock().today(),
        original_balance=original,
        carried_forward_amount=carried,
        forfeited_amount=forfeited,
    )
    raise_for_violations(validate_carry_forward(record))

    session.add(record)
    try:
        await session.flush()
    except IntegrityError:
        # A concurrent run created the same transition first.
        await session.rollback()
        return None

    await _apply_new_balance(session, balance, carried)

    await record_event(
        session,
        OutboxEventType.CARRY_FORWARD_PROCESSED,
        {
            "carry_forward_id": str(record.id),
            "employee_balance_id": str(balance.id),
            "employee_id": str(balance.employee_id),
            "leave_type": leave_type.name,
            "from_year": from_year,
            "to_year": to_year,
            "original_balance": str(original),
            "carried_forward_amount": str(carried),
            "forfeited_amount": str(forfeited),
        },
    )
    await session.commit()

    logger.info(
        "Carried forward %s of %s (forfeited %s) for balance=%s %d->%d",
        carried,
        original,
        forfeited,
        balance.id,
        from_year,
        to_year,
    )
    return record


async def process_annual_carry_forward(session: AsyncSession, from_year: int, to_year: int) -> CarryForwardRunResult:
    """Run the carry-forward for every balance of every carry-forward-enabled type.

    Each balance runs in its own transaction; a failure is logged, counted
    and rolled back without stopping the run.
    """
    _check_transition(from_year, to_year)
    result = CarryForwardRunResult(from_year=from_year, to_year=to_year)

    type_ids = [lt.id for lt in await list_eligible_for_carry_forward(session)]
    if not type_ids:
        return result

    rows = await session.execute(
        select(EmployeeBalance.id)
        .where(col(EmployeeBalance.leave_type_id).in_(type_ids))
        .order_by(col(EmployeeBalance.created_at))
    )
    balance_ids = [row[0] for row in rows.all()]

    for balance_id in balance_ids:
        result.processed += 1
        try:
            record = await process_carry_forward(session, balance_id, from_year, to_year)
            if record is None:
                result.skipped += 1
                continue
            session.expunge(record)
            result.records.append(record)
            result.carried += 1

        except Exception:
            logger.exception(
                "Error processing carry-forward for balance=%s %d->%d", balance_id, from_year, to_year
            )
            await session.rollback()
            result.errors += 1

    logger.info(
        "Carry-forward run %d->%d: processed=%d carried=%d skipped=%d errors=%d",
        from_year,
        to_year,
        result.processed,
        result.carried,
        result.skipped,
        result.errors,
    )
    return result


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_carry_forward_history(session: AsyncSession, balance_id: uuid.UUID) -> list[LeaveCarryForward]:
    """All carry-forwards of a balance, newest first."""
    result = await session.execute(
        select(LeaveCarryForward)
        .where(col(LeaveCarryForward.employee_balance_id) == balance_id)
        .order_by(col(LeaveCarryForward.from_year).desc())
    )
    return list(result.scalars().all())


async def list_carry_forwards_for_transition(
    session: AsyncSession,
    from_year: int,
    to_year: int,
) -> list[LeaveCarryForward]:
    result = await session.execute(
        select(LeaveCarryForward)
        .where(
            col(LeaveCarryForward.from_year) == from_year,
            col(LeaveCarryForward.to_year) == to_year,
        )
        .order_by(col(LeaveCarryForward.created_at))
    )
    return list(result.scalars().all())


async def get_total_carried_forward(
    session: AsyncSession,
    balance_id: uuid.UUID,
    from_year: int,
    to_year: int,
) -> Decimal:
    """Sum carried into ``to_year`` for a balance, or 0.00 when there is none."""
    result = await session.execute(
        select(func.sum(col(LeaveCarryForward.carried_forward_amount))).where(
            col(LeaveCarryForward.employee_balance_id) == balance_id,
            col(LeaveCarryForward.from_year) == from_year,
            col(LeaveCarryForward.to_year) == to_year,
        )
    )
    total = result.scalar_one_or_none()
    return Decimal(str(total)).quantize(_ZERO) if total is not None else _ZERO


async def find_by_balance_and_from_year(
    session: AsyncSession,
    balance_id: uuid.UUID,
    from_year: int,
) -> LeaveCarryForward | None:
    result = await session.execute(
        select(LeaveCarryForward).where(
            col(LeaveCarryForward.employee_balance_id) == balance_id,
            col(LeaveCarryForward.from_year) == from_year,
        )
    )
    return result.scalar_one_or_none()
