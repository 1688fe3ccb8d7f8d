"""Balance store: per-employee, per-leave-type balances.

Every mutation of ``current_balance`` goes through ``_apply_new_balance``,
which runs on a row locked with SELECT FOR UPDATE, re-validates the balance
invariants and bumps ``version``. The mutators do not commit so that the
accrual and carry-forward engines can pair the change with their own record
in a single transaction.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leavedesk.exceptions import AlreadyExistsError, InvalidBalanceError, NotFoundError
from leavedesk.models.balance import EmployeeBalance
from leavedesk.models.leave_type import LeaveType
from leavedesk.services.clock import get_clock
from leavedesk.services.employee import get_employee_service
from leavedesk.services.leave_type import get_leave_type, list_default_leave_types
from leavedesk.services.validation import validate_balance

if TYPE_CHECKING:
    import uuid
    from datetime import date

    from sqlalchemy.ext.asyncio import AsyncSession

    from leavedesk.services.employee import EmployeeInfo

logger = logging.getLogger(__name__)

_ZERO = Decimal("0.00")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


async def get_balance_for_update(session: AsyncSession, balance_id: uuid.UUID) -> EmployeeBalance:
    """Fetch a balance with a row lock. Raises 404 if not found."""
    result = await session.execute(
        select(EmployeeBalance)
        .where(col(EmployeeBalance.id) == balance_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    balance = result.scalar_one_or_none()
    if balance is None:
        raise NotFoundError(f"Employee balance not found with ID: {balance_id}")
    return balance


async def _apply_new_balance(session: AsyncSession, balance: EmployeeBalance, new_balance: Decimal) -> None:
    """Validate and write ``new_balance`` onto a locked balance row.

    Raises InvalidBalanceError and leaves the row unchanged if the result
    would be negative, above ``max_balance`` or otherwise invalid.
    """
    if new_balance < 0:
        raise InvalidBalanceError(f"Balance cannot be negative (would be {new_balance})")
    if balance.max_balance is not None and new_balance > balance.max_balance:
        raise InvalidBalanceError(
            f"Balance {new_balance} would exceed maximum balance {balance.max_balance}"
        )

    previous = balance.current_balance
    balance.current_balance = new_balance
    violations = validate_balance(balance, get_clock().today())
    if violations:
        balance.current_balance = previous
        raise InvalidBalanceError("; ".join(v.message for v in violations))

    balance.version += 1
    await session.flush()


async def _active_employee(employee_id: uuid.UUID, cache: dict[uuid.UUID, EmployeeInfo | None]) -> bool:
    if employee_id not in cache:
        cache[employee_id] = await get_employee_service().get_employee(employee_id)
    employee = cache[employee_id]
    return employee is not None and employee.is_active


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


async def create_balance(
    session: AsyncSession,
    employee: EmployeeInfo,
    leave_type_id: uuid.UUID,
) -> EmployeeBalance:
    """Create an empty balance for an employee and leave type.

    Accrual eligibility is derived from the employee status and the leave
    type. ``max_balance`` mirrors the type's ``max_duration``.
    """
    leave_type = await get_leave_type(session, leave_type_id)

    existing = await session.execute(
        select(EmployeeBalance.id).where(
            col(EmployeeBalance.employee_id) == employee.id,
            col(EmployeeBalance.leave_type_id) == leave_type_id,
        )
    )
    if existing.first() is not None:
        raise AlreadyExistsError(
            f"Balance already exists for employee {employee.id} and leave type {leave_type.name}"
        )

    balance = EmployeeBalance(
        employee_id=employee.id,
        leave_type_id=leave_type.id,
        current_balance=_ZERO,
        max_balance=Decimal(leave_type.max_duration) if leave_type.max_duration is not None else None,
        is_eligible_for_accrual=employee.is_active and leave_type.accrual_based,
    )
    session.add(balance)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise AlreadyExistsError(
            f"Balance already exists for employee {employee.id} and leave type {leave_type.name}"
        ) from None

    await session.commit()
    logger.info("Created balance %s for employee=%s type=%s", balance.id, employee.id, leave_type.name)
    return balance


async def initialize_balances_for_employee(session: AsyncSession, employee: EmployeeInfo) -> list[EmployeeBalance]:
    """Create a balance for every default leave type the employee does not have yet."""
    existing = await session.execute(
        select(EmployeeBalance.leave_type_id).where(col(EmployeeBalance.employee_id) == employee.id)
    )
    have = {row[0] for row in existing.all()}

    created: list[EmployeeBalance] = []
    for leave_type in await list_default_leave_types(session):
        if leave_type.id in have:
            continue
        created.append(await create_balance(session, employee, leave_type.id))
    return created


# ---------------------------------------------------------------------------
# Mutation
# ---------------------------------------------------------------------------


async def adjust_balance(session: AsyncSession, balance_id: uuid.UUID, delta: Decimal) -> EmployeeBalance:
    """Add ``delta`` (may be negative) to a balance. Does not commit."""
    balance = await get_balance_for_update(session, balance_id)
    await _apply_new_balance(session, balance, balance.current_balance + delta)
    return balance


async def set_balance(session: AsyncSession, balance_id: uuid.UUID, new_balance: Decimal) -> EmployeeBalance:
    """Overwrite a balance with an absolute amount. Does not commit."""
    balance = await get_balance_for_update(session, balance_id)
    await _apply_new_balance(session, balance, new_balance)
    return balance


async def set_max_balance(session: AsyncSession, balance_id: uuid.UUID, new_max: Decimal) -> EmployeeBalance:
    """Change the cap of a balance."""
    balance = await get_balance_for_update(session, balance_id)
    if new_max <= 0:
        raise InvalidBalanceError("Maximum balance must be greater than zero")
    if balance.current_balance > new_max:
        raise InvalidBalanceError(
            f"Current balance {balance.current_balance} exceeds new maximum balance {new_max}"
        )

    balance.max_balance = new_max
    balance.version += 1
    await session.commit()
    return balance


async def set_accrual_eligibility(session: AsyncSession, balance_id: uuid.UUID, eligible: bool) -> EmployeeBalance:
    balance = await get_balance_for_update(session, balance_id)
    balance.is_eligible_for_accrual = eligible
    balance.version += 1
    await session.commit()
    return balance


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def get_balance(session: AsyncSession, balance_id: uuid.UUID) -> EmployeeBalance:
    balance = await session.get(EmployeeBalance, balance_id)
    if balance is None:
        raise NotFoundError(f"Employee balance not found with ID: {balance_id}")
    return balance


async def get_balance_for(
    session: AsyncSession,
    employee_id: uuid.UUID,
    leave_type_id: uuid.UUID,
) -> EmployeeBalance:
    result = await session.execute(
        select(EmployeeBalance).where(
            col(EmployeeBalance.employee_id) == employee_id,
            col(EmployeeBalance.leave_type_id) == leave_type_id,
        )
    )
    balance = result.scalar_one_or_none()
    if balance is None:
        raise NotFoundError(f"Balance not found for employee {employee_id} and leave type {leave_type_id}")
    return balance


async def list_employee_balances(session: AsyncSession, employee_id: uuid.UUID) -> list[EmployeeBalance]:
    result = await session.execute(
        select(EmployeeBalance)
        .where(col(EmployeeBalance.employee_id) == employee_id)
        .order_by(col(EmployeeBalance.created_at))
    )
    return list(result.scalars().all())


async def find_eligible_for_accrual(session: AsyncSession, as_of: date | None) -> list[EmployeeBalance]:
    """Balances that should accrue.

    A balance qualifies when it is flagged eligible, its leave type is
    accrual-based and its employee is ACTIVE. When ``as_of`` is given, it must
    also not have accrued on or after that date. The monthly run passes None
    and relies on the per-period check instead, so that several months can be
    backfilled on the same day.
    """
    query = (
        select(EmployeeBalance)
        .join(LeaveType, col(LeaveType.id) == col(EmployeeBalance.leave_type_id))
        .where(
            col(EmployeeBalance.is_eligible_for_accrual).is_(True),
            col(LeaveType.accrual_based).is_(True),
        )
        .order_by(col(EmployeeBalance.created_at))
    )
    if as_of is not None:
        query = query.where(
            or_(
                col(EmployeeBalance.last_accrual_date).is_(None),
                col(EmployeeBalance.last_accrual_date) < as_of,
            )
        )
    result = await session.execute(query)
    cache: dict[uuid.UUID, EmployeeInfo | None] = {}
    return [b for b in result.scalars().all() if await _active_employee(b.employee_id, cache)]


async def find_eligible_for_carry_forward(session: AsyncSession) -> list[EmployeeBalance]:
    """Positive balances of active employees on carry-forward-enabled types."""
    result = await session.execute(
        select(EmployeeBalance)
        .join(LeaveType, col(LeaveType.id) == col(EmployeeBalance.leave_type_id))
        .where(
            col(LeaveType.is_carry_forward_enabled).is_(True),
            col(EmployeeBalance.current_balance) > 0,
        )
        .order_by(col(EmployeeBalance.created_at))
    )
    cache: dict[uuid.UUID, EmployeeInfo | None] = {}
    return [b for b in result.scalars().all() if await _active_employee(b.employee_id, cache)]


async def find_exceeding_max_balance(session: AsyncSession) -> list[EmployeeBalance]:
    """Integrity report: balances above their cap."""
    result = await session.execute(
        select(EmployeeBalance).where(
            col(EmployeeBalance.max_balance).is_not(None),
            col(EmployeeBalance.current_balance) > col(EmployeeBalance.max_balance),
        )
    )
    return list(result.scalars().all())
