"""Leave type registry: configuration for each category of leave."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leavedesk.exceptions import DuplicateNameError, NotFoundError, ValidationError, Violation
from leavedesk.models.leave_type import LeaveType
from leavedesk.services.validation import raise_for_violations, validate_leave_type

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from leavedesk.schemas.leave_type import CreateLeaveTypeRequest, UpdateLeaveTypeRequest

logger = logging.getLogger(__name__)


async def _name_taken(session: AsyncSession, name: str, exclude_id: uuid.UUID | None = None) -> bool:
    query = select(LeaveType.id).where(col(LeaveType.name) == name)
    if exclude_id is not None:
        query = query.where(col(LeaveType.id) != exclude_id)
    result = await session.execute(query)
    return result.first() is not None


async def _flush_or_duplicate(session: AsyncSession, name: str) -> None:
    """Flush pending changes, mapping a unique-name violation to DuplicateNameError."""
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise DuplicateNameError(f"Leave type with name '{name}' already exists") from None


async def create_leave_type(session: AsyncSession, payload: CreateLeaveTypeRequest) -> LeaveType:
    """Create a leave type after validating its configuration."""
    leave_type = LeaveType(**payload.model_dump())
    raise_for_violations(validate_leave_type(leave_type))

    if await _name_taken(session, leave_type.name):
        raise DuplicateNameError(f"Leave type with name '{leave_type.name}' already exists")

    session.add(leave_type)
    await _flush_or_duplicate(session, leave_type.name)
    await session.commit()

    logger.info("Created leave type %s (%s)", leave_type.name, leave_type.id)
    return leave_type


async def update_leave_type(
    session: AsyncSession,
    leave_type_id: uuid.UUID,
    payload: UpdateLeaveTypeRequest,
) -> LeaveType:
    """Merge the non-null fields of ``payload`` into a leave type and re-validate it.

    Turning off ``accrual_based`` or ``is_carry_forward_enabled`` without
    supplying a value clears the dependent rate or cap.
    """
    leave_type = await get_leave_type(session, leave_type_id)
    changes = payload.model_dump(exclude_none=True)

    if leave_type.is_default and changes.get("is_enabled") is False:
        raise ValidationError(
            "Default leave types cannot be disabled",
            [Violation(field="is_enabled", message="Default leave types cannot be disabled")],
        )

    new_name = changes.get("name")
    if new_name is not None and new_name != leave_type.name and await _name_taken(session, new_name, leave_type.id):
        raise DuplicateNameError(f"Leave type with name '{new_name}' already exists")

    if changes.get("accrual_based") is False and "accrual_rate" not in changes:
        changes["accrual_rate"] = None
    if changes.get("is_carry_forward_enabled") is False and "carry_forward_cap" not in changes:
        changes["carry_forward_cap"] = None

    # Validate a detached copy so a rejected update leaves the loaded row untouched.
    candidate = LeaveType(**{**leave_type.model_dump(), **changes})
    raise_for_violations(validate_leave_type(candidate))

    for key, value in changes.items():
        setattr(leave_type, key, value)

    await _flush_or_duplicate(session, leave_type.name)
    await session.commit()

    logger.info("Updated leave type %s fields=%s", leave_type.id, sorted(changes))
    return leave_type


async def get_leave_type(session: AsyncSession, leave_type_id: uuid.UUID) -> LeaveType:
    """Get a leave type by ID or raise 404."""
    leave_type = await session.get(LeaveType, leave_type_id)
    if leave_type is None:
        raise NotFoundError(f"Leave type not found with ID: {leave_type_id}")
    return leave_type


async def get_leave_type_by_name(session: AsyncSession, name: str) -> LeaveType:
    """Get a leave type by its unique name or raise 404."""
    result = await session.execute(select(LeaveType).where(col(LeaveType.name) == name))
    leave_type = result.scalar_one_or_none()
    if leave_type is None:
        raise NotFoundError(f"Leave type not found with name: {name}")
    return leave_type


async def list_leave_types(session: AsyncSession) -> list[LeaveType]:
    result = await session.execute(select(LeaveType).order_by(col(LeaveType.name)))
    return list(result.scalars().all())


async def list_default_leave_types(session: AsyncSession) -> list[LeaveType]:
    """Leave types every new employee gets a balance for."""
    result = await session.execute(
        select(LeaveType).where(col(LeaveType.is_default).is_(True)).order_by(col(LeaveType.name))
    )
    return list(result.scalars().all())


async def list_eligible_for_accrual(session: AsyncSession) -> list[LeaveType]:
    """Leave types that accrue monthly (accrual-based with a positive rate)."""
    result = await session.execute(
        select(LeaveType)
        .where(
            col(LeaveType.accrual_based).is_(True),
            col(LeaveType.accrual_rate) > 0,
        )
        .order_by(col(LeaveType.name))
    )
    return list(result.scalars().all())


async def list_eligible_for_carry_forward(session: AsyncSession) -> list[LeaveType]:
    """Leave types whose unused balance rolls into the next year."""
    result = await session.execute(
        select(LeaveType)
        .where(
            col(LeaveType.is_carry_forward_enabled).is_(True),
            col(LeaveType.carry_forward_cap) > 0,
        )
        .order_by(col(LeaveType.name))
    )
    return list(result.scalars().all())
