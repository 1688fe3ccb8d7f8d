# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leavedesk.models.base import TimestampMixin, UUIDBase, reference


class LeaveCarryForward(UUIDBase, TimestampMixin, table=True):
    """Append-only record of one year-end carry-forward for a balance."""

    __tablename__ = "leave_carry_forward"
    __table_args__ = (
        sa.UniqueConstraint(
            "employee_balance_id",
            "from_year",
            "to_year",
            name="uq_carry_forward_balance_years",
        ),
    )

    employee_balance_id: uuid.UUID = reference("employee_balance.id")
    from_year: int
    to_year: int
    carry_forward_date: date
    original_balance: Decimal = Field(max_digits=4, decimal_places=2)
    carried_forward_amount: Decimal = Field(max_digits=4, decimal_places=2)
    forfeited_amount: Decimal = Field(max_digits=4, decimal_places=2)
