# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leavedesk.models.base import TimestampMixin, UUIDBase, reference


class LeaveAccrual(UUIDBase, TimestampMixin, table=True):
    """Append-only record of one monthly accrual posted to a balance."""

    __tablename__ = "leave_accrual"
    __table_args__ = (
        sa.UniqueConstraint(
            "employee_balance_id",
            "accrual_year",
            "accrual_month",
            name="uq_accrual_balance_period",
        ),
        sa.Index("ix_accrual_period", "accrual_year", "accrual_month"),
    )

    employee_balance_id: uuid.UUID = reference("employee_balance.id")
    accrual_date: date
    accrual_year: int
    accrual_month: int
    amount: Decimal = Field(max_digits=4, decimal_places=2)
    is_prorated: bool = False
