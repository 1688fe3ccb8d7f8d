# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leavedesk.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase, reference


class EmployeeBalance(UUIDBase, TimestampMixin, UpdatedAtMixin, table=True):
    """Mutable leave ledger for one (employee, leave type) pair."""

    __tablename__ = "employee_balance"
    __table_args__ = (sa.UniqueConstraint("employee_id", "leave_type_id", name="uq_balance_employee_type"),)

    employee_id: uuid.UUID = Field(index=True)
    leave_type_id: uuid.UUID = reference("leave_type.id")
    current_balance: Decimal = Field(default=Decimal("0.00"), max_digits=4, decimal_places=2)
    max_balance: Decimal | None = Field(default=None, max_digits=5, decimal_places=2)
    last_accrual_date: date | None = None
    is_eligible_for_accrual: bool = False
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
