# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Balance response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    """Balance for one (employee, leave type) pair."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type_id: uuid.UUID
    current_balance: Decimal
    max_balance: Decimal | None
    last_accrual_date: date | None
    is_eligible_for_accrual: bool
    version: int
    updated_at: datetime | None


class BalanceListResponse(BaseModel):
    """All balances of an employee."""

    items: list[BalanceResponse]
    total: int


# ---------------------------------------------------------------------------
# Mutation request schemas
# ---------------------------------------------------------------------------


class CreateBalanceRequest(BaseModel):
    leave_type_id: uuid.UUID


class AdjustBalanceRequest(BaseModel):
    """Request body for an admin balance adjustment."""

    delta: Decimal = Field(description="Signed amount: positive to add, negative to deduct")


class SetMaxBalanceRequest(BaseModel):
    max_balance: Decimal


class SetEligibilityRequest(BaseModel):
    is_eligible_for_accrual: bool
