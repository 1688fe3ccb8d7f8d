# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class CarryForwardRunRequest(BaseModel):
    """Year transition to process. Defaults to last year into this year."""

    from_year: int | None = Field(default=None, ge=1)
    to_year: int | None = Field(default=None, ge=1)


class CarryForwardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_balance_id: uuid.UUID
    from_year: int
    to_year: int
    carry_forward_date: date
    original_balance: Decimal
    carried_forward_amount: Decimal
    forfeited_amount: Decimal


class CarryForwardRunResponse(BaseModel):
    """Response from the annual carry-forward trigger endpoint."""

    from_year: int
    to_year: int
    processed: int
    carried: int
    skipped: int
    errors: int
    records: list[CarryForwardResponse]


class CarryForwardListResponse(BaseModel):
    items: list[CarryForwardResponse]
    total: int
