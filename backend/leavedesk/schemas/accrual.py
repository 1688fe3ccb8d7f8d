# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from leavedesk.models.enums import AccrualPeriodStatus


class AccrualPeriodRequest(BaseModel):
    """Optional period override. Defaults to the month before today."""

    year: int | None = Field(default=None, ge=1)
    month: int | None = Field(default=None, ge=1, le=12)


class AccrualResponse(BaseModel):
    """A single posted accrual."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_balance_id: uuid.UUID
    accrual_date: date
    accrual_year: int
    accrual_month: int
    amount: Decimal
    is_prorated: bool


class AccrualRunResponse(BaseModel):
    """Response from the monthly accrual trigger endpoint."""

    year: int
    month: int
    processed: int
    accrued: int
    skipped: int
    errors: int
    accruals: list[AccrualResponse]


class AccrualHistorySummary(BaseModel):
    """Aggregate of all accruals posted for one period."""

    year: int
    month: int
    employee_count: int
    total_accruals: int
    total_days_accrued: Decimal
    status: AccrualPeriodStatus


class AccrualHistoryResponse(BaseModel):
    items: list[AccrualHistorySummary]
    total: int


class AccrualListResponse(BaseModel):
    items: list[AccrualResponse]
    total: int
