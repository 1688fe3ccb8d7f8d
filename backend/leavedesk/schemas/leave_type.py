# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreateLeaveTypeRequest(BaseModel):
    """Request body for creating a leave type.

    Cross-field rules (accrual rate vs. accrual flag, carry-forward cap vs.
    carry-forward flag, annual accrual vs. max duration) are checked by the
    registry so that every violation is reported at once.
    """

    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=500)
    is_default: bool = False
    is_enabled: bool = True
    max_duration: int | None = None
    paid: bool = True
    accrual_based: bool = False
    accrual_rate: Decimal | None = None
    is_carry_forward_enabled: bool = False
    carry_forward_cap: Decimal | None = None
    require_reason: bool = False
    require_document: bool = False


class UpdateLeaveTypeRequest(BaseModel):
    """Partial update. Fields left as None keep their stored value."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=500)
    is_default: bool | None = None
    is_enabled: bool | None = None
    max_duration: int | None = None
    paid: bool | None = None
    accrual_based: bool | None = None
    accrual_rate: Decimal | None = None
    is_carry_forward_enabled: bool | None = None
    carry_forward_cap: Decimal | None = None
    require_reason: bool | None = None
    require_document: bool | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeaveTypeResponse(BaseModel):
    """Response schema for a leave type."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: str | None
    is_default: bool
    is_enabled: bool
    max_duration: int | None
    paid: bool
    accrual_based: bool
    accrual_rate: Decimal | None
    is_carry_forward_enabled: bool
    carry_forward_cap: Decimal | None
    require_reason: bool
    require_document: bool
    created_at: datetime


class LeaveTypeListResponse(BaseModel):
    items: list[LeaveTypeResponse]
    total: int
