from __future__ import annotations

from decimal import Decimal

from sqlmodel import Field

from leavedesk.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase


class LeaveType(UUIDBase, TimestampMixin, UpdatedAtMixin, table=True):
    """Configuration for one category of leave (annual, sick, ...)."""

    __tablename__ = "leave_type"

    name: str = Field(max_length=255, unique=True, index=True)
    description: str | None = Field(default=None, max_length=500)
    is_default: bool = False
    is_enabled: bool = True
    max_duration: int | None = None
    paid: bool = True
    accrual_based: bool = False
    accrual_rate: Decimal | None = Field(default=None, max_digits=4, decimal_places=2)
    is_carry_forward_enabled: bool = False
    carry_forward_cap: Decimal | None = Field(default=None, max_digits=4, decimal_places=2)
    require_reason: bool = False
    require_document: bool = False
