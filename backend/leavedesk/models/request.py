# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leavedesk.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase, aware_datetime, reference
from leavedesk.models.enums import LeaveRequestStatus


class LeaveRequest(UUIDBase, TimestampMixin, UpdatedAtMixin, table=True):
    """An employee's leave request with approval workflow state."""

    __tablename__ = "leave_request"
    __table_args__ = (
        sa.Index("ix_leave_request_dates", "start_date", "end_date"),
        sa.CheckConstraint("end_date >= start_date", name="ck_leave_request_date_order"),
    )

    employee_id: uuid.UUID = Field(index=True)
    leave_type_id: uuid.UUID = reference("leave_type.id")
    start_date: date
    end_date: date
    half_day_start: bool = False
    half_day_end: bool = False
    duration: Decimal = Field(max_digits=6, decimal_places=1)
    status: str = Field(
        default=LeaveRequestStatus.PENDING, max_length=50, index=True, sa_column_kwargs={"server_default": "PENDING"}
    )
    reason: str | None = None
    rejection_reason: str | None = None
    manager_id: uuid.UUID | None = None
    approved_at: datetime | None = aware_datetime(default=None)


class LeaveDocument(UUIDBase, table=True):
    """Metadata for a file attached to a leave request."""

    __tablename__ = "leave_document"

    leave_request_id: uuid.UUID = reference("leave_request.id", ondelete="CASCADE")
    name: str = Field(max_length=255)
    url: str = Field(max_length=2048)
    visible: bool = True
    is_primary: bool = False
    uploaded_at: datetime = aware_datetime()
