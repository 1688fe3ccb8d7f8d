# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from leavedesk.models.enums import LeaveRequestStatus

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class DocumentPayload(BaseModel):
    """Metadata of a file already uploaded to the document store."""

    name: str = Field(min_length=1, max_length=255)
    url: str = Field(min_length=1, max_length=2048)
    visible: bool = True


class SubmitLeaveRequestPayload(BaseModel):
    """Request body for submitting a new leave request."""

    leave_type_id: uuid.UUID
    start_date: date
    end_date: date
    half_day_start: bool = False
    half_day_end: bool = False
    reason: str | None = Field(default=None, max_length=1000)
    documents: list[DocumentPayload] = Field(default_factory=list)
    primary_document: DocumentPayload | None = None


class DecisionPayload(BaseModel):
    """Request body for approving or rejecting a request."""

    status: LeaveRequestStatus
    rejection_reason: str | None = Field(default=None, max_length=1000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    url: str
    visible: bool
    is_primary: bool
    uploaded_at: datetime


class LeaveRequestResponse(BaseModel):
    """Response schema for a single leave request."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type_id: uuid.UUID
    start_date: date
    end_date: date
    half_day_start: bool
    half_day_end: bool
    duration: Decimal
    status: LeaveRequestStatus
    reason: str | None
    rejection_reason: str | None
    manager_id: uuid.UUID | None
    approved_at: datetime | None
    created_at: datetime


class LeaveRequestDetailResponse(LeaveRequestResponse):
    documents: list[DocumentResponse] = Field(default_factory=list)


class LeaveRequestListResponse(BaseModel):
    """Paginated list of leave requests."""

    items: list[LeaveRequestResponse]
    total: int
