# ruff: noqa: TC003
from __future__ import annotations

import datetime
import uuid

from pydantic import BaseModel, ConfigDict, Field


class CreateHolidayRequest(BaseModel):
    """Request body for creating a public holiday."""

    date: datetime.date
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=500)
    is_recurring: bool = False


class UpdateHolidayRequest(BaseModel):
    """Partial update. Fields left as None keep their stored value."""

    date: datetime.date | None = None
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=500)
    is_recurring: bool | None = None


class HolidayResponse(BaseModel):
    """Response schema for a public holiday.

    Recurring holidays listed for a range carry the date they fall on in that
    range, under the id of the stored holiday.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    date: datetime.date
    name: str
    description: str | None = None
    is_recurring: bool = False


class HolidayListResponse(BaseModel):
    items: list[HolidayResponse]
    total: int


class HolidayCheckResponse(BaseModel):
    date: datetime.date
    is_public_holiday: bool
