# ruff: noqa: TC003
from __future__ import annotations

import datetime

import sqlalchemy as sa
from sqlmodel import Field

from leavedesk.models.base import UUIDBase


class PublicHoliday(UUIDBase, table=True):
    """A public holiday shown on the company calendar."""

    __tablename__ = "public_holiday"
    __table_args__ = (sa.UniqueConstraint("date", name="uq_public_holiday_date"),)

    date: datetime.date
    name: str = Field(max_length=255)
    description: str | None = Field(default=None, max_length=500)
    # Observed on the same month and day every year.
    is_recurring: bool = Field(default=False)
