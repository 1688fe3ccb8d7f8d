# ruff: noqa: TC003
from __future__ import annotations

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from leavedesk.models.base import TimestampMixin, UUIDBase, aware_datetime


class OutboxEvent(UUIDBase, TimestampMixin, table=True):
    """Domain event written in the same transaction as the change it describes.

    Delivery to notification and email sinks happens after commit, so a
    failing sink never rolls back the state transition.
    """

    __tablename__ = "outbox_event"
    __table_args__ = (sa.Index("ix_outbox_pending", "delivered_at", "attempts"),)

    event_type: str = Field(max_length=50, index=True)
    payload_json: dict[str, Any] = Field(default_factory=dict, sa_type=sa.JSON)
    attempts: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    last_error: str | None = None
    delivered_at: datetime | None = aware_datetime(default=None)
    # Lease held by the dispatcher currently delivering the event.
    claimed_until: datetime | None = aware_datetime(default=None)
