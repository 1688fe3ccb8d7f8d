"""Shared table bases and column helpers.

All timestamps are stored timezone-aware. Foreign keys between leave tables
are non-null and indexed, since every lookup walks them.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(UTC)


def aware_datetime(**kwargs: Any) -> Any:
    """Field stored as ``TIMESTAMP WITH TIME ZONE``."""
    return Field(sa_type=sa.DateTime(timezone=True), **kwargs)  # ty: ignore[invalid-argument-type]


def reference(target: str, *, ondelete: str | None = None) -> Any:
    """Required, indexed UUID foreign key to ``target`` (``"table.column"``)."""
    return Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey(target, ondelete=ondelete), nullable=False, index=True),
    )


class UUIDBase(SQLModel):
    """Primary key generated client-side so ids exist before flush."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, sa_type=sa.Uuid)


class TimestampMixin(SQLModel):
    created_at: datetime = aware_datetime(
        default_factory=utcnow,
        sa_column_kwargs={"server_default": sa.func.now()},
    )


class UpdatedAtMixin(SQLModel):
    """Adds ``updated_at``, refreshed by the ORM on every UPDATE."""

    updated_at: datetime = aware_datetime(
        default_factory=utcnow,
        sa_column_kwargs={"server_default": sa.func.now(), "onupdate": utcnow},
    )
