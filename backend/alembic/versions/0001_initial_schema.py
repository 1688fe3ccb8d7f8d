"""initial leave schema

Revision ID: 0001
Revises:
Create Date: 2024-03-01 00:00:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", sa.Uuid(), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    op.create_table(
        "leave_type",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), nullable=False),
        sa.Column("max_duration", sa.Integer(), nullable=True),
        sa.Column("paid", sa.Boolean(), nullable=False),
        sa.Column("accrual_based", sa.Boolean(), nullable=False),
        sa.Column("accrual_rate", sa.Numeric(precision=4, scale=2), nullable=True),
        sa.Column("is_carry_forward_enabled", sa.Boolean(), nullable=False),
        sa.Column("carry_forward_cap", sa.Numeric(precision=4, scale=2), nullable=True),
        sa.Column("require_reason", sa.Boolean(), nullable=False),
        sa.Column("require_document", sa.Boolean(), nullable=False),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_leave_type_name", "leave_type", ["name"], unique=True)

    op.create_table(
        "employee_balance",
        _id(),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("leave_type_id", sa.Uuid(), sa.ForeignKey("leave_type.id"), nullable=False),
        sa.Column("current_balance", sa.Numeric(precision=4, scale=2), nullable=False),
        sa.Column("max_balance", sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column("last_accrual_date", sa.Date(), nullable=True),
        sa.Column("is_eligible_for_accrual", sa.Boolean(), nullable=False),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("employee_id", "leave_type_id", name="uq_balance_employee_type"),
    )
    op.create_index("ix_employee_balance_employee_id", "employee_balance", ["employee_id"])
    op.create_index("ix_employee_balance_leave_type_id", "employee_balance", ["leave_type_id"])

    op.create_table(
        "leave_accrual",
        _id(),
        sa.Column("employee_balance_id", sa.Uuid(), sa.ForeignKey("employee_balance.id"), nullable=False),
        sa.Column("accrual_date", sa.Date(), nullable=False),
        sa.Column("accrual_year", sa.Integer(), nullable=False),
        sa.Column("accrual_month", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=4, scale=2), nullable=False),
        sa.Column("is_prorated", sa.Boolean(), nullable=False),
        _created_at(),
        sa.UniqueConstraint(
            "employee_balance_id", "accrual_year", "accrual_month", name="uq_accrual_balance_period"
        ),
    )
    op.create_index("ix_leave_accrual_employee_balance_id", "leave_accrual", ["employee_balance_id"])
    op.create_index("ix_accrual_period", "leave_accrual", ["accrual_year", "accrual_month"])

    op.create_table(
        "leave_carry_forward",
        _id(),
        sa.Column("employee_balance_id", sa.Uuid(), sa.ForeignKey("employee_balance.id"), nullable=False),
        sa.Column("from_year", sa.Integer(), nullable=False),
        sa.Column("to_year", sa.Integer(), nullable=False),
        sa.Column("carry_forward_date", sa.Date(), nullable=False),
        sa.Column("original_balance", sa.Numeric(precision=4, scale=2), nullable=False),
        sa.Column("carried_forward_amount", sa.Numeric(precision=4, scale=2), nullable=False),
        sa.Column("forfeited_amount", sa.Numeric(precision=4, scale=2), nullable=False),
        _created_at(),
        sa.UniqueConstraint(
            "employee_balance_id", "from_year", "to_year", name="uq_carry_forward_balance_years"
        ),
    )
    op.create_index("ix_leave_carry_forward_employee_balance_id", "leave_carry_forward", ["employee_balance_id"])

    op.create_table(
        "leave_request",
        _id(),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("leave_type_id", sa.Uuid(), sa.ForeignKey("leave_type.id"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("half_day_start", sa.Boolean(), nullable=False),
        sa.Column("half_day_end", sa.Boolean(), nullable=False),
        sa.Column("duration", sa.Numeric(precision=6, scale=1), nullable=False),
        sa.Column("status", sa.String(length=50), server_default="PENDING", nullable=False),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("rejection_reason", sa.String(), nullable=True),
        sa.Column("manager_id", sa.Uuid(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint("end_date >= start_date", name="ck_leave_request_date_order"),
    )
    op.create_index("ix_leave_request_employee_id", "leave_request", ["employee_id"])
    op.create_index("ix_leave_request_leave_type_id", "leave_request", ["leave_type_id"])
    op.create_index("ix_leave_request_status", "leave_request", ["status"])
    op.create_index("ix_leave_request_dates", "leave_request", ["start_date", "end_date"])

    op.create_table(
        "leave_document",
        _id(),
        sa.Column(
            "leave_request_id",
            sa.Uuid(),
            sa.ForeignKey("leave_request.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=False),
        sa.Column("visible", sa.Boolean(), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_leave_document_leave_request_id", "leave_document", ["leave_request_id"])

    op.create_table(
        "public_holiday",
        _id(),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("is_recurring", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("date", name="uq_public_holiday_date"),
    )

    op.create_table(
        "outbox_event",
        _id(),
        sa.Column("event_type", sa.String(length=50), nullable=False),
        sa.Column("payload_json", sa.JSON(), nullable=False),
        sa.Column("attempts", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_error", sa.String(), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("claimed_until", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_outbox_event_event_type", "outbox_event", ["event_type"])
    op.create_index("ix_outbox_pending", "outbox_event", ["delivered_at", "attempts"])


def downgrade() -> None:
    op.drop_table("outbox_event")
    op.drop_table("public_holiday")
    op.drop_table("leave_document")
    op.drop_table("leave_request")
    op.drop_table("leave_carry_forward")
    op.drop_table("leave_accrual")
    op.drop_table("employee_balance")
    op.drop_table("leave_type")
