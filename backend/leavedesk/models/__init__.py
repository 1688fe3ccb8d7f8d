from sqlmodel import SQLModel

from leavedesk.models.accrual import LeaveAccrual
from leavedesk.models.balance import EmployeeBalance
from leavedesk.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase
from leavedesk.models.carry_forward import LeaveCarryForward
from leavedesk.models.enums import (
    AccrualPeriodStatus,
    EmployeeRole,
    EmployeeStatus,
    LeaveRequestStatus,
    OutboxEventType,
)
from leavedesk.models.holiday import PublicHoliday
from leavedesk.models.leave_type import LeaveType
from leavedesk.models.outbox import OutboxEvent
from leavedesk.models.request import LeaveDocument, LeaveRequest

__all__ = [
    "AccrualPeriodStatus",
    "EmployeeBalance",
    "EmployeeRole",
    "EmployeeStatus",
    "LeaveAccrual",
    "LeaveCarryForward",
    "LeaveDocument",
    "LeaveRequest",
    "LeaveRequestStatus",
    "LeaveType",
    "OutboxEvent",
    "OutboxEventType",
    "PublicHoliday",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "UpdatedAtMixin",
]
