from __future__ import annotations

import enum


class EmployeeStatus(enum.StrEnum):
    """Employment status reported by the Employee Service."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class EmployeeRole(enum.StrEnum):
    """Role of a user in the leave workflow."""

    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


class LeaveRequestStatus(enum.StrEnum):
    """State machine for leave requests. Every state but PENDING is terminal."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class OutboxEventType(enum.StrEnum):
    """Domain events recorded alongside core state changes."""

    LEAVE_REQUEST_SUBMITTED = "LEAVE_REQUEST_SUBMITTED"
    LEAVE_REQUEST_DECIDED = "LEAVE_REQUEST_DECIDED"
    LEAVE_REQUEST_CANCELLED = "LEAVE_REQUEST_CANCELLED"
    ACCRUAL_PROCESSED = "ACCRUAL_PROCESSED"
    CARRY_FORWARD_PROCESSED = "CARRY_FORWARD_PROCESSED"


class AccrualPeriodStatus(enum.StrEnum):
    """Summary status of all accruals posted for one period."""

    COMPLETED = "COMPLETED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"
