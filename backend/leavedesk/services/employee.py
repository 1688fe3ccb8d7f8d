# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from leavedesk.models.enums import EmployeeRole, EmployeeStatus


class EmployeeInfo(BaseModel):
    """Employee metadata from the Employee Service."""

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    joined_date: date
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    role: EmployeeRole = EmployeeRole.EMPLOYEE
    manager_id: uuid.UUID | None = None
    department_id: uuid.UUID | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE

    @property
    def is_admin(self) -> bool:
        return self.role == EmployeeRole.ADMIN


@runtime_checkable
class EmployeeService(Protocol):
    """Interface for the Employee Service."""

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch employee metadata. Returns None if not found."""
        ...

    async def list_department_members(self, department_id: uuid.UUID) -> list[EmployeeInfo]:
        """List everyone in a department, whatever their status."""
        ...


class InMemoryEmployeeService:
    """In-memory stub used for development and tests."""

    def __init__(self) -> None:
        self._employees: dict[uuid.UUID, EmployeeInfo] = {}

    def seed(self, employee: EmployeeInfo) -> None:
        """Seed an employee for testing."""
        self._employees[employee.id] = employee

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch employee metadata. Returns None if not found."""
        return self._employees.get(employee_id)

    async def list_department_members(self, department_id: uuid.UUID) -> list[EmployeeInfo]:
        return [e for e in self._employees.values() if e.department_id == department_id]


_employee_service: EmployeeService = InMemoryEmployeeService()


def get_employee_service() -> EmployeeService:
    """FastAPI dependency for the Employee Service."""
    return _employee_service


def set_employee_service(service: EmployeeService) -> None:
    """Override the service (for testing or production wiring)."""
    global _employee_service
    _employee_service = service
