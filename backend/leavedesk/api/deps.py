# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header

from leavedesk.exceptions import AuthorizationError, ValidationError, Violation
from leavedesk.models.enums import EmployeeRole
from leavedesk.schemas.auth import AuthContext


async def get_auth_context(
    x_user_id: uuid.UUID = Header(),
    x_role: str = Header(default=EmployeeRole.EMPLOYEE.value),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    try:
        role = EmployeeRole(x_role.upper())
    except ValueError:
        raise ValidationError(
            f"Unknown role: {x_role}",
            [Violation(field="X-Role", message="Role must be ADMIN, MANAGER or EMPLOYEE")],
        ) from None
    return AuthContext(user_id=x_user_id, role=role)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_admin(
    auth: AuthDep,
) -> AuthContext:
    """Require admin role for the request."""
    if not auth.is_admin:
        raise AuthorizationError("Admin access required")
    return auth


AdminDep = Annotated[AuthContext, Depends(require_admin)]


def ensure_self_or_admin(auth: AuthContext, employee_id: uuid.UUID) -> None:
    """Employees may only read their own data; admins may read anyone's."""
    if not auth.is_admin and auth.user_id != employee_id:
        raise AuthorizationError("You can only access your own records")
