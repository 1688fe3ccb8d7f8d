"""Explicit per-entity validation.

Each ``validate_*`` function inspects a fully-populated model and returns the
list of violations it finds (empty when valid). Callers run them before every
create and update and turn a non-empty list into a ``ValidationError`` or
``InvalidBalanceError``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from leavedesk.exceptions import ValidationError, Violation

if TYPE_CHECKING:
    from datetime import date

    from leavedesk.models.balance import EmployeeBalance
    from leavedesk.models.carry_forward import LeaveCarryForward
    from leavedesk.models.leave_type import LeaveType

MAX_ACCRUAL_RATE = Decimal("31.00")
MONTHS_PER_YEAR = 12
_CENT = Decimal("0.01")


def has_at_most(value: Decimal, integer_digits: int, fraction_digits: int = 2) -> bool:
    """Return True if ``value`` fits in the given number of integer and fraction digits."""
    if value != value.quantize(Decimal(1).scaleb(-fraction_digits)):
        return False
    return abs(value) < Decimal(10) ** integer_digits


def validate_leave_type(leave_type: LeaveType) -> list[Violation]:
    """Check the accrual, carry-forward and default/enabled rules of a leave type."""
    violations: list[Violation] = []
    rate = leave_type.accrual_rate
    cap = leave_type.carry_forward_cap

    if not leave_type.name or not leave_type.name.strip():
        violations.append(Violation(field="name", message="Name is required"))

    if leave_type.accrual_based:
        if rate is None or rate <= 0:
            violations.append(
                Violation(field="accrual_rate", message="Accrual-based leave types must have a positive accrual rate")
            )
        elif rate > MAX_ACCRUAL_RATE:
            violations.append(Violation(field="accrual_rate", message="Accrual rate cannot exceed 31.00"))
        elif not has_at_most(rate, 2):
            violations.append(
                Violation(field="accrual_rate", message="Accrual rate must have at most 2 decimal places")
            )
    elif rate is not None:
        violations.append(
            Violation(field="accrual_rate", message="Non-accrual leave types cannot have an accrual rate")
        )

    if leave_type.is_carry_forward_enabled:
        if cap is None or cap <= 0:
            violations.append(
                Violation(
                    field="carry_forward_cap",
                    message="Leave types with carry-forward enabled must have a positive carry-forward cap",
                )
            )
        elif not has_at_most(cap, 2):
            violations.append(
                Violation(
                    field="carry_forward_cap",
                    message="Carry-forward cap must have at most 2 integer digits and 2 decimal places",
                )
            )
    elif cap is not None:
        violations.append(
            Violation(
                field="carry_forward_cap",
                message="Leave types without carry-forward cannot have a carry-forward cap",
            )
        )

    if leave_type.max_duration is not None and leave_type.max_duration <= 0:
        violations.append(Violation(field="max_duration", message="Maximum duration must be greater than zero"))

    if (
        leave_type.max_duration is not None
        and leave_type.accrual_based
        and rate is not None
        and rate * MONTHS_PER_YEAR > leave_type.max_duration
    ):
        violations.append(Violation(field="max_duration", message="Annual accrual cannot exceed maximum duration"))

    if leave_type.is_default and not leave_type.is_enabled:
        violations.append(Violation(field="is_enabled", message="Default leave types cannot be disabled"))

    return violations


def validate_balance(balance: EmployeeBalance, today: date) -> list[Violation]:
    """Check the non-negative, max-balance and accrual-date rules of a balance."""
    violations: list[Violation] = []
    current = balance.current_balance

    if current < 0:
        violations.append(Violation(field="current_balance", message="Current balance cannot be negative"))
    elif not has_at_most(current, 2):
        violations.append(
            Violation(
                field="current_balance",
                message="Current balance must have at most 2 integer digits and 2 decimal places",
            )
        )

    if balance.max_balance is not None:
        if balance.max_balance <= 0:
            violations.append(Violation(field="max_balance", message="Maximum balance must be greater than zero"))
        elif current > balance.max_balance:
            violations.append(
                Violation(field="current_balance", message="Current balance cannot exceed maximum balance")
            )

    if balance.last_accrual_date is not None and balance.last_accrual_date > today:
        violations.append(
            Violation(field="last_accrual_date", message="Last accrual date cannot be in the future")
        )

    return violations


def validate_carry_forward(record: LeaveCarryForward) -> list[Violation]:
    """Check that carried + forfeited equals the original balance exactly."""
    violations: list[Violation] = []

    if record.carried_forward_amount < 0:
        violations.append(
            Violation(field="carried_forward_amount", message="Carried forward amount cannot be negative")
        )
    if record.forfeited_amount < 0:
        violations.append(Violation(field="forfeited_amount", message="Forfeited amount cannot be negative"))
    if record.carried_forward_amount + record.forfeited_amount != record.original_balance:
        violations.append(
            Violation(
                field="original_balance",
                message="Carried forward and forfeited amounts must sum to the original balance",
            )
        )
    if record.to_year != record.from_year + 1:
        violations.append(Violation(field="to_year", message="Carry-forward must target the following year"))

    return violations


def validate_year_month(year: int, month: int) -> list[Violation]:
    violations: list[Violation] = []
    if not 1 <= month <= MONTHS_PER_YEAR:
        violations.append(Violation(field="month", message="Month must be between 1 and 12"))
    if year < 1:
        violations.append(Violation(field="year", message="Year must be positive"))
    return violations


def raise_for_violations(violations: list[Violation]) -> None:
    """Raise a ValidationError carrying ``violations`` if there are any."""
    if violations:
        raise ValidationError.from_violations(violations)


def quantize_amount(value: Decimal) -> Decimal:
    """Normalize an amount to 2 decimal places."""
    return value.quantize(_CENT)
