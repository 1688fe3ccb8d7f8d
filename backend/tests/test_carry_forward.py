"""Tests for the carry-forward engine."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest

from leavedesk.exceptions import ValidationError
from leavedesk.models.carry_forward import LeaveCarryForward
from leavedesk.services.balance import create_balance, get_balance
from leavedesk.services.carry_forward import (
    find_by_balance_and_from_year,
    get_carry_forward_history,
    get_total_carried_forward,
    list_carry_forwards_for_transition,
    process_annual_carry_forward,
    process_carry_forward,
    split_carry_forward,
)
from leavedesk.services.clock import FixedClock, set_clock
from leavedesk.services.validation import validate_carry_forward

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

    from leavedesk.models.leave_type import LeaveType

ADMIN_HEADERS = {"X-User-Id": str(uuid.uuid4()), "X-Role": "ADMIN"}
NEW_YEAR = date(2025, 1, 1)


@pytest.fixture(autouse=True)
def _new_years_day(clock: FixedClock) -> None:
    set_clock(FixedClock.on(NEW_YEAR))


@pytest.fixture
async def carrying_type(make_leave_type) -> LeaveType:
    return await make_leave_type(
        name="Annual",
        accrual_based=False,
        accrual_rate=None,
        max_duration=None,
        is_carry_forward_enabled=True,
        carry_forward_cap=Decimal("20.00"),
    )


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestSplit:
    def test_above_cap(self) -> None:
        assert split_carry_forward(Decimal("25.00"), Decimal("20.00")) == (Decimal("20.00"), Decimal("5.00"))

    def test_below_cap(self) -> None:
        assert split_carry_forward(Decimal("7.50"), Decimal("20.00")) == (Decimal("7.50"), Decimal("0.00"))

    def test_zero(self) -> None:
        assert split_carry_forward(Decimal("0.00"), Decimal("5.00")) == (Decimal("0.00"), Decimal("0.00"))


class TestValidateCarryForward:
    def _record(self, **overrides: object) -> LeaveCarryForward:
        data: dict[str, object] = {
            "employee_balance_id": uuid.uuid4(),
            "from_year": 2024,
            "to_year": 2025,
            "carry_forward_date": NEW_YEAR,
            "original_balance": Decimal("25.00"),
            "carried_forward_amount": Decimal("20.00"),
            "forfeited_amount": Decimal("5.00"),
        }
        data.update(overrides)
        return LeaveCarryForward(**data)

    def test_valid(self) -> None:
        assert validate_carry_forward(self._record()) == []

    def test_amounts_must_sum_to_original(self) -> None:
        record = self._record(forfeited_amount=Decimal("4.99"))
        assert [v.field for v in validate_carry_forward(record)] == ["original_balance"]

    def test_negative_forfeit(self) -> None:
        record = self._record(
            original_balance=Decimal("5.00"),
            carried_forward_amount=Decimal("6.00"),
            forfeited_amount=Decimal("-1.00"),
        )
        assert [v.field for v in validate_carry_forward(record)] == ["forfeited_amount"]

    def test_must_target_next_year(self) -> None:
        record = self._record(to_year=2026)
        assert [v.field for v in validate_carry_forward(record)] == ["to_year"]


# ---------------------------------------------------------------------------
# Single balance
# ---------------------------------------------------------------------------


async def test_caps_and_forfeits(db_session: AsyncSession, make_employee, make_balance, carrying_type) -> None:
    balance = await make_balance(make_employee(), carrying_type, current=Decimal("25.00"))

    record = await process_carry_forward(db_session, balance.id, 2024, 2025)

    assert record is not None
    assert record.original_balance == Decimal("25.00")
    assert record.carried_forward_amount == Decimal("20.00")
    assert record.forfeited_amount == Decimal("5.00")
    assert record.carried_forward_amount + record.forfeited_amount == record.original_balance
    assert record.carry_forward_date == NEW_YEAR
    assert (await get_balance(db_session, balance.id)).current_balance == Decimal("20.00")


async def test_below_cap_carries_everything(
    db_session: AsyncSession, make_employee, make_balance, carrying_type
) -> None:
    balance = await make_balance(make_employee(), carrying_type, current=Decimal("12.50"))

    record = await process_carry_forward(db_session, balance.id, 2024, 2025)

    assert record is not None
    assert record.forfeited_amount == Decimal("0.00")
    assert (await get_balance(db_session, balance.id)).current_balance == Decimal("12.50")


async def test_second_run_is_noop(db_session: AsyncSession, make_employee, make_balance, carrying_type) -> None:
    balance = await make_balance(make_employee(), carrying_type, current=Decimal("25.00"))
    balance_id = balance.id
    await process_carry_forward(db_session, balance_id, 2024, 2025)

    assert await process_carry_forward(db_session, balance_id, 2024, 2025) is None
    assert not db_session.in_transaction()
    assert (await get_balance(db_session, balance_id)).current_balance == Decimal("20.00")
    assert len(await get_carry_forward_history(db_session, balance_id)) == 1


async def test_unique_transition_constraint_rejects_racing_duplicate(
    db_session: AsyncSession, make_employee, make_balance, carrying_type, monkeypatch: pytest.MonkeyPatch
) -> None:
    balance = await make_balance(make_employee(), carrying_type, current=Decimal("25.00"))
    balance_id = balance.id
    await process_carry_forward(db_session, balance_id, 2024, 2025)

    # A concurrent run that found no record before the first one committed.
    async def _no_record(*_args: object) -> None:
        return None

    monkeypatch.setattr("leavedesk.services.carry_forward.find_by_balance_and_years", _no_record)

    assert await process_carry_forward(db_session, balance_id, 2024, 2025) is None
    assert not db_session.in_transaction()
    assert len(await get_carry_forward_history(db_session, balance_id)) == 1
    assert (await get_balance(db_session, balance_id)).current_balance == Decimal("20.00")


async def test_type_without_carry_forward_is_noop(
    db_session: AsyncSession, make_employee, make_leave_type, make_balance
) -> None:
    lt = await make_leave_type(name="Sick", accrual_based=False, accrual_rate=None, max_duration=None)
    balance = await make_balance(make_employee(), lt, current=Decimal("8.00"))
    balance_id = balance.id

    assert await process_carry_forward(db_session, balance_id, 2024, 2025) is None
    assert not db_session.in_transaction()
    assert (await get_balance(db_session, balance_id)).current_balance == Decimal("8.00")


async def test_rejects_non_consecutive_years(
    db_session: AsyncSession, make_employee, make_balance, carrying_type
) -> None:
    balance = await make_balance(make_employee(), carrying_type, current=Decimal("5.00"))

    with pytest.raises(ValidationError):
        await process_carry_forward(db_session, balance.id, 2024, 2026)
    with pytest.raises(ValidationError):
        await process_annual_carry_forward(db_session, 2024, 2024)


# ---------------------------------------------------------------------------
# Annual batch
# ---------------------------------------------------------------------------


async def test_annual_run(
    db_session: AsyncSession, make_employee, make_leave_type, make_balance, carrying_type
) -> None:
    sick = await make_leave_type(name="Sick", accrual_based=False, accrual_rate=None, max_duration=None)
    over = await make_balance(make_employee(), carrying_type, current=Decimal("25.00"))
    under = await make_balance(make_employee(), carrying_type, current=Decimal("3.00"))
    untouched = await make_balance(make_employee(), sick, current=Decimal("9.00"))

    result = await process_annual_carry_forward(db_session, 2024, 2025)

    assert result.processed == 2
    assert result.carried == 2
    assert result.errors == 0
    assert (await get_balance(db_session, over.id)).current_balance == Decimal("20.00")
    assert (await get_balance(db_session, under.id)).current_balance == Decimal("3.00")
    assert (await get_balance(db_session, untouched.id)).current_balance == Decimal("9.00")
    assert len(await list_carry_forwards_for_transition(db_session, 2024, 2025)) == 2

    again = await process_annual_carry_forward(db_session, 2024, 2025)
    assert again.carried == 0
    assert again.skipped == 2


async def test_annual_run_without_eligible_types(db_session: AsyncSession) -> None:
    result = await process_annual_carry_forward(db_session, 2024, 2025)
    assert result.processed == 0
    assert result.records == []


async def test_history_queries(db_session: AsyncSession, make_employee, make_balance, carrying_type) -> None:
    balance = await make_balance(make_employee(), carrying_type, current=Decimal("25.00"))
    await process_carry_forward(db_session, balance.id, 2024, 2025)

    set_clock(FixedClock.on(date(2026, 1, 1)))
    await process_carry_forward(db_session, balance.id, 2025, 2026)

    history = await get_carry_forward_history(db_session, balance.id)
    assert [r.from_year for r in history] == [2025, 2024]
    assert await get_total_carried_forward(db_session, balance.id, 2024, 2025) == Decimal("20.00")
    assert await get_total_carried_forward(db_session, balance.id, 2023, 2024) == Decimal("0.00")
    found = await find_by_balance_and_from_year(db_session, balance.id, 2025)
    assert found is not None
    assert found.to_year == 2026
    assert found.forfeited_amount == Decimal("0.00")


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


class TestCarryForwardAPI:
    async def test_annual_defaults_to_last_year(
        self, async_client: AsyncClient, db_session: AsyncSession, make_employee, carrying_type
    ) -> None:
        employee = make_employee()
        balance = await create_balance(db_session, employee, carrying_type.id)
        balance.current_balance = Decimal("22.00")
        await db_session.commit()

        response = await async_client.post("/carry-forwards/annual", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert (data["from_year"], data["to_year"]) == (2024, 2025)
        assert data["carried"] == 1
        assert Decimal(data["records"][0]["forfeited_amount"]) == Decimal("2.00")

        total = await async_client.get(
            f"/carry-forwards/balances/{balance.id}/total",
            params={"from_year": 2024, "to_year": 2025},
            headers={"X-User-Id": str(employee.id)},
        )
        assert Decimal(total.json()["total"]) == Decimal("20.00")

    async def test_bad_transition_is_422(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/carry-forwards/annual",
            json={"from_year": 2023, "to_year": 2025},
            headers=ADMIN_HEADERS,
        )
        assert response.status_code == 422
