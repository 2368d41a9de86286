"""Tests for effective-dated payment method resolution."""

from datetime import date
from decimal import Decimal

import pytest

from fleet_payroll.calculators import PaymentMethodResolver, base_pay_rate
from fleet_payroll.exceptions import NotFoundError
from fleet_payroll.models import PaymentMethodHistory


def _history(
    method: str,
    effective: date,
    end: date | None,
    driver_percent: str = "0",
    per_mile: str = "0",
) -> PaymentMethodHistory:
    return PaymentMethodHistory(
        employee_id=7,
        payment_method=method,
        driver_percent=Decimal(driver_percent),
        company_percent=Decimal("0"),
        service_fee_percent=Decimal("0"),
        pay_per_mile_rate=Decimal(per_mile),
        effective_date=effective,
        end_date=end,
        created_by="test",
    )


@pytest.fixture
async def history(session, employees):
    """Per-mile until March 1st 2024, percentage from then on."""
    rows = [
        _history("PAY_PER_MILE", date(2023, 1, 1), date(2024, 3, 1), per_mile="0.60"),
        _history("PERCENTAGE", date(2024, 3, 1), None, driver_percent="72.00"),
    ]
    session.add_all(rows)
    await session.commit()
    return rows


class TestPaymentMethodResolver:
    async def test_history_before_change(self, session, history):
        resolved = await PaymentMethodResolver(session).resolve(7, date(2024, 2, 15))

        assert resolved.source == "history"
        assert resolved.payment_method == "PAY_PER_MILE"
        assert resolved.base_pay_rate == Decimal("0.60")
        assert resolved.end_date == date(2024, 3, 1)

    async def test_end_date_is_exclusive(self, session, history):
        """On the change date the new entry applies, not the closed one."""
        resolved = await PaymentMethodResolver(session).resolve(7, date(2024, 3, 1))

        assert resolved.payment_method == "PERCENTAGE"
        assert resolved.effective_date == date(2024, 3, 1)
        assert resolved.end_date is None
        assert resolved.base_pay_rate == Decimal("72.00")

    async def test_falls_back_to_current_fields(self, session, history):
        """Before any history exists the employee's current fields apply."""
        resolved = await PaymentMethodResolver(session).resolve(7, date(2022, 6, 1))

        assert resolved.source == "current"
        assert resolved.payment_method == "PERCENTAGE"
        assert resolved.driver_percent == Decimal("70.00")
        assert resolved.effective_date == date(2022, 6, 1)
        assert resolved.end_date is None

    async def test_no_history_uses_current(self, session, employees):
        resolved = await PaymentMethodResolver(session).resolve(8, date(2024, 3, 4))

        assert resolved.source == "current"
        assert resolved.payment_method == "PAY_PER_MILE"
        assert resolved.base_pay_rate == Decimal("0.55")

    async def test_unknown_employee(self, session, employees):
        with pytest.raises(NotFoundError):
            await PaymentMethodResolver(session).resolve(999, date(2024, 3, 4))

    async def test_latest_effective_entry_wins(self, session, employees):
        """Overlapping open entries resolve to the latest effective date."""
        session.add_all(
            [
                _history("FLAT_RATE", date(2024, 1, 1), None),
                _history("PERCENTAGE", date(2024, 2, 1), None, driver_percent="65"),
            ]
        )
        await session.commit()

        resolved = await PaymentMethodResolver(session).resolve(7, date(2024, 2, 10))
        assert resolved.payment_method == "PERCENTAGE"


class TestBasePayRate:
    def test_by_method(self):
        assert base_pay_rate("PERCENTAGE", Decimal("70"), Decimal("0.5")) == Decimal("70")
        assert base_pay_rate("PAY_PER_MILE", Decimal("70"), Decimal("0.5")) == Decimal("0.5")
        assert base_pay_rate("FLAT_RATE", Decimal("70"), Decimal("0.5")) == Decimal("0")
