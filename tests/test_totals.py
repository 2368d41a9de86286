"""Tests for payroll total arithmetic."""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from fleet_payroll.calculators import (
    apply_adjustment_totals,
    apply_fuel_deductions,
    apply_load_totals,
    money,
    sum_adjustments,
    sum_load_figures,
)
from fleet_payroll.models import IndividualPayroll, PayrollLoad


def _snapshot(rate: str, gross: str, miles: int, included: bool = True) -> PayrollLoad:
    return PayrollLoad(
        load_id=1,
        load_number="L-1",
        driver_rate=Decimal(rate),
        gross_amount=Decimal(gross),
        final_miles=miles,
        is_included=included,
    )


def _payroll(**overrides) -> IndividualPayroll:
    values = {
        "employee_id": 7,
        "employee_name": "John Smith",
        "week_start_date": date(2024, 3, 4),
        "week_end_date": date(2024, 3, 10),
        "gross_pay": Decimal("0"),
        "fuel_deductions": Decimal("0"),
        "other_deductions": Decimal("0"),
        "total_deductions": Decimal("0"),
        "net_pay": Decimal("0"),
    }
    values.update(overrides)
    return IndividualPayroll(**values)


class TestMoney:
    def test_rounds_half_up(self):
        assert money(Decimal("1.005")) == Decimal("1.01")
        assert money(2.675) == Decimal("2.68")
        assert money(None) == Decimal("0.00")


class TestSumLoadFigures:
    def test_sums_driver_rate_as_base_pay(self):
        totals = sum_load_figures(
            [_snapshot("200", "1000", 400), _snapshot("150", "800", 300)]
        )

        assert totals.total_loads == 2
        assert totals.total_miles == 700
        assert totals.gross_revenue == Decimal("1800.00")
        assert totals.base_pay == Decimal("350.00")

    def test_skips_excluded_rows(self):
        totals = sum_load_figures(
            [_snapshot("200", "1000", 400), _snapshot("150", "800", 300, included=False)]
        )
        assert totals.total_loads == 1
        assert totals.base_pay == Decimal("200.00")

    def test_accepts_plain_loads(self):
        """Rows without an is_included flag are always counted."""
        load = SimpleNamespace(
            driver_rate=Decimal("75"), gross_amount=Decimal("300"), final_miles=None
        )
        totals = sum_load_figures([load])
        assert totals.total_loads == 1
        assert totals.total_miles == 0

    def test_empty(self):
        totals = sum_load_figures([])
        assert totals.total_loads == 0
        assert totals.base_pay == Decimal("0.00")


class TestApplyTotals:
    def test_gross_pay_equals_base_pay(self):
        payroll = _payroll()
        apply_load_totals(payroll, sum_load_figures([_snapshot("350", "1800", 700)]))

        assert payroll.base_pay == Decimal("350.00")
        assert payroll.gross_pay == Decimal("350.00")
        assert payroll.net_pay == Decimal("350.00")

    def test_net_pay_keeps_existing_deductions(self):
        payroll = _payroll(total_deductions=Decimal("50"), fuel_deductions=Decimal("50"))
        apply_load_totals(payroll, sum_load_figures([_snapshot("350", "1800", 700)]))
        assert payroll.net_pay == Decimal("300.00")

    def test_fuel_replaces_previous_fuel_component(self):
        payroll = _payroll(
            gross_pay=Decimal("500"),
            fuel_deductions=Decimal("40"),
            other_deductions=Decimal("25"),
            total_deductions=Decimal("65"),
        )

        apply_fuel_deductions(payroll, Decimal("152.50"))

        assert payroll.fuel_deductions == Decimal("152.50")
        assert payroll.total_deductions == Decimal("177.50")
        assert payroll.net_pay == payroll.gross_pay - payroll.total_deductions
        assert payroll.net_pay == Decimal("322.50")

    def test_fuel_reapplied_is_stable(self):
        payroll = _payroll(gross_pay=Decimal("350"))
        apply_fuel_deductions(payroll, Decimal("152.50"))
        apply_fuel_deductions(payroll, Decimal("152.50"))

        assert payroll.total_deductions == Decimal("152.50")
        assert payroll.net_pay == Decimal("197.50")


def _adjustment(category: str, amount: str, status: str = "ACTIVE") -> SimpleNamespace:
    return SimpleNamespace(category=category, amount=Decimal(amount), status=status)


class TestSumAdjustments:
    def test_categories_land_in_their_fields(self):
        totals = sum_adjustments(
            [
                _adjustment("BONUS", "50"),
                _adjustment("REIMBURSEMENT", "20.25"),
                _adjustment("CORRECTION", "10"),
                _adjustment("DEDUCTION", "30"),
                _adjustment("DEDUCTION", "5.50"),
            ]
        )

        assert totals.bonus_amount == Decimal("50.00")
        assert totals.reimbursements == Decimal("20.25")
        assert totals.other_earnings == Decimal("10.00")
        assert totals.other_deductions == Decimal("35.50")

    def test_cancelled_adjustments_ignored(self):
        totals = sum_adjustments(
            [_adjustment("BONUS", "50", status="CANCELLED"), _adjustment("DEDUCTION", "15")]
        )

        assert totals.bonus_amount == Decimal("0.00")
        assert totals.other_deductions == Decimal("15.00")

    def test_recurring_deductions_add_to_other_deductions(self):
        recurring = [SimpleNamespace(amount=Decimal("25")), SimpleNamespace(amount=Decimal("7.5"))]

        totals = sum_adjustments([_adjustment("DEDUCTION", "10")], recurring)

        assert totals.other_deductions == Decimal("42.50")


class TestApplyAdjustmentTotals:
    def test_earnings_raise_gross_and_deductions_lower_net(self):
        payroll = _payroll(fuel_deductions=Decimal("100"))
        apply_load_totals(payroll, sum_load_figures([_snapshot("350", "1800", 700)]))

        apply_adjustment_totals(
            payroll,
            sum_adjustments([_adjustment("BONUS", "50"), _adjustment("DEDUCTION", "30")]),
        )

        assert payroll.base_pay == Decimal("350.00")
        assert payroll.gross_pay == Decimal("400.00")
        assert payroll.other_deductions == Decimal("30.00")
        assert payroll.total_deductions == Decimal("130.00")
        assert payroll.net_pay == Decimal("270.00")

    def test_load_totals_keep_adjustment_earnings(self):
        payroll = _payroll(bonus_amount=Decimal("50"), other_deductions=Decimal("30"))

        apply_load_totals(payroll, sum_load_figures([_snapshot("200", "1000", 400)]))

        assert payroll.gross_pay == Decimal("250.00")
        assert payroll.net_pay == Decimal("220.00")
