"""Payroll total arithmetic.

All functions here are pure with respect to the database: they read figures
off rows already loaded and write totals onto a payroll object. The one
invariant they maintain is ``net_pay == gross_pay - total_deductions``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any, Iterable

if TYPE_CHECKING:
    from fleet_payroll.models import IndividualPayroll

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value: Any) -> Decimal:
    """Round a number to cents."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LoadTotals:
    """Summed load figures for one payroll."""

    total_loads: int
    total_miles: int
    gross_revenue: Decimal
    base_pay: Decimal


def sum_load_figures(rows: Iterable[Any]) -> LoadTotals:
    """Sum loads or load snapshots, skipping rows marked not included.

    ``driver_rate`` is the driver's pay for the load as already computed by
    dispatch; it is summed, never derived here.
    """
    total_loads = 0
    total_miles = 0
    gross_revenue = ZERO
    base_pay = ZERO
    for row in rows:
        if not getattr(row, "is_included", True):
            continue
        total_loads += 1
        total_miles += int(row.final_miles or 0)
        gross_revenue += money(row.gross_amount)
        base_pay += money(row.driver_rate)
    return LoadTotals(
        total_loads=total_loads,
        total_miles=total_miles,
        gross_revenue=money(gross_revenue),
        base_pay=money(base_pay),
    )


@dataclass(frozen=True)
class AdjustmentTotals:
    """Adjustment and recurring deduction amounts for one payroll week."""

    bonus_amount: Decimal = ZERO
    reimbursements: Decimal = ZERO
    other_earnings: Decimal = ZERO
    other_deductions: Decimal = ZERO


def sum_adjustments(adjustments: Iterable[Any], recurring: Iterable[Any] = ()) -> AdjustmentTotals:
    """Sum active adjustments by category, plus recurring deductions.

    BONUS and REIMBURSEMENT go to their own earnings fields, CORRECTION to
    other earnings, DEDUCTION and every recurring deduction to other
    deductions.
    """
    buckets = {"BONUS": ZERO, "REIMBURSEMENT": ZERO, "CORRECTION": ZERO, "DEDUCTION": ZERO}
    for adjustment in adjustments:
        if getattr(adjustment, "status", "ACTIVE") != "ACTIVE":
            continue
        buckets[adjustment.category] += money(adjustment.amount)
    for deduction in recurring:
        buckets["DEDUCTION"] += money(deduction.amount)
    return AdjustmentTotals(
        bonus_amount=money(buckets["BONUS"]),
        reimbursements=money(buckets["REIMBURSEMENT"]),
        other_earnings=money(buckets["CORRECTION"]),
        other_deductions=money(buckets["DEDUCTION"]),
    )


def recompute_gross_pay(payroll: IndividualPayroll) -> None:
    payroll.gross_pay = (
        money(payroll.base_pay)
        + money(payroll.bonus_amount)
        + money(payroll.reimbursements)
        + money(payroll.other_earnings)
    )


def recompute_net_pay(payroll: IndividualPayroll) -> None:
    """Total deductions are fuel plus other deductions; net pay follows."""
    payroll.total_deductions = money(payroll.fuel_deductions) + money(payroll.other_deductions)
    payroll.net_pay = money(payroll.gross_pay) - payroll.total_deductions


def apply_load_totals(payroll: IndividualPayroll, totals: LoadTotals) -> None:
    """Write load totals onto a payroll.

    Gross pay is the base pay plus any adjustment earnings already on the
    payroll; with none it equals the base pay.
    """
    payroll.total_loads = totals.total_loads
    payroll.total_miles = totals.total_miles
    payroll.gross_revenue = totals.gross_revenue
    payroll.base_pay = totals.base_pay
    recompute_gross_pay(payroll)
    recompute_net_pay(payroll)


def apply_fuel_deductions(payroll: IndividualPayroll, fuel_total: Decimal) -> None:
    """Swap the fuel component of total deductions for ``fuel_total``."""
    payroll.fuel_deductions = money(fuel_total)
    recompute_net_pay(payroll)


def apply_adjustment_totals(payroll: IndividualPayroll, totals: AdjustmentTotals) -> None:
    payroll.bonus_amount = totals.bonus_amount
    payroll.reimbursements = totals.reimbursements
    payroll.other_earnings = totals.other_earnings
    payroll.other_deductions = totals.other_deductions
    recompute_gross_pay(payroll)
    recompute_net_pay(payroll)
