"""Payroll calculators."""

from fleet_payroll.calculators.payment_method_resolver import (
    EffectivePaymentMethod,
    PaymentMethodResolver,
    base_pay_rate,
)
from fleet_payroll.calculators.totals import (
    AdjustmentTotals,
    LoadTotals,
    apply_adjustment_totals,
    apply_fuel_deductions,
    apply_load_totals,
    money,
    recompute_gross_pay,
    recompute_net_pay,
    sum_adjustments,
    sum_load_figures,
)
from fleet_payroll.calculators.week_window import (
    WeekWindow,
    parse_week_key,
    resolve_window,
    week_of,
    week_window,
    weeks_in_year,
)

__all__ = [
    "EffectivePaymentMethod",
    "PaymentMethodResolver",
    "base_pay_rate",
    "AdjustmentTotals",
    "LoadTotals",
    "apply_adjustment_totals",
    "apply_fuel_deductions",
    "apply_load_totals",
    "money",
    "recompute_gross_pay",
    "recompute_net_pay",
    "sum_adjustments",
    "sum_load_figures",
    "WeekWindow",
    "parse_week_key",
    "resolve_window",
    "week_of",
    "week_window",
    "weeks_in_year",
]
