"""ORM models."""

from fleet_payroll.models.adjustment import (
    ADJUSTMENT_CATEGORIES,
    ADJUSTMENT_STATUSES,
    RECURRING_TYPES,
    PayrollAdjustment,
    RecurringDeduction,
)
from fleet_payroll.models.base import Base, TimestampMixin, utcnow
from fleet_payroll.models.employee import PAYMENT_METHODS, Employee, PaymentMethodHistory
from fleet_payroll.models.load import LOAD_STATUSES, FuelTransaction, Load
from fleet_payroll.models.payroll import (
    AuditEvent,
    IndividualPayroll,
    PayrollFuelIntegration,
    PayrollLoad,
    Paystub,
)

__all__ = [
    "ADJUSTMENT_CATEGORIES",
    "ADJUSTMENT_STATUSES",
    "RECURRING_TYPES",
    "PayrollAdjustment",
    "RecurringDeduction",
    "Base",
    "TimestampMixin",
    "utcnow",
    "PAYMENT_METHODS",
    "Employee",
    "PaymentMethodHistory",
    "LOAD_STATUSES",
    "FuelTransaction",
    "Load",
    "AuditEvent",
    "IndividualPayroll",
    "PayrollFuelIntegration",
    "PayrollLoad",
    "Paystub",
]
