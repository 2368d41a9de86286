"""API routes."""

from fleet_payroll.api.routes.adjustments import router as adjustments_router
from fleet_payroll.api.routes.audit import router as audit_router
from fleet_payroll.api.routes.fuel_integration import router as fuel_integration_router
from fleet_payroll.api.routes.health import router as health_router
from fleet_payroll.api.routes.individual_payroll import router as individual_payroll_router
from fleet_payroll.api.routes.move_load import router as load_move_router
from fleet_payroll.api.routes.payment_history import router as payment_history_router
from fleet_payroll.api.routes.payroll import router as payroll_router
from fleet_payroll.api.routes.paystubs import router as paystubs_router
from fleet_payroll.api.routes.recurring_deductions import router as recurring_deductions_router
from fleet_payroll.api.routes.week_lock import router as week_lock_router

__all__ = [
    "adjustments_router",
    "audit_router",
    "fuel_integration_router",
    "health_router",
    "individual_payroll_router",
    "load_move_router",
    "payment_history_router",
    "payroll_router",
    "paystubs_router",
    "recurring_deductions_router",
    "week_lock_router",
]
