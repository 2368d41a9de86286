"""Payroll workflow services."""

from fleet_payroll.services.adjustment_service import AdjustmentList, AdjustmentService
from fleet_payroll.services.aggregation_service import AggregationResult, PayrollAggregationService
from fleet_payroll.services.audit_service import AuditService
from fleet_payroll.services.fuel_integration_service import FuelImportResult, FuelIntegrationService
from fleet_payroll.services.individual_payroll_service import (
    IndividualPayrollService,
    PayrollDetail,
)
from fleet_payroll.services.load_move_service import LoadMoveResult, LoadMoveService
from fleet_payroll.services.payment_history_service import PaymentHistoryService
from fleet_payroll.services.payroll_store import PayrollStore
from fleet_payroll.services.paystub_service import PaystubBatchResult, PaystubService
from fleet_payroll.services.recurring_deduction_service import RecurringDeductionService
from fleet_payroll.services.state_machine import (
    PayrollStateMachine,
    PayrollStatus,
    PaystubStateMachine,
    PaystubStatus,
)
from fleet_payroll.services.week_lock_service import (
    WeekLockResult,
    WeekLockService,
    WeekLockStatus,
)

__all__ = [
    "AdjustmentList",
    "AdjustmentService",
    "AggregationResult",
    "PayrollAggregationService",
    "AuditService",
    "FuelImportResult",
    "FuelIntegrationService",
    "IndividualPayrollService",
    "PayrollDetail",
    "LoadMoveResult",
    "LoadMoveService",
    "PaymentHistoryService",
    "PayrollStore",
    "PaystubBatchResult",
    "PaystubService",
    "RecurringDeductionService",
    "PayrollStateMachine",
    "PayrollStatus",
    "PaystubStateMachine",
    "PaystubStatus",
    "WeekLockResult",
    "WeekLockService",
    "WeekLockStatus",
]
