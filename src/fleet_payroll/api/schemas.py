"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Shared
# ============================================================================


class WeekSelector(BaseModel):
    """A payroll week named by ISO year + week, or by its Monday/Sunday dates."""

    year: int | None = None
    week: int | None = Field(default=None, ge=1, le=53)
    start_date: date | None = None
    end_date: date | None = None


# ============================================================================
# Payment method history schemas
# ============================================================================


class PaymentHistoryCreate(BaseModel):
    """Schema for recording a payment method change."""

    payment_method: Literal["PERCENTAGE", "PAY_PER_MILE", "FLAT_RATE"]
    effective_date: date
    driver_percent: Decimal = Field(default=Decimal("0"), ge=0)
    company_percent: Decimal = Field(default=Decimal("0"), ge=0)
    service_fee_percent: Decimal = Field(default=Decimal("0"), ge=0)
    pay_per_mile_rate: Decimal = Field(default=Decimal("0"), ge=0)
    note: str | None = None
    created_by: str | None = None


class PaymentHistoryUpdate(BaseModel):
    note: str | None = None
    end_date: date | None = None


class PaymentHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    payment_method: str
    driver_percent: Decimal
    company_percent: Decimal
    service_fee_percent: Decimal
    pay_per_mile_rate: Decimal
    effective_date: date
    end_date: date | None = None
    note: str | None = None
    created_by: str
    created_at: datetime | None = None


class PaymentHistoryListResponse(BaseModel):
    employee_id: int
    items: list[PaymentHistoryResponse]
    total: int


class EffectivePaymentMethodResponse(BaseModel):
    """Pay configuration in force on a date."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: int
    payment_method: str
    driver_percent: Decimal
    company_percent: Decimal
    service_fee_percent: Decimal
    pay_per_mile_rate: Decimal
    base_pay_rate: Decimal
    effective_date: date
    end_date: date | None = None
    source: Literal["history", "current"]


# ============================================================================
# Weekly payroll schemas
# ============================================================================


class CalculateWeeklyRequest(WeekSelector):
    employee_ids: list[int] | None = None
    calculated_by: str | None = None


class EmployeeAggregationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: int
    employee_name: str | None = None
    status: Literal["success", "skipped", "error"]
    payroll_id: int | None = None
    total_loads: int
    total_miles: int
    gross_revenue: Decimal
    base_pay: Decimal
    gross_pay: Decimal
    net_pay: Decimal
    reason: str | None = None


class AggregationResponse(BaseModel):
    """Schema for weekly payroll calculation results."""

    model_config = ConfigDict(from_attributes=True)

    message: str
    week_key: str
    start_date: date
    end_date: date
    processed: int
    skipped: int
    errors: int
    results: list[EmployeeAggregationResponse]


class PayrollResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    employee_name: str
    week_start_date: date
    week_end_date: date
    pay_date: date | None = None
    total_loads: int
    total_miles: int
    gross_revenue: Decimal
    payment_method: str | None = None
    base_pay_rate: Decimal
    base_pay: Decimal
    bonus_amount: Decimal
    reimbursements: Decimal
    other_earnings: Decimal
    fuel_deductions: Decimal
    other_deductions: Decimal
    total_deductions: Decimal
    gross_pay: Decimal
    net_pay: Decimal
    status: str
    is_locked: bool
    calculated_at: datetime | None = None
    calculated_by: str | None = None
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    notes: str | None = None


class WeeklyPayrollResponse(BaseModel):
    """Every payroll row of one week."""

    week_key: str
    year: int
    week: int
    start_date: date
    end_date: date
    is_locked: bool
    total: int
    total_gross_pay: Decimal
    total_net_pay: Decimal
    items: list[PayrollResponse]


# ============================================================================
# Fuel integration schemas
# ============================================================================


class FuelImportRequest(WeekSelector):
    processed_by: str | None = None


class DriverFuelResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    driver_name: str
    employee_id: int | None = None
    payroll_id: int | None = None
    status: Literal["success", "skipped", "error"]
    reason: str | None = None
    transaction_count: int
    imported_count: int
    skipped_count: int = 0
    failed_count: int = 0
    total_fuel_amount: Decimal


class FuelImportSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_transactions: int
    drivers_processed: int
    imported: int
    skipped: int
    errors: int


class FuelImportResponse(BaseModel):
    message: str
    week_key: str
    summary: FuelImportSummary
    results: list[DriverFuelResultResponse]


class FuelIntegrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    payroll_id: int
    fuel_transaction_id: int
    employee_id: int
    fuel_invoice: str
    fuel_amount: Decimal
    deduction_amount: Decimal
    fuel_date: date
    location: str
    is_included: bool
    processed_by: str
    processed_at: datetime | None = None


class EmployeeFuelSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: int
    employee_name: str
    transaction_count: int
    total_amount: Decimal
    included_count: int
    excluded_count: int
    is_locked: bool


class FuelWeekStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    week_key: str
    year: int
    week: int
    start_date: date
    total_integrations: int
    employee_count: int
    total_amount: Decimal
    summary: list[EmployeeFuelSummaryResponse]
    integrations: list[FuelIntegrationResponse]


# ============================================================================
# Load reassignment schemas
# ============================================================================


class MoveLoadRequest(BaseModel):
    load_id: int
    target_year: int
    target_week: int = Field(ge=1, le=53)
    moved_by: str | None = None
    reason: str | None = None


class MoveLoadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    message: str
    load_id: int
    load_number: str
    from_year: int
    from_week: int
    to_year: int
    to_week: int
    source_payroll_id: int | None = None
    target_payroll_id: int


# ============================================================================
# Week lock schemas
# ============================================================================


class WeekLockRequest(WeekSelector):
    locked: bool
    locked_by: str | None = None


class WeekLockResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    message: str
    week_key: str
    year: int
    week: int
    locked: bool
    locked_by: str | None = None
    affected_records: int
    timestamp: datetime


class WeekLockStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    week_key: str
    year: int
    week: int
    is_locked: bool
    locked_count: int
    total_count: int
    partially_locked: bool
    start_date: date
    end_date: date


class WeekLockRangeResponse(BaseModel):
    year: int
    start_week: int
    end_week: int
    weeks: list[WeekLockStatusResponse]


# ============================================================================
# Paystub schemas
# ============================================================================


class PaystubGenerateRequest(WeekSelector):
    """Schema for paystub generation.

    Payroll ids take precedence over employee ids; without either, every
    calculated or reviewed payroll of the week is used.
    """

    payroll_ids: list[int] | None = None
    employee_ids: list[int] | None = None
    generated_by: str | None = None
    auto_approve: bool = False


class PaystubOutcomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payroll_id: int
    employee_id: int
    employee_name: str
    status: Literal["created", "updated", "skipped", "error"]
    paystub_id: int | None = None
    net_pay: Decimal | None = None
    reason: str | None = None


class PaystubBatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    message: str
    total_payrolls: int
    generated: int
    skipped: int
    errors: int
    total_net_pay: Decimal
    results: list[PaystubOutcomeResponse]


class PaystubResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    payroll_id: int
    employee_id: int
    employee_name: str
    week_start_date: date
    week_end_date: date
    pay_date: date | None = None
    payment_method: str | None = None
    base_pay_rate: Decimal
    total_loads: int
    total_miles: int
    gross_revenue: Decimal
    base_pay: Decimal
    bonus_amount: Decimal
    reimbursements: Decimal
    other_earnings: Decimal
    fuel_deductions: Decimal
    other_deductions: Decimal
    total_deductions: Decimal
    gross_pay: Decimal
    net_pay: Decimal
    status: str
    generated_at: datetime | None = None
    approved_at: datetime | None = None
    paid_at: datetime | None = None
    created_by: str


class PaystubListResponse(BaseModel):
    week_key: str
    items: list[PaystubResponse]
    total: int


class PaystubTransitionRequest(BaseModel):
    status: Literal["DRAFT", "APPROVED", "PAID"]
    actor: str | None = None


# ============================================================================
# Payroll adjustment schemas
# ============================================================================


class AdjustmentCreate(BaseModel):
    """Schema for creating a payroll adjustment.

    The adjustment lands in the week of ``week_start_date`` when given,
    otherwise the week of ``effective_date``.
    """

    employee_id: int
    category: Literal["DEDUCTION", "REIMBURSEMENT", "BONUS", "CORRECTION"]
    name: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    effective_date: date
    week_start_date: date | None = None
    adjustment_type: str | None = None
    description: str | None = None
    load_number: str | None = None
    reference_number: str | None = None
    created_by: str | None = None


class AdjustmentUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    amount: Decimal | None = Field(default=None, gt=0)
    status: Literal["ACTIVE", "CANCELLED"] | None = None
    reference_number: str | None = None
    updated_by: str | None = None


class AdjustmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    category: str
    adjustment_type: str
    name: str
    description: str | None = None
    amount: Decimal
    effective_date: date
    week_start_date: date
    load_number: str | None = None
    reference_number: str | None = None
    status: str
    created_by: str
    created_at: datetime | None = None


class AdjustmentListResponse(BaseModel):
    items: list[AdjustmentResponse]
    total: int
    total_amount: Decimal
    category_totals: dict[str, Decimal]


# ============================================================================
# Recurring deduction schemas
# ============================================================================


class RecurringDeductionCreate(BaseModel):
    employee_id: int
    recurring_type: Literal["ELD", "IFTA", "TVC", "PARKING", "PRE-PASS", "OTHER"]
    amount: Decimal = Field(gt=0, le=1000)
    week_start: date
    description: str | None = None
    end_date: date | None = None
    created_by: str | None = None


class RecurringDeductionUpdate(BaseModel):
    amount: Decimal | None = Field(default=None, gt=0, le=1000)
    description: str | None = None
    is_active: bool | None = None
    end_date: date | None = None
    updated_by: str | None = None


class RecurringDeductionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    recurring_type: str
    amount: Decimal
    description: str | None = None
    week_start: date
    end_date: date | None = None
    is_active: bool
    created_by: str
    created_at: datetime | None = None


class RecurringDeductionListResponse(BaseModel):
    items: list[RecurringDeductionResponse]
    total: int
    active_amount: Decimal


# ============================================================================
# Individual payroll schemas
# ============================================================================


class PayrollLoadResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    load_id: int
    load_number: str
    gross_amount: Decimal
    driver_rate: Decimal
    final_miles: int
    delivery_date: date | None = None
    is_included: bool
    is_moved: bool
    notes: str | None = None


class PayrollDetailResponse(BaseModel):
    """A payroll with its loads, fuel, adjustments and paystub."""

    model_config = ConfigDict(from_attributes=True)

    payroll: PayrollResponse
    loads: list[PayrollLoadResponse]
    fuel_integrations: list[FuelIntegrationResponse]
    adjustments: list[AdjustmentResponse]
    recurring_deductions: list[RecurringDeductionResponse]
    paystub: PaystubResponse | None = None


class PayrollUpdate(BaseModel):
    notes: str | None = None
    status: Literal["DRAFT", "CALCULATED", "REVIEWED", "APPROVED", "PAID", "EMPTY"] | None = None
    updated_by: str | None = None


class EmployeePayrollListResponse(BaseModel):
    employee_id: int
    items: list[PayrollResponse]
    total: int
    total_gross_pay: Decimal
    total_net_pay: Decimal


# ============================================================================
# Audit schemas
# ============================================================================


class AuditEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    entity_type: str
    entity_id: int | None = None
    action: str
    actor: str
    details: dict[str, Any] | None = None
    created_at: datetime | None = None


class AuditEventListResponse(BaseModel):
    items: list[AuditEventResponse]
    total: int


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    error: str
    code: str
    details: list[dict[str, Any]] | None = None
