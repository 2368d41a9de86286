"""Payroll adjustment and recurring deduction models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fleet_payroll.models.base import Base, TimestampMixin

ADJUSTMENT_CATEGORIES = ("DEDUCTION", "REIMBURSEMENT", "BONUS", "CORRECTION")
ADJUSTMENT_STATUSES = ("ACTIVE", "CANCELLED")
RECURRING_TYPES = ("ELD", "IFTA", "TVC", "PARKING", "PRE-PASS", "OTHER")


class PayrollAdjustment(Base, TimestampMixin):
    """One-off amount added to or taken from an employee's week.

    DEDUCTION adjustments count toward other deductions; the remaining
    categories are earnings. Amounts are always positive.
    """

    __tablename__ = "payroll_adjustment"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employee.id", ondelete="CASCADE"),
        nullable=False,
    )
    category: Mapped[str] = mapped_column(String, nullable=False)
    adjustment_type: Mapped[str] = mapped_column(String, nullable=False, default="OTHER")
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    load_number: Mapped[str | None] = mapped_column(String, nullable=True)
    reference_number: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="ACTIVE")
    created_by: Mapped[str] = mapped_column(String, nullable=False, default="system")
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint(
            "category IN ('DEDUCTION', 'REIMBURSEMENT', 'BONUS', 'CORRECTION')",
            name="payroll_adjustment_category_check",
        ),
        CheckConstraint(
            "status IN ('ACTIVE', 'CANCELLED')",
            name="payroll_adjustment_status_check",
        ),
        CheckConstraint("amount > 0", name="payroll_adjustment_amount_check"),
        Index("ix_payroll_adjustment_employee_week", "employee_id", "week_start_date"),
    )

    @property
    def is_deduction(self) -> bool:
        return self.category == "DEDUCTION"


class RecurringDeduction(Base, TimestampMixin):
    """Weekly fee taken from every payroll week from ``week_start`` on.

    The deduction applies to a week starting on ``d`` when it is active,
    ``week_start <= d`` and the end date is open or ``d <= end_date``.
    """

    __tablename__ = "recurring_deduction"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employee.id", ondelete="CASCADE"),
        nullable=False,
    )
    recurring_type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    week_start: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[str] = mapped_column(String, nullable=False, default="system")
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint(
            "recurring_type IN ('ELD', 'IFTA', 'TVC', 'PARKING', 'PRE-PASS', 'OTHER')",
            name="recurring_deduction_type_check",
        ),
        CheckConstraint(
            "end_date IS NULL OR end_date >= week_start",
            name="recurring_deduction_dates_check",
        ),
        Index("ix_recurring_deduction_employee", "employee_id", "week_start"),
    )
