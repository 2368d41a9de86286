"""Weekly payroll, payroll line snapshots, paystub, and audit models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleet_payroll.models.base import Base, TimestampMixin

ZERO = Decimal("0")


# ===== Weekly payroll =====


class IndividualPayroll(Base, TimestampMixin):
    """One employee's payroll for one Monday-Sunday week."""

    __tablename__ = "individual_payroll"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employee.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    week_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    pay_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Load totals
    total_loads: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_miles: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    gross_revenue: Mapped[Decimal] = mapped_column(default=ZERO)

    # Earnings
    payment_method: Mapped[str | None] = mapped_column(String, nullable=True)
    base_pay_rate: Mapped[Decimal] = mapped_column(default=ZERO)
    base_pay: Mapped[Decimal] = mapped_column(default=ZERO)
    bonus_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    reimbursements: Mapped[Decimal] = mapped_column(default=ZERO)
    other_earnings: Mapped[Decimal] = mapped_column(default=ZERO)

    # Deductions
    fuel_deductions: Mapped[Decimal] = mapped_column(default=ZERO)
    other_deductions: Mapped[Decimal] = mapped_column(default=ZERO)
    total_deductions: Mapped[Decimal] = mapped_column(default=ZERO)

    # Final figures
    gross_pay: Mapped[Decimal] = mapped_column(default=ZERO)
    net_pay: Mapped[Decimal] = mapped_column(default=ZERO)

    status: Mapped[str] = mapped_column(String, nullable=False, default="DRAFT")
    is_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    calculated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    calculated_by: Mapped[str | None] = mapped_column(String, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_by: Mapped[str] = mapped_column(String, nullable=False, default="system")
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "employee_id",
            "week_start_date",
            "week_end_date",
            name="individual_payroll_employee_week_unique",
        ),
        CheckConstraint(
            "status IN ('DRAFT', 'CALCULATED', 'REVIEWED', 'APPROVED', 'PAID', 'EMPTY')",
            name="individual_payroll_status_check",
        ),
        CheckConstraint(
            "week_end_date >= week_start_date",
            name="individual_payroll_dates_check",
        ),
        Index("ix_individual_payroll_week", "week_start_date", "week_end_date"),
    )

    # Relationships
    loads: Mapped[list[PayrollLoad]] = relationship(back_populates="payroll")
    fuel_integrations: Mapped[list[PayrollFuelIntegration]] = relationship(
        back_populates="payroll"
    )
    paystub: Mapped[Paystub | None] = relationship(back_populates="payroll")


class PayrollLoad(Base, TimestampMixin):
    """Snapshot of a load's figures as counted in one payroll.

    The copy is taken when the load is aggregated (or moved) into the payroll
    so later edits to the load do not rewrite historical pay.
    """

    __tablename__ = "payroll_load"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    payroll_id: Mapped[int] = mapped_column(
        ForeignKey("individual_payroll.id", ondelete="CASCADE"),
        nullable=False,
    )
    load_id: Mapped[int] = mapped_column(
        ForeignKey("load.id", ondelete="CASCADE"),
        nullable=False,
    )
    load_number: Mapped[str] = mapped_column(String, nullable=False)
    gross_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    driver_rate: Mapped[Decimal] = mapped_column(default=ZERO)
    final_miles: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_included: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Set when a reassignment put the load here; aggregation keeps these rows
    is_moved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("payroll_id", "load_id", name="payroll_load_unique"),
        Index("ix_payroll_load_load", "load_id"),
    )

    # Relationships
    payroll: Mapped[IndividualPayroll] = relationship(back_populates="loads")


class PayrollFuelIntegration(Base, TimestampMixin):
    """A fuel transaction deducted from a payroll."""

    __tablename__ = "payroll_fuel_integration"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    payroll_id: Mapped[int] = mapped_column(
        ForeignKey("individual_payroll.id", ondelete="CASCADE"),
        nullable=False,
    )
    fuel_transaction_id: Mapped[int] = mapped_column(
        ForeignKey("fuel_transaction.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employee.id", ondelete="CASCADE"),
        nullable=False,
    )
    fuel_invoice: Mapped[str] = mapped_column(String, nullable=False)
    fuel_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    deduction_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    fuel_date: Mapped[date] = mapped_column(Date, nullable=False)
    location: Mapped[str] = mapped_column(String, nullable=False, default="Unknown")
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_included: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    processed_by: Mapped[str] = mapped_column(String, nullable=False, default="fuel-import")
    processed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "fuel_transaction_id",
            "week_start_date",
            name="payroll_fuel_integration_week_unique",
        ),
        Index("ix_payroll_fuel_integration_payroll", "payroll_id"),
    )

    # Relationships
    payroll: Mapped[IndividualPayroll] = relationship(back_populates="fuel_integrations")


# ===== Paystubs =====


class Paystub(Base, TimestampMixin):
    """Point-in-time copy of a payroll's figures."""

    __tablename__ = "paystub"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    payroll_id: Mapped[int] = mapped_column(
        ForeignKey("individual_payroll.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employee.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    week_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    week_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    pay_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    payment_method: Mapped[str | None] = mapped_column(String, nullable=True)
    base_pay_rate: Mapped[Decimal] = mapped_column(default=ZERO)

    total_loads: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_miles: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    gross_revenue: Mapped[Decimal] = mapped_column(default=ZERO)

    base_pay: Mapped[Decimal] = mapped_column(default=ZERO)
    bonus_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    reimbursements: Mapped[Decimal] = mapped_column(default=ZERO)
    other_earnings: Mapped[Decimal] = mapped_column(default=ZERO)
    fuel_deductions: Mapped[Decimal] = mapped_column(default=ZERO)
    other_deductions: Mapped[Decimal] = mapped_column(default=ZERO)
    total_deductions: Mapped[Decimal] = mapped_column(default=ZERO)
    gross_pay: Mapped[Decimal] = mapped_column(default=ZERO)
    net_pay: Mapped[Decimal] = mapped_column(default=ZERO)

    status: Mapped[str] = mapped_column(String, nullable=False, default="DRAFT")
    generated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_by: Mapped[str] = mapped_column(String, nullable=False, default="system")
    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('DRAFT', 'APPROVED', 'PAID')",
            name="paystub_status_check",
        ),
    )

    # Relationships
    payroll: Mapped[IndividualPayroll] = relationship(back_populates="paystub")


# ===== Audit =====


class AuditEvent(Base, TimestampMixin):
    """Append-only audit trail entry."""

    __tablename__ = "audit_event"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    action: Mapped[str] = mapped_column(String, nullable=False)
    actor: Mapped[str] = mapped_column(String, nullable=False, default="system")
    details: Mapped[dict[str, Any] | None] = mapped_column(nullable=True)

    __table_args__ = (Index("ix_audit_event_entity", "entity_type", "entity_id"),)
