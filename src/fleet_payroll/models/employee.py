"""Employee and payment method history models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleet_payroll.models.base import Base, TimestampMixin, utcnow

PAYMENT_METHODS = ("PERCENTAGE", "PAY_PER_MILE", "FLAT_RATE")


class Employee(Base, TimestampMixin):
    """Driver or staff member with their current pay configuration."""

    __tablename__ = "employee"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="ACTIVE")

    # Current snapshot only; history lives in payment_method_history
    payment_method: Mapped[str] = mapped_column(
        String, nullable=False, default="PERCENTAGE"
    )
    driver_percent: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    company_percent: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    service_fee_percent: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    pay_per_mile_rate: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('ACTIVE', 'INACTIVE')",
            name="employee_status_check",
        ),
        CheckConstraint(
            "payment_method IN ('PERCENTAGE', 'PAY_PER_MILE', 'FLAT_RATE')",
            name="employee_payment_method_check",
        ),
    )

    # Relationships
    payment_history: Mapped[list[PaymentMethodHistory]] = relationship(
        back_populates="employee",
        order_by="PaymentMethodHistory.effective_date.desc()",
    )

    @property
    def is_active(self) -> bool:
        return self.status == "ACTIVE"

    def apply_payment_config(
        self,
        payment_method: str,
        driver_percent: Decimal,
        company_percent: Decimal,
        service_fee_percent: Decimal,
        pay_per_mile_rate: Decimal,
        updated_by: str | None = None,
    ) -> None:
        """Overwrite the current pay configuration fields."""
        self.payment_method = payment_method
        self.driver_percent = driver_percent
        self.company_percent = company_percent
        self.service_fee_percent = service_fee_percent
        self.pay_per_mile_rate = pay_per_mile_rate
        self.updated_at = utcnow()
        self.updated_by = updated_by


class PaymentMethodHistory(Base, TimestampMixin):
    """Effective-dated pay configuration of an employee.

    At most one row per employee has ``end_date`` NULL (the open entry).
    An entry is in force on ``d`` when ``effective_date <= d`` and the end
    date is either open or strictly after ``d``.
    """

    __tablename__ = "payment_method_history"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    employee_id: Mapped[int] = mapped_column(
        ForeignKey("employee.id", ondelete="CASCADE"),
        nullable=False,
    )
    payment_method: Mapped[str] = mapped_column(String, nullable=False)
    driver_percent: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    company_percent: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    service_fee_percent: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    pay_per_mile_rate: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    note: Mapped[str | None] = mapped_column(String, nullable=True)
    created_by: Mapped[str] = mapped_column(String, nullable=False, default="system")

    __table_args__ = (
        CheckConstraint(
            "end_date IS NULL OR end_date >= effective_date",
            name="payment_method_history_dates_check",
        ),
        Index("ix_payment_method_history_employee", "employee_id", "effective_date"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="payment_history")
