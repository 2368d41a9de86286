"""Load and fuel transaction models.

Both tables are owned by the dispatch and fuel-card side of the back office;
payroll only reads them.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from fleet_payroll.models.base import Base, TimestampMixin

LOAD_STATUSES = ("PENDING", "IN_TRANSIT", "DELIVERED", "PAID", "CANCELLED")


class Load(Base, TimestampMixin):
    """A shipment hauled by a driver."""

    __tablename__ = "load"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    load_number: Mapped[str] = mapped_column(String, nullable=False)
    # 0 or NULL means no driver is assigned yet
    driver_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    driver_name: Mapped[str | None] = mapped_column(String, nullable=True)
    delivery_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    gross_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    driver_rate: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    final_miles: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String, nullable=False, default="PENDING")

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'IN_TRANSIT', 'DELIVERED', 'PAID', 'CANCELLED')",
            name="load_status_check",
        ),
        Index("ix_load_driver_delivery", "driver_id", "delivery_date"),
    )

    @property
    def has_driver(self) -> bool:
        return bool(self.driver_id)


class FuelTransaction(Base, TimestampMixin):
    """A fuel card purchase, matched to drivers by name."""

    __tablename__ = "fuel_transaction"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    invoice: Mapped[str] = mapped_column(String, nullable=False)
    driver_name: Mapped[str] = mapped_column(String, nullable=False)
    tran_date: Mapped[date] = mapped_column(Date, nullable=False)
    location_name: Mapped[str | None] = mapped_column(String, nullable=True)
    amount: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    fees: Mapped[Decimal] = mapped_column(default=Decimal("0"))

    __table_args__ = (Index("ix_fuel_transaction_tran_date", "tran_date"),)

    @property
    def total_amount(self) -> Decimal:
        return (self.amount or Decimal("0")) + (self.fees or Decimal("0"))
