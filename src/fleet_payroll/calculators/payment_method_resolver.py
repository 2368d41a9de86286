"""Effective-dated payment method resolution."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Literal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_payroll.exceptions import NotFoundError
from fleet_payroll.models import Employee, PaymentMethodHistory


@dataclass(frozen=True)
class EffectivePaymentMethod:
    """Pay configuration in force for an employee on a date."""

    employee_id: int
    payment_method: str
    driver_percent: Decimal
    company_percent: Decimal
    service_fee_percent: Decimal
    pay_per_mile_rate: Decimal
    effective_date: date
    end_date: date | None
    source: Literal["history", "current"]

    @property
    def base_pay_rate(self) -> Decimal:
        return base_pay_rate(self.payment_method, self.driver_percent, self.pay_per_mile_rate)


def base_pay_rate(
    payment_method: str | None,
    driver_percent: Decimal | None,
    pay_per_mile_rate: Decimal | None,
) -> Decimal:
    """The headline rate shown on a payroll for a payment method."""
    if payment_method == "PERCENTAGE":
        return driver_percent or Decimal("0")
    if payment_method == "PAY_PER_MILE":
        return pay_per_mile_rate or Decimal("0")
    return Decimal("0")


class PaymentMethodResolver:
    """Resolves which pay configuration applied to an employee on a date.

    Resolution order:
    1. The latest history entry with ``effective_date <= as_of_date`` whose
       end date is open or after ``as_of_date``
    2. The employee's current configuration fields
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve(self, employee_id: int, as_of_date: date) -> EffectivePaymentMethod:
        """Resolve the payment method for an employee on a date.

        Raises:
            NotFoundError: If no history matches and the employee does not exist
        """
        entry = await self._get_history_entry(employee_id, as_of_date)
        if entry is not None:
            return EffectivePaymentMethod(
                employee_id=employee_id,
                payment_method=entry.payment_method,
                driver_percent=entry.driver_percent,
                company_percent=entry.company_percent,
                service_fee_percent=entry.service_fee_percent,
                pay_per_mile_rate=entry.pay_per_mile_rate,
                effective_date=entry.effective_date,
                end_date=entry.end_date,
                source="history",
            )

        employee = await self.session.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)

        return EffectivePaymentMethod(
            employee_id=employee_id,
            payment_method=employee.payment_method,
            driver_percent=employee.driver_percent,
            company_percent=employee.company_percent,
            service_fee_percent=employee.service_fee_percent,
            pay_per_mile_rate=employee.pay_per_mile_rate,
            effective_date=as_of_date,
            end_date=None,
            source="current",
        )

    async def _get_history_entry(
        self,
        employee_id: int,
        as_of_date: date,
    ) -> PaymentMethodHistory | None:
        result = await self.session.execute(
            select(PaymentMethodHistory)
            .where(
                PaymentMethodHistory.employee_id == employee_id,
                PaymentMethodHistory.effective_date <= as_of_date,
                (
                    PaymentMethodHistory.end_date.is_(None)
                    | (PaymentMethodHistory.end_date > as_of_date)
                ),
            )
            .order_by(PaymentMethodHistory.effective_date.desc(), PaymentMethodHistory.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
