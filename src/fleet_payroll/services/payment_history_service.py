"""Append-only payment method history maintenance."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_payroll.exceptions import NotFoundError, ValidationError
from fleet_payroll.models import PAYMENT_METHODS, Employee, PaymentMethodHistory
from fleet_payroll.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class PaymentHistoryService:
    """Records pay configuration changes as effective-dated history.

    A change never edits the previous entry's figures: it closes the open
    entry at the new effective date and appends a new open entry, then
    mirrors the new configuration onto the employee's current fields.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit = AuditService(session)

    async def list_history(self, employee_id: int) -> list[PaymentMethodHistory]:
        """All history entries of an employee, newest effective date first."""
        await self._get_employee(employee_id)
        result = await self.session.execute(
            select(PaymentMethodHistory)
            .where(PaymentMethodHistory.employee_id == employee_id)
            .order_by(PaymentMethodHistory.effective_date.desc(), PaymentMethodHistory.id.desc())
        )
        return list(result.scalars().all())

    async def record_change(
        self,
        employee_id: int,
        payment_method: str,
        effective_date: date,
        driver_percent: Decimal = Decimal("0"),
        company_percent: Decimal = Decimal("0"),
        service_fee_percent: Decimal = Decimal("0"),
        pay_per_mile_rate: Decimal = Decimal("0"),
        note: str | None = None,
        created_by: str | None = None,
    ) -> PaymentMethodHistory:
        """Append a pay configuration change.

        Closing the open entry, inserting the new one and updating the
        employee happen in one savepoint; either all three land or none.

        Raises:
            NotFoundError: If the employee does not exist
            ValidationError: On an unknown payment method, or an effective
                date before the open entry's effective date
        """
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(
                f"Invalid payment method '{payment_method}'",
                allowed=list(PAYMENT_METHODS),
            )

        employee = await self._get_employee(employee_id)
        created_by = created_by or "system"

        async with self.session.begin_nested():
            open_entries = await self._get_open_entries(employee_id)
            for entry in open_entries:
                if effective_date < entry.effective_date:
                    raise ValidationError(
                        f"Effective date {effective_date} is before the current "
                        f"entry's effective date {entry.effective_date}"
                    )

            if open_entries:
                await self.session.execute(
                    update(PaymentMethodHistory)
                    .where(
                        PaymentMethodHistory.employee_id == employee_id,
                        PaymentMethodHistory.end_date.is_(None),
                    )
                    .values(end_date=effective_date)
                )

            entry = PaymentMethodHistory(
                employee_id=employee_id,
                payment_method=payment_method,
                driver_percent=driver_percent,
                company_percent=company_percent,
                service_fee_percent=service_fee_percent,
                pay_per_mile_rate=pay_per_mile_rate,
                effective_date=effective_date,
                end_date=None,
                note=note,
                created_by=created_by,
            )
            self.session.add(entry)

            employee.apply_payment_config(
                payment_method=payment_method,
                driver_percent=driver_percent,
                company_percent=company_percent,
                service_fee_percent=service_fee_percent,
                pay_per_mile_rate=pay_per_mile_rate,
                updated_by=created_by,
            )
            await self.session.flush()

            await self.audit.record(
                action="PAYMENT_METHOD_CHANGED",
                entity_type="employee",
                entity_id=employee_id,
                actor=created_by,
                details={
                    "history_id": entry.id,
                    "payment_method": payment_method,
                    "effective_date": effective_date,
                    "closed_entries": [e.id for e in open_entries],
                },
            )

        logger.info(
            "Payment method for employee %s set to %s effective %s",
            employee_id,
            payment_method,
            effective_date,
        )
        return entry

    async def update_entry(
        self,
        history_id: int,
        note: str | None = None,
        end_date: date | None = None,
    ) -> PaymentMethodHistory:
        """Change the note or end date of a history entry.

        Rates and effective date are never edited; record a new change instead.
        """
        entry = await self._get_entry(history_id)
        if end_date is not None:
            if end_date < entry.effective_date:
                raise ValidationError(
                    f"End date {end_date} is before effective date {entry.effective_date}"
                )
            entry.end_date = end_date
        if note is not None:
            entry.note = note
        await self.session.flush()
        return entry

    async def delete_entry(self, history_id: int) -> None:
        entry = await self._get_entry(history_id)
        await self.session.delete(entry)
        await self.session.flush()
        logger.info("Deleted payment history entry %s", history_id)

    async def _get_employee(self, employee_id: int) -> Employee:
        employee = await self.session.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    async def _get_entry(self, history_id: int) -> PaymentMethodHistory:
        entry = await self.session.get(PaymentMethodHistory, history_id)
        if entry is None:
            raise NotFoundError("Payment history entry", history_id)
        return entry

    async def _get_open_entries(self, employee_id: int) -> list[PaymentMethodHistory]:
        result = await self.session.execute(
            select(PaymentMethodHistory).where(
                PaymentMethodHistory.employee_id == employee_id,
                PaymentMethodHistory.end_date.is_(None),
            )
        )
        return list(result.scalars().all())
