"""Recurring weekly deductions (ELD, IFTA, parking and similar fees)."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_payroll.calculators import money, week_of
from fleet_payroll.exceptions import ConflictError, NotFoundError, ValidationError
from fleet_payroll.models import (
    RECURRING_TYPES,
    Employee,
    IndividualPayroll,
    RecurringDeduction,
    utcnow,
)
from fleet_payroll.services.audit_service import AuditService
from fleet_payroll.services.payroll_store import PayrollStore
from fleet_payroll.services.state_machine import PayrollStateMachine

logger = logging.getLogger(__name__)

MAX_RECURRING_AMOUNT = Decimal("1000.00")


class RecurringDeductionService:
    """Maintains recurring deductions and keeps open payrolls in step.

    After every write, each payroll row of the employee from the
    deduction's first week onward is recomputed, except rows that are
    locked or already approved or paid; those keep the figures they were
    frozen with.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = PayrollStore(session)
        self.audit = AuditService(session)

    async def list_deductions(
        self,
        employee_id: int | None = None,
        active_only: bool = False,
        recurring_type: str | None = None,
    ) -> list[RecurringDeduction]:
        query = select(RecurringDeduction)
        if employee_id is not None:
            query = query.where(RecurringDeduction.employee_id == employee_id)
        if active_only:
            query = query.where(RecurringDeduction.is_active.is_(True))
        if recurring_type:
            query = query.where(RecurringDeduction.recurring_type == recurring_type)
        result = await self.session.execute(
            query.order_by(
                RecurringDeduction.employee_id,
                RecurringDeduction.recurring_type,
                RecurringDeduction.week_start.desc(),
            )
        )
        return list(result.scalars().all())

    async def get_deduction(self, deduction_id: int) -> RecurringDeduction:
        deduction = await self.session.get(RecurringDeduction, deduction_id)
        if deduction is None:
            raise NotFoundError("Recurring deduction", deduction_id)
        return deduction

    async def create_deduction(
        self,
        employee_id: int,
        recurring_type: str,
        amount: Decimal,
        week_start: date,
        description: str | None = None,
        end_date: date | None = None,
        created_by: str | None = None,
    ) -> RecurringDeduction:
        """Start a recurring deduction from the week containing ``week_start``.

        Raises:
            ValidationError: On an unknown type, an amount outside
                0.01..1000, or an end date before the first week
            NotFoundError: If the employee does not exist
            ConflictError: If an active deduction of the same type already
                covers any of the same weeks
        """
        if recurring_type not in RECURRING_TYPES:
            raise ValidationError(
                f"Invalid recurring type '{recurring_type}'", allowed=list(RECURRING_TYPES)
            )
        amount = self._valid_amount(amount)
        start = week_of(week_start).start
        self._validate_end_date(start, end_date)
        if await self.session.get(Employee, employee_id) is None:
            raise NotFoundError("Employee", employee_id)

        if await self._find_overlap(employee_id, recurring_type, start, end_date) is not None:
            raise ConflictError(
                f"Active {recurring_type} deduction already exists for this driver and week",
                employee_id=employee_id,
            )

        created_by = created_by or "system"
        async with self.session.begin_nested():
            deduction = RecurringDeduction(
                employee_id=employee_id,
                recurring_type=recurring_type,
                amount=amount,
                description=description or f"{recurring_type} fee",
                week_start=start,
                end_date=end_date,
                is_active=True,
                created_by=created_by,
            )
            self.session.add(deduction)
            await self.session.flush()
            refreshed = await self._refresh_payrolls(employee_id, start)
            await self.audit.record(
                action="RECURRING_DEDUCTION_CREATED",
                entity_type="recurring_deduction",
                entity_id=deduction.id,
                actor=created_by,
                details={
                    "employee_id": employee_id,
                    "recurring_type": recurring_type,
                    "amount": amount,
                    "week_start": start,
                    "end_date": end_date,
                    "payrolls_updated": refreshed,
                },
            )

        logger.info(
            "Created %s recurring deduction %s for employee %s: %s weekly, %d payrolls updated",
            recurring_type,
            deduction.id,
            employee_id,
            amount,
            refreshed,
        )
        return deduction

    async def update_deduction(
        self,
        deduction_id: int,
        amount: Decimal | None = None,
        description: str | None = None,
        is_active: bool | None = None,
        end_date: date | None = None,
        updated_by: str | None = None,
    ) -> RecurringDeduction:
        deduction = await self.get_deduction(deduction_id)
        if amount is not None:
            amount = self._valid_amount(amount)
        if end_date is not None:
            self._validate_end_date(deduction.week_start, end_date)
        if is_active and not deduction.is_active:
            overlap = await self._find_overlap(
                deduction.employee_id,
                deduction.recurring_type,
                deduction.week_start,
                end_date or deduction.end_date,
                exclude_id=deduction.id,
            )
            if overlap is not None:
                raise ConflictError(
                    f"Active {deduction.recurring_type} deduction already exists "
                    "for this driver and week",
                    employee_id=deduction.employee_id,
                )

        async with self.session.begin_nested():
            if amount is not None:
                deduction.amount = amount
            if description is not None:
                deduction.description = description
            if is_active is not None:
                deduction.is_active = is_active
            if end_date is not None:
                deduction.end_date = end_date
            deduction.updated_at = utcnow()
            await self.session.flush()
            await self._refresh_payrolls(deduction.employee_id, deduction.week_start)
            await self.audit.record(
                action="RECURRING_DEDUCTION_UPDATED",
                entity_type="recurring_deduction",
                entity_id=deduction.id,
                actor=updated_by,
                details={
                    "amount": deduction.amount,
                    "is_active": deduction.is_active,
                    "end_date": deduction.end_date,
                },
            )
        return deduction

    async def delete_deduction(self, deduction_id: int, deleted_by: str | None = None) -> None:
        deduction = await self.get_deduction(deduction_id)
        employee_id = deduction.employee_id
        week_start = deduction.week_start

        async with self.session.begin_nested():
            await self.session.delete(deduction)
            await self.session.flush()
            await self._refresh_payrolls(employee_id, week_start)
            await self.audit.record(
                action="RECURRING_DEDUCTION_DELETED",
                entity_type="recurring_deduction",
                entity_id=deduction_id,
                actor=deleted_by,
                details={"employee_id": employee_id, "week_start": week_start},
            )
        logger.info("Deleted recurring deduction %s", deduction_id)

    async def _refresh_payrolls(self, employee_id: int, from_week: date) -> int:
        result = await self.session.execute(
            select(IndividualPayroll)
            .where(
                IndividualPayroll.employee_id == employee_id,
                IndividualPayroll.week_start_date >= from_week,
                IndividualPayroll.is_locked.is_(False),
            )
            .order_by(IndividualPayroll.week_start_date)
        )
        refreshed = 0
        for payroll in result.scalars().all():
            if not PayrollStateMachine.is_mutable(payroll.status):
                continue
            await self.store.apply_adjustments(payroll)
            refreshed += 1
        return refreshed

    async def _find_overlap(
        self,
        employee_id: int,
        recurring_type: str,
        start: date,
        end_date: date | None,
        exclude_id: int | None = None,
    ) -> RecurringDeduction | None:
        query = select(RecurringDeduction).where(
            RecurringDeduction.employee_id == employee_id,
            RecurringDeduction.recurring_type == recurring_type,
            RecurringDeduction.is_active.is_(True),
            RecurringDeduction.end_date.is_(None) | (RecurringDeduction.end_date >= start),
        )
        if end_date is not None:
            query = query.where(RecurringDeduction.week_start <= end_date)
        if exclude_id is not None:
            query = query.where(RecurringDeduction.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none()

    @staticmethod
    def _valid_amount(amount: Decimal) -> Decimal:
        amount = money(amount)
        if amount <= 0 or amount > MAX_RECURRING_AMOUNT:
            raise ValidationError("Amount must be between $0.01 and $1,000")
        return amount

    @staticmethod
    def _validate_end_date(start: date, end_date: date | None) -> None:
        if end_date is not None and end_date < start:
            raise ValidationError(f"End date {end_date} is before the first week {start}")
