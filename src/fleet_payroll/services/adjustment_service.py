"""One-off payroll adjustments: deductions, reimbursements, bonuses, corrections."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_payroll.calculators import WeekWindow, money, week_of
from fleet_payroll.exceptions import ConflictError, NotFoundError, ValidationError
from fleet_payroll.models import (
    ADJUSTMENT_CATEGORIES,
    ADJUSTMENT_STATUSES,
    Employee,
    IndividualPayroll,
    PayrollAdjustment,
    utcnow,
)
from fleet_payroll.services.audit_service import AuditService
from fleet_payroll.services.payroll_store import PayrollStore
from fleet_payroll.services.state_machine import PayrollStateMachine
from fleet_payroll.services.week_lock_service import WeekLockService

logger = logging.getLogger(__name__)


@dataclass
class AdjustmentList:
    items: list[PayrollAdjustment]
    total_amount: Decimal = Decimal("0.00")
    category_totals: dict[str, Decimal] = field(default_factory=dict)


class AdjustmentService:
    """Creates and maintains payroll adjustments.

    An adjustment belongs to the week containing its effective date (or an
    explicit week start). Whenever one is written, the employee's payroll
    row for that week, if it exists, has its adjustment totals recomputed
    in the same savepoint. Writes into a locked week are refused, as are
    writes that would change an approved or paid payroll.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = PayrollStore(session)
        self.locks = WeekLockService(session)
        self.audit = AuditService(session)

    async def list_adjustments(
        self,
        employee_id: int | None = None,
        week_start: date | None = None,
        category: str | None = None,
        status: str | None = None,
        limit: int = 100,
    ) -> AdjustmentList:
        query = select(PayrollAdjustment)
        if employee_id is not None:
            query = query.where(PayrollAdjustment.employee_id == employee_id)
        if week_start is not None:
            query = query.where(PayrollAdjustment.week_start_date == week_start)
        if category:
            query = query.where(PayrollAdjustment.category == category)
        if status:
            query = query.where(PayrollAdjustment.status == status)
        result = await self.session.execute(
            query.order_by(
                PayrollAdjustment.effective_date.desc(), PayrollAdjustment.id.desc()
            ).limit(limit)
        )
        items = list(result.scalars().all())

        category_totals: dict[str, Decimal] = {}
        for item in items:
            category_totals[item.category] = money(
                category_totals.get(item.category, Decimal("0")) + money(item.amount)
            )
        return AdjustmentList(
            items=items,
            total_amount=money(sum(money(i.amount) for i in items)),
            category_totals=category_totals,
        )

    async def get_adjustment(self, adjustment_id: int) -> PayrollAdjustment:
        adjustment = await self.session.get(PayrollAdjustment, adjustment_id)
        if adjustment is None:
            raise NotFoundError("Adjustment", adjustment_id)
        return adjustment

    async def create_adjustment(
        self,
        employee_id: int,
        category: str,
        name: str,
        amount: Decimal,
        effective_date: date,
        week_start_date: date | None = None,
        adjustment_type: str | None = None,
        description: str | None = None,
        load_number: str | None = None,
        reference_number: str | None = None,
        created_by: str | None = None,
    ) -> PayrollAdjustment:
        """Record an adjustment and fold it into the week's payroll.

        Raises:
            ValidationError: On an unknown category or a non-positive amount
            NotFoundError: If the employee does not exist
            WeekLockedError: If the adjustment's week is locked
            ConflictError: If the week's payroll is approved or paid
        """
        if category not in ADJUSTMENT_CATEGORIES:
            raise ValidationError(
                f"Invalid category '{category}'", allowed=list(ADJUSTMENT_CATEGORIES)
            )
        amount = self._positive_amount(amount)
        if await self.session.get(Employee, employee_id) is None:
            raise NotFoundError("Employee", employee_id)

        window = week_of(week_start_date or effective_date)
        payroll = await self._writable_payroll(employee_id, window)
        created_by = created_by or "system"

        async with self.session.begin_nested():
            adjustment = PayrollAdjustment(
                employee_id=employee_id,
                category=category,
                adjustment_type=adjustment_type or "OTHER",
                name=name,
                description=description,
                amount=amount,
                effective_date=effective_date,
                week_start_date=window.start,
                load_number=load_number,
                reference_number=reference_number,
                status="ACTIVE",
                created_by=created_by,
            )
            self.session.add(adjustment)
            await self.session.flush()
            if payroll is not None:
                await self.store.apply_adjustments(payroll)

            await self.audit.record(
                action="ADJUSTMENT_CREATED",
                entity_type="payroll_adjustment",
                entity_id=adjustment.id,
                actor=created_by,
                details={
                    "employee_id": employee_id,
                    "category": category,
                    "amount": amount,
                    "week_start_date": window.start,
                    "payroll_id": payroll.id if payroll is not None else None,
                },
            )

        logger.info(
            "Created %s adjustment %s for employee %s, week %s: %s",
            category,
            adjustment.id,
            employee_id,
            window.key,
            amount,
        )
        return adjustment

    async def update_adjustment(
        self,
        adjustment_id: int,
        name: str | None = None,
        description: str | None = None,
        amount: Decimal | None = None,
        status: str | None = None,
        reference_number: str | None = None,
        updated_by: str | None = None,
    ) -> PayrollAdjustment:
        """Edit an adjustment; cancelling it removes it from the payroll totals."""
        adjustment = await self.get_adjustment(adjustment_id)
        if status is not None and status not in ADJUSTMENT_STATUSES:
            raise ValidationError(
                f"Invalid status '{status}'", allowed=list(ADJUSTMENT_STATUSES)
            )
        if amount is not None:
            amount = self._positive_amount(amount)

        payroll = await self._writable_payroll(
            adjustment.employee_id, week_of(adjustment.week_start_date)
        )

        async with self.session.begin_nested():
            if name is not None:
                adjustment.name = name
            if description is not None:
                adjustment.description = description
            if amount is not None:
                adjustment.amount = amount
            if status is not None:
                adjustment.status = status
            if reference_number is not None:
                adjustment.reference_number = reference_number
            adjustment.updated_at = utcnow()
            await self.session.flush()
            if payroll is not None:
                await self.store.apply_adjustments(payroll)

            await self.audit.record(
                action="ADJUSTMENT_UPDATED",
                entity_type="payroll_adjustment",
                entity_id=adjustment.id,
                actor=updated_by,
                details={"amount": adjustment.amount, "status": adjustment.status},
            )
        return adjustment

    async def delete_adjustment(self, adjustment_id: int, deleted_by: str | None = None) -> None:
        adjustment = await self.get_adjustment(adjustment_id)
        payroll = await self._writable_payroll(
            adjustment.employee_id, week_of(adjustment.week_start_date)
        )

        async with self.session.begin_nested():
            details = {
                "employee_id": adjustment.employee_id,
                "category": adjustment.category,
                "amount": adjustment.amount,
                "week_start_date": adjustment.week_start_date,
            }
            await self.session.delete(adjustment)
            await self.session.flush()
            if payroll is not None:
                await self.store.apply_adjustments(payroll)
            await self.audit.record(
                action="ADJUSTMENT_DELETED",
                entity_type="payroll_adjustment",
                entity_id=adjustment_id,
                actor=deleted_by,
                details=details,
            )
        logger.info("Deleted adjustment %s", adjustment_id)

    async def _writable_payroll(
        self, employee_id: int, window: WeekWindow
    ) -> IndividualPayroll | None:
        """The week's payroll row, once the week is known to accept changes."""
        await self.locks.ensure_unlocked(window)
        payroll = await self.store.get_for_week(employee_id, window)
        if payroll is not None and not PayrollStateMachine.is_mutable(payroll.status):
            raise ConflictError(
                f"Payroll {payroll.id} is {payroll.status} and cannot be changed",
                payroll_id=payroll.id,
            )
        return payroll

    @staticmethod
    def _positive_amount(amount: Decimal) -> Decimal:
        amount = money(amount)
        if amount <= 0:
            raise ValidationError("Amount must be a positive number")
        return amount
