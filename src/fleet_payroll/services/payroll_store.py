"""Data access for weekly payroll records."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_payroll.calculators import (
    WeekWindow,
    apply_adjustment_totals,
    apply_load_totals,
    base_pay_rate,
    money,
    sum_adjustments,
    sum_load_figures,
)
from fleet_payroll.config import get_settings
from fleet_payroll.models import (
    Employee,
    IndividualPayroll,
    PayrollAdjustment,
    PayrollFuelIntegration,
    PayrollLoad,
    RecurringDeduction,
    utcnow,
)
from fleet_payroll.services.state_machine import PayrollStatus

logger = logging.getLogger(__name__)


class PayrollStore:
    """Reads and writes IndividualPayroll rows and their load snapshots.

    Every service that touches payroll rows goes through one of these,
    bound to the request's session.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, payroll_id: int) -> IndividualPayroll | None:
        return await self.session.get(IndividualPayroll, payroll_id)

    async def get_for_week(
        self, employee_id: int, window: WeekWindow
    ) -> IndividualPayroll | None:
        """The employee's payroll row for a week, if any."""
        result = await self.session.execute(
            select(IndividualPayroll).where(
                IndividualPayroll.employee_id == employee_id,
                IndividualPayroll.week_start_date == window.start,
                IndividualPayroll.week_end_date == window.end,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_week(
        self,
        window: WeekWindow,
        statuses: list[str] | None = None,
        employee_ids: list[int] | None = None,
    ) -> list[IndividualPayroll]:
        query = select(IndividualPayroll).where(
            IndividualPayroll.week_start_date == window.start,
            IndividualPayroll.week_end_date == window.end,
        )
        if statuses:
            query = query.where(IndividualPayroll.status.in_(statuses))
        if employee_ids:
            query = query.where(IndividualPayroll.employee_id.in_(employee_ids))
        result = await self.session.execute(
            query.order_by(IndividualPayroll.employee_name, IndividualPayroll.id)
        )
        return list(result.scalars().all())

    async def get_or_create(
        self,
        employee: Employee,
        window: WeekWindow,
        created_by: str | None = None,
    ) -> tuple[IndividualPayroll, bool]:
        """Find the employee's payroll row for a week, creating an empty draft.

        Returns (payroll, created).
        """
        payroll = await self.get_for_week(employee.id, window)
        if payroll is not None:
            return payroll, False

        zero = Decimal("0.00")
        payroll = IndividualPayroll(
            employee_id=employee.id,
            employee_name=employee.name,
            week_start_date=window.start,
            week_end_date=window.end,
            pay_date=window.pay_date(get_settings().pay_day_offset_days),
            total_loads=0,
            total_miles=0,
            gross_revenue=zero,
            payment_method=employee.payment_method,
            base_pay_rate=base_pay_rate(
                employee.payment_method,
                employee.driver_percent,
                employee.pay_per_mile_rate,
            ),
            base_pay=zero,
            bonus_amount=zero,
            reimbursements=zero,
            other_earnings=zero,
            fuel_deductions=zero,
            other_deductions=zero,
            total_deductions=zero,
            gross_pay=zero,
            net_pay=zero,
            status=PayrollStatus.DRAFT.value,
            is_locked=False,
            created_by=created_by or "system",
        )
        self.session.add(payroll)
        await self.session.flush()
        await self.apply_adjustments(payroll)
        logger.info(
            "Created payroll %s for %s, week %s", payroll.id, employee.name, window.key
        )
        return payroll, True

    async def get_load_snapshots(self, payroll_id: int) -> list[PayrollLoad]:
        result = await self.session.execute(
            select(PayrollLoad)
            .where(PayrollLoad.payroll_id == payroll_id)
            .order_by(PayrollLoad.delivery_date, PayrollLoad.id)
        )
        return list(result.scalars().all())

    async def recalculate_from_snapshots(self, payroll: IndividualPayroll) -> None:
        """Recompute load totals from the payroll's included snapshots.

        The status reflects whether any loads remain: DRAFT when they do,
        EMPTY otherwise.
        """
        snapshots = await self.get_load_snapshots(payroll.id)
        totals = sum_load_figures(snapshots)
        apply_load_totals(payroll, totals)
        payroll.status = (
            PayrollStatus.DRAFT.value if totals.total_loads > 0 else PayrollStatus.EMPTY.value
        )
        payroll.updated_at = utcnow()
        await self.session.flush()

    async def included_fuel_total(self, payroll_id: int) -> Decimal:
        """Sum of included fuel deductions linked to a payroll."""
        total = await self.session.scalar(
            select(func.coalesce(func.sum(PayrollFuelIntegration.deduction_amount), 0)).where(
                PayrollFuelIntegration.payroll_id == payroll_id,
                PayrollFuelIntegration.is_included.is_(True),
            )
        )
        return money(total)

    async def get_adjustments(
        self, employee_id: int, week_start: date, active_only: bool = True
    ) -> list[PayrollAdjustment]:
        query = select(PayrollAdjustment).where(
            PayrollAdjustment.employee_id == employee_id,
            PayrollAdjustment.week_start_date == week_start,
        )
        if active_only:
            query = query.where(PayrollAdjustment.status == "ACTIVE")
        result = await self.session.execute(
            query.order_by(PayrollAdjustment.effective_date.desc(), PayrollAdjustment.id)
        )
        return list(result.scalars().all())

    async def get_recurring_deductions(
        self, employee_id: int, week_start: date
    ) -> list[RecurringDeduction]:
        """Active recurring deductions that apply to the week starting on ``week_start``."""
        result = await self.session.execute(
            select(RecurringDeduction)
            .where(
                RecurringDeduction.employee_id == employee_id,
                RecurringDeduction.is_active.is_(True),
                RecurringDeduction.week_start <= week_start,
                (
                    RecurringDeduction.end_date.is_(None)
                    | (RecurringDeduction.end_date >= week_start)
                ),
            )
            .order_by(RecurringDeduction.recurring_type, RecurringDeduction.id)
        )
        return list(result.scalars().all())

    async def apply_adjustments(self, payroll: IndividualPayroll) -> None:
        """Recompute adjustment earnings and other deductions for a payroll."""
        adjustments = await self.get_adjustments(payroll.employee_id, payroll.week_start_date)
        recurring = await self.get_recurring_deductions(
            payroll.employee_id, payroll.week_start_date
        )
        apply_adjustment_totals(payroll, sum_adjustments(adjustments, recurring))
        payroll.updated_at = utcnow()
        await self.session.flush()
