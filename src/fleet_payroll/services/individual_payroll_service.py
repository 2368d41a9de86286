"""Read and edit a single employee's weekly payroll."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_payroll.calculators import week_of
from fleet_payroll.exceptions import NotFoundError, WeekLockedError
from fleet_payroll.models import (
    Employee,
    IndividualPayroll,
    PayrollAdjustment,
    PayrollFuelIntegration,
    PayrollLoad,
    Paystub,
    RecurringDeduction,
    utcnow,
)
from fleet_payroll.services.payroll_store import PayrollStore
from fleet_payroll.services.paystub_service import PaystubService
from fleet_payroll.services.state_machine import PayrollStateMachine, PayrollStatus

logger = logging.getLogger(__name__)


@dataclass
class PayrollDetail:
    """A payroll row with everything that feeds its figures."""

    payroll: IndividualPayroll
    loads: list[PayrollLoad]
    fuel_integrations: list[PayrollFuelIntegration]
    adjustments: list[PayrollAdjustment]
    recurring_deductions: list[RecurringDeduction]
    paystub: Paystub | None


class IndividualPayrollService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = PayrollStore(session)
        self.paystubs = PaystubService(session)

    async def get_payroll(self, payroll_id: int) -> IndividualPayroll:
        payroll = await self.store.get(payroll_id)
        if payroll is None:
            raise NotFoundError("Payroll", payroll_id)
        return payroll

    async def get_detail(self, payroll_id: int) -> PayrollDetail:
        payroll = await self.get_payroll(payroll_id)
        fuel = await self.session.execute(
            select(PayrollFuelIntegration)
            .where(
                PayrollFuelIntegration.payroll_id == payroll.id,
                PayrollFuelIntegration.is_included.is_(True),
            )
            .order_by(PayrollFuelIntegration.fuel_date.desc(), PayrollFuelIntegration.id)
        )
        return PayrollDetail(
            payroll=payroll,
            loads=await self.store.get_load_snapshots(payroll.id),
            fuel_integrations=list(fuel.scalars().all()),
            adjustments=await self.store.get_adjustments(
                payroll.employee_id, payroll.week_start_date
            ),
            recurring_deductions=await self.store.get_recurring_deductions(
                payroll.employee_id, payroll.week_start_date
            ),
            paystub=await self.paystubs.get_for_payroll(payroll.id),
        )

    async def list_for_employee(self, employee_id: int) -> list[IndividualPayroll]:
        """An employee's payroll history, newest week first."""
        if await self.session.get(Employee, employee_id) is None:
            raise NotFoundError("Employee", employee_id)
        result = await self.session.execute(
            select(IndividualPayroll)
            .where(IndividualPayroll.employee_id == employee_id)
            .order_by(IndividualPayroll.week_start_date.desc())
        )
        return list(result.scalars().all())

    async def update_payroll(
        self,
        payroll_id: int,
        notes: str | None = None,
        status: str | None = None,
        updated_by: str | None = None,
    ) -> IndividualPayroll:
        """Edit a payroll's notes or move its status along the state machine.

        Figures are never edited here; they come from loads, fuel and
        adjustments.

        Raises:
            NotFoundError: If the payroll does not exist
            WeekLockedError: If the payroll is locked
            InvalidTransitionError: If the status change is not allowed
        """
        payroll = await self.get_payroll(payroll_id)
        if payroll.is_locked:
            window = week_of(payroll.week_start_date)
            raise WeekLockedError(window.year, window.week)

        now = utcnow()
        if status is not None and status != payroll.status:
            PayrollStateMachine.validate_transition(payroll.status, status)
            logger.info(
                "Payroll %s status %s -> %s by %s",
                payroll.id,
                payroll.status,
                status,
                updated_by or "system",
            )
            payroll.status = status
            if status == PayrollStatus.REVIEWED.value:
                payroll.reviewed_at = now
                payroll.reviewed_by = updated_by or "system"
        if notes is not None:
            payroll.notes = notes
        payroll.updated_at = now
        await self.session.flush()
        return payroll
