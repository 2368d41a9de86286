"""Weekly payroll aggregation - sums delivered loads into payroll rows."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_payroll.calculators import (
    PaymentMethodResolver,
    WeekWindow,
    apply_load_totals,
    sum_load_figures,
)
from fleet_payroll.config import get_settings
from fleet_payroll.exceptions import NotFoundError
from fleet_payroll.models import Employee, IndividualPayroll, Load, PayrollLoad, utcnow
from fleet_payroll.services.payroll_store import PayrollStore
from fleet_payroll.services.state_machine import PayrollStateMachine, PayrollStatus
from fleet_payroll.services.week_lock_service import WeekLockService

logger = logging.getLogger(__name__)

LOCKED_REASON = "Payroll week is locked"


@dataclass
class EmployeeAggregation:
    """Aggregation outcome for one employee."""

    employee_id: int
    employee_name: str | None
    status: str
    payroll_id: int | None = None
    total_loads: int = 0
    total_miles: int = 0
    gross_revenue: Decimal = Decimal("0.00")
    base_pay: Decimal = Decimal("0.00")
    gross_pay: Decimal = Decimal("0.00")
    net_pay: Decimal = Decimal("0.00")
    reason: str | None = None


@dataclass
class AggregationResult:
    """Outcome of aggregating one week."""

    week_key: str
    start_date: date
    end_date: date
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    results: list[EmployeeAggregation] = field(default_factory=list)

    def add(self, outcome: EmployeeAggregation) -> None:
        self.results.append(outcome)
        if outcome.status == "success":
            self.processed += 1
        elif outcome.status == "skipped":
            self.skipped += 1
        else:
            self.errors += 1


class PayrollAggregationService:
    """Builds one payroll row per employee per week from delivered loads.

    For each employee:
    1. Collect DELIVERED loads with a delivery date inside the week
    2. Skip employees with nothing to pay, and locked or finalised payrolls
    3. Upsert the payroll row and replace its load snapshots
    4. Sum the snapshots into totals; gross pay is the summed driver rate

    Each employee runs in its own savepoint so one failure does not undo
    the others.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = PayrollStore(session)
        self.locks = WeekLockService(session)
        self.resolver = PaymentMethodResolver(session)

    async def aggregate_week(
        self,
        window: WeekWindow,
        employee_ids: list[int] | None = None,
        calculated_by: str | None = None,
    ) -> AggregationResult:
        """Aggregate payroll for a week.

        Args:
            window: The payroll week
            employee_ids: Employees to aggregate; all active employees if omitted
            calculated_by: Recorded on every payroll row written

        Raises:
            NotFoundError: If there are no employees to aggregate
        """
        logger.info("Calculating weekly payroll for week %s", window.key)
        result = AggregationResult(
            week_key=window.key, start_date=window.start, end_date=window.end
        )

        employees = await self._select_employees(employee_ids, result)
        if not employees and not result.results:
            raise NotFoundError("Active employees", None)

        week_locked = await self.locks.is_week_locked(window)

        for employee in employees:
            employee_id = employee.id
            employee_name = employee.name
            try:
                async with self.session.begin_nested():
                    outcome = await self._aggregate_employee(
                        employee, window, week_locked, calculated_by
                    )
            except Exception as exc:
                logger.exception("Error aggregating payroll for %s", employee_name)
                outcome = EmployeeAggregation(
                    employee_id=employee_id,
                    employee_name=employee_name,
                    status="error",
                    reason=str(exc),
                )
            result.add(outcome)

        logger.info(
            "Payroll calculation for %s completed: %d processed, %d skipped, %d errors",
            window.key,
            result.processed,
            result.skipped,
            result.errors,
        )
        return result

    async def _select_employees(
        self,
        employee_ids: list[int] | None,
        result: AggregationResult,
    ) -> list[Employee]:
        if not employee_ids:
            rows = await self.session.execute(
                select(Employee).where(Employee.status == "ACTIVE").order_by(Employee.name)
            )
            return list(rows.scalars().all())

        rows = await self.session.execute(
            select(Employee).where(Employee.id.in_(employee_ids)).order_by(Employee.name)
        )
        employees = list(rows.scalars().all())
        found = {e.id for e in employees}
        for missing_id in employee_ids:
            if missing_id not in found:
                result.add(
                    EmployeeAggregation(
                        employee_id=missing_id,
                        employee_name=None,
                        status="error",
                        reason="Employee not found",
                    )
                )
        return employees

    async def _aggregate_employee(
        self,
        employee: Employee,
        window: WeekWindow,
        week_locked: bool,
        calculated_by: str | None,
    ) -> EmployeeAggregation:
        existing = await self.store.get_for_week(employee.id, window)

        loads = await self._get_delivered_loads(employee.id, window, existing)
        moved_in = []
        if existing is not None:
            moved_in = [
                row for row in await self.store.get_load_snapshots(existing.id) if row.is_moved
            ]

        if not loads and not moved_in:
            logger.info("Skipping %s - no delivered loads in %s", employee.name, window.key)
            return self._skipped(employee, existing, "No delivered loads")

        if week_locked or (existing is not None and existing.is_locked):
            logger.warning("Skipping %s - week %s is locked", employee.name, window.key)
            return self._skipped(employee, existing, LOCKED_REASON)

        if existing is not None and not PayrollStateMachine.is_mutable(existing.status):
            logger.warning(
                "Skipping %s - payroll %s is %s", employee.name, existing.id, existing.status
            )
            return self._skipped(employee, existing, f"Payroll is {existing.status}")

        payroll = existing
        if payroll is None:
            payroll, _ = await self.store.get_or_create(employee, window, calculated_by)

        snapshots = await self._replace_snapshots(payroll, loads, moved_in)
        totals = sum_load_figures([*snapshots, *moved_in])
        apply_load_totals(payroll, totals)
        await self.store.apply_adjustments(payroll)

        config = await self.resolver.resolve(employee.id, window.start)
        now = utcnow()
        payroll.payment_method = config.payment_method
        payroll.base_pay_rate = config.base_pay_rate
        payroll.pay_date = window.pay_date(get_settings().pay_day_offset_days)
        payroll.status = PayrollStatus.CALCULATED.value
        payroll.calculated_at = now
        payroll.calculated_by = calculated_by or "system"
        payroll.updated_at = now
        payroll.notes = f"Calculated for week {window.key}"
        await self.session.flush()

        logger.info(
            "Payroll %s for %s: %d loads, %d miles, gross revenue %s, base pay %s",
            payroll.id,
            employee.name,
            totals.total_loads,
            totals.total_miles,
            totals.gross_revenue,
            totals.base_pay,
        )

        return EmployeeAggregation(
            employee_id=employee.id,
            employee_name=employee.name,
            status="success",
            payroll_id=payroll.id,
            total_loads=payroll.total_loads,
            total_miles=payroll.total_miles,
            gross_revenue=payroll.gross_revenue,
            base_pay=payroll.base_pay,
            gross_pay=payroll.gross_pay,
            net_pay=payroll.net_pay,
        )

    async def _get_delivered_loads(
        self,
        employee_id: int,
        window: WeekWindow,
        existing: IndividualPayroll | None,
    ) -> list[Load]:
        """Delivered loads of the week, minus loads moved into another payroll."""
        moved_elsewhere = select(PayrollLoad.load_id).where(PayrollLoad.is_moved.is_(True))
        if existing is not None:
            moved_elsewhere = moved_elsewhere.where(PayrollLoad.payroll_id != existing.id)

        result = await self.session.execute(
            select(Load)
            .where(
                Load.driver_id == employee_id,
                Load.status == "DELIVERED",
                Load.delivery_date >= window.start,
                Load.delivery_date <= window.end,
                Load.id.not_in(moved_elsewhere),
            )
            .order_by(Load.delivery_date, Load.id)
        )
        return list(result.scalars().all())

    async def _replace_snapshots(
        self,
        payroll: IndividualPayroll,
        loads: list[Load],
        moved_in: list[PayrollLoad],
    ) -> list[PayrollLoad]:
        """Drop the payroll's aggregated snapshots and take fresh ones."""
        await self.session.execute(
            delete(PayrollLoad).where(
                PayrollLoad.payroll_id == payroll.id,
                PayrollLoad.is_moved.is_(False),
            )
        )

        already_present = {row.load_id for row in moved_in}
        snapshots = []
        for load in loads:
            if load.id in already_present:
                continue
            snapshot = PayrollLoad(
                payroll_id=payroll.id,
                load_id=load.id,
                load_number=load.load_number,
                gross_amount=load.gross_amount,
                driver_rate=load.driver_rate,
                final_miles=load.final_miles or 0,
                delivery_date=load.delivery_date,
                is_included=True,
                is_moved=False,
            )
            self.session.add(snapshot)
            snapshots.append(snapshot)
        await self.session.flush()
        return snapshots

    def _skipped(
        self,
        employee: Employee,
        existing: IndividualPayroll | None,
        reason: str,
    ) -> EmployeeAggregation:
        return EmployeeAggregation(
            employee_id=employee.id,
            employee_name=employee.name,
            status="skipped",
            payroll_id=existing.id if existing is not None else None,
            reason=reason,
        )
