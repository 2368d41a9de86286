"""Fuel card transactions imported as payroll deductions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_payroll.calculators import WeekWindow, apply_fuel_deductions, money
from fleet_payroll.models import (
    Employee,
    FuelTransaction,
    IndividualPayroll,
    PayrollFuelIntegration,
    utcnow,
)
from fleet_payroll.services.payroll_store import PayrollStore
from fleet_payroll.services.state_machine import PayrollStateMachine, PayrollStatus
from fleet_payroll.services.week_lock_service import WeekLockService

logger = logging.getLogger(__name__)

DEFAULT_PROCESSOR = "fuel-import"
LOCKED_REASON = "Payroll week is locked"


@dataclass
class DriverFuelResult:
    """Import outcome for one driver name."""

    driver_name: str
    status: str
    transaction_count: int
    employee_id: int | None = None
    payroll_id: int | None = None
    imported_count: int = 0
    skipped_count: int = 0
    failed_count: int = 0
    total_fuel_amount: Decimal = Decimal("0.00")
    reason: str | None = None


@dataclass
class FuelImportResult:
    week_key: str
    start_date: date
    end_date: date
    total_transactions: int = 0
    drivers_processed: int = 0
    imported: int = 0
    skipped: int = 0
    errors: int = 0
    results: list[DriverFuelResult] = field(default_factory=list)


@dataclass
class EmployeeFuelSummary:
    employee_id: int
    employee_name: str
    transaction_count: int
    total_amount: Decimal
    included_count: int
    excluded_count: int
    is_locked: bool


@dataclass
class FuelWeekStatus:
    """Fuel deductions already integrated into a week."""

    week_key: str
    year: int
    week: int
    start_date: date
    total_integrations: int
    employee_count: int
    total_amount: Decimal
    summary: list[EmployeeFuelSummary]
    integrations: list[PayrollFuelIntegration]


class FuelIntegrationService:
    """Imports a week's fuel transactions into payroll deductions.

    Transactions are matched to employees by driver name. Every imported
    transaction becomes one PayrollFuelIntegration row; importing the same
    week again adds nothing, since a transaction is linked to a week at
    most once.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = PayrollStore(session)
        self.locks = WeekLockService(session)

    async def import_week(
        self,
        window: WeekWindow,
        processed_by: str | None = None,
    ) -> FuelImportResult:
        """Import fuel transactions dated inside a week."""
        processed_by = processed_by or DEFAULT_PROCESSOR
        logger.info(
            "Importing fuel transactions for week %s (%s to %s)",
            window.key,
            window.start,
            window.end,
        )
        result = FuelImportResult(
            week_key=window.key, start_date=window.start, end_date=window.end
        )

        transactions = await self._get_transactions(window)
        result.total_transactions = len(transactions)
        if not transactions:
            logger.info("No fuel transactions found for week %s", window.key)
            return result

        groups = group_by_driver(transactions)
        result.drivers_processed = len(groups)
        week_locked = await self.locks.is_week_locked(window)

        for driver_name, driver_transactions in groups.items():
            try:
                async with self.session.begin_nested():
                    outcome = await self._import_driver(
                        driver_name, driver_transactions, window, week_locked, processed_by
                    )
            except Exception as exc:
                logger.exception("Error processing fuel transactions for %s", driver_name)
                outcome = DriverFuelResult(
                    driver_name=driver_name,
                    status="error",
                    transaction_count=len(driver_transactions),
                    failed_count=len(driver_transactions),
                    reason=str(exc),
                )

            if outcome.status == "skipped":
                result.skipped += outcome.transaction_count
            else:
                result.skipped += outcome.skipped_count
            result.errors += outcome.failed_count
            result.imported += outcome.imported_count
            result.results.append(outcome)

        logger.info(
            "Fuel import for %s completed: %d imported, %d skipped, %d errors",
            window.key,
            result.imported,
            result.skipped,
            result.errors,
        )
        return result

    async def _import_driver(
        self,
        driver_name: str,
        transactions: list[FuelTransaction],
        window: WeekWindow,
        week_locked: bool,
        processed_by: str,
    ) -> DriverFuelResult:
        outcome = DriverFuelResult(
            driver_name=driver_name,
            status="skipped",
            transaction_count=len(transactions),
        )

        employee = await self._find_employee(driver_name)
        if employee is None:
            logger.warning("Employee not found for driver name: %s", driver_name)
            outcome.reason = "Employee not found"
            return outcome
        outcome.employee_id = employee.id

        # Checked before find-or-create so a locked week gains no rows
        existing = await self.store.get_for_week(employee.id, window)
        if week_locked or (existing is not None and existing.is_locked):
            logger.warning("Payroll is locked for %s, week %s", driver_name, window.key)
            outcome.reason = LOCKED_REASON
            return outcome
        if existing is not None and not PayrollStateMachine.is_mutable(existing.status):
            outcome.payroll_id = existing.id
            outcome.reason = f"Payroll is {existing.status}"
            return outcome

        payroll = existing
        if payroll is None:
            payroll, _ = await self.store.get_or_create(employee, window, processed_by)
        outcome.payroll_id = payroll.id

        failed = 0
        for transaction in transactions:
            try:
                async with self.session.begin_nested():
                    if await self._link_transaction(
                        transaction, payroll, employee, window, processed_by
                    ):
                        outcome.imported_count += 1
                    else:
                        outcome.skipped_count += 1
            except Exception:
                logger.exception("Error processing fuel transaction %s", transaction.invoice)
                failed += 1
        outcome.failed_count = failed

        fuel_total = await self.store.included_fuel_total(payroll.id)
        apply_fuel_deductions(payroll, fuel_total)
        if payroll.status != PayrollStatus.DRAFT.value:
            payroll.status = PayrollStatus.CALCULATED.value
        payroll.updated_at = utcnow()
        await self.session.flush()

        outcome.status = "error" if failed and not outcome.imported_count else "success"
        outcome.total_fuel_amount = money(sum(t.total_amount for t in transactions))
        if failed:
            outcome.reason = f"{failed} transaction(s) failed"
        logger.info(
            "Imported %d/%d fuel transactions for %s",
            outcome.imported_count,
            len(transactions),
            driver_name,
        )
        return outcome

    async def _link_transaction(
        self,
        transaction: FuelTransaction,
        payroll: IndividualPayroll,
        employee: Employee,
        window: WeekWindow,
        processed_by: str,
    ) -> bool:
        """Create the integration row unless the transaction is already linked."""
        already = await self.session.scalar(
            select(PayrollFuelIntegration.id).where(
                PayrollFuelIntegration.fuel_transaction_id == transaction.id,
                PayrollFuelIntegration.week_start_date == window.start,
            )
        )
        if already is not None:
            logger.debug("Fuel transaction %s already imported", transaction.invoice)
            return False

        amount = money(transaction.total_amount)
        self.session.add(
            PayrollFuelIntegration(
                payroll_id=payroll.id,
                fuel_transaction_id=transaction.id,
                employee_id=employee.id,
                fuel_invoice=transaction.invoice,
                fuel_amount=amount,
                deduction_amount=amount,
                fuel_date=transaction.tran_date,
                location=transaction.location_name or "Unknown",
                week_start_date=window.start,
                is_included=True,
                processed_by=processed_by,
                processed_at=utcnow(),
            )
        )
        await self.session.flush()
        return True

    async def week_status(self, window: WeekWindow) -> FuelWeekStatus:
        """Integrated fuel deductions of a week, summarised per employee."""
        rows = await self.session.execute(
            select(
                PayrollFuelIntegration,
                IndividualPayroll.employee_name,
                IndividualPayroll.is_locked,
            )
            .join(IndividualPayroll, IndividualPayroll.id == PayrollFuelIntegration.payroll_id)
            .where(PayrollFuelIntegration.week_start_date == window.start)
            .order_by(PayrollFuelIntegration.employee_id, PayrollFuelIntegration.fuel_date)
        )

        integrations: list[PayrollFuelIntegration] = []
        by_employee: dict[int, EmployeeFuelSummary] = {}
        for integration, employee_name, is_locked in rows.all():
            integrations.append(integration)
            summary = by_employee.get(integration.employee_id)
            if summary is None:
                summary = EmployeeFuelSummary(
                    employee_id=integration.employee_id,
                    employee_name=employee_name or "Unknown",
                    transaction_count=0,
                    total_amount=Decimal("0.00"),
                    included_count=0,
                    excluded_count=0,
                    is_locked=bool(is_locked),
                )
                by_employee[integration.employee_id] = summary
            summary.transaction_count += 1
            summary.total_amount = money(summary.total_amount + money(integration.fuel_amount))
            if integration.is_included:
                summary.included_count += 1
            else:
                summary.excluded_count += 1

        return FuelWeekStatus(
            week_key=window.key,
            year=window.year,
            week=window.week,
            start_date=window.start,
            total_integrations=len(integrations),
            employee_count=len(by_employee),
            total_amount=money(sum(money(i.fuel_amount) for i in integrations)),
            summary=list(by_employee.values()),
            integrations=integrations,
        )

    async def _get_transactions(self, window: WeekWindow) -> list[FuelTransaction]:
        result = await self.session.execute(
            select(FuelTransaction)
            .where(
                FuelTransaction.tran_date >= window.start,
                FuelTransaction.tran_date <= window.end,
            )
            .order_by(
                func.lower(FuelTransaction.driver_name),
                FuelTransaction.tran_date,
                FuelTransaction.id,
            )
        )
        return list(result.scalars().all())

    async def _find_employee(self, driver_name: str) -> Employee | None:
        result = await self.session.execute(
            select(Employee)
            .where(
                func.lower(Employee.name) == driver_name.strip().lower(),
                Employee.status == "ACTIVE",
            )
            .order_by(Employee.id)
            .limit(1)
        )
        return result.scalar_one_or_none()


def group_by_driver(
    transactions: list[FuelTransaction],
) -> dict[str, list[FuelTransaction]]:
    """Group transactions by driver name, ignoring case.

    The first spelling seen names the group.
    """
    groups: dict[str, list[FuelTransaction]] = {}
    names: dict[str, str] = {}
    for transaction in transactions:
        key = (transaction.driver_name or "").strip().lower()
        name = names.setdefault(key, (transaction.driver_name or "").strip())
        groups.setdefault(name, []).append(transaction)
    return groups
