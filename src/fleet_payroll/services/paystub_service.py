"""Paystub generation and status workflow."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_payroll.calculators import WeekWindow, money
from fleet_payroll.exceptions import NotFoundError, ValidationError
from fleet_payroll.models import IndividualPayroll, Paystub, utcnow
from fleet_payroll.services.payroll_store import PayrollStore
from fleet_payroll.services.state_machine import (
    PayrollStateMachine,
    PayrollStatus,
    PaystubStateMachine,
    PaystubStatus,
)

logger = logging.getLogger(__name__)

# Payroll fields copied verbatim onto the paystub
SNAPSHOT_FIELDS = (
    "employee_id",
    "employee_name",
    "week_start_date",
    "week_end_date",
    "pay_date",
    "payment_method",
    "base_pay_rate",
    "total_loads",
    "total_miles",
    "gross_revenue",
    "base_pay",
    "bonus_amount",
    "reimbursements",
    "other_earnings",
    "fuel_deductions",
    "other_deductions",
    "total_deductions",
    "gross_pay",
    "net_pay",
)

GENERATABLE_STATUSES = [PayrollStatus.CALCULATED.value, PayrollStatus.REVIEWED.value]

# Payroll status that follows each paystub status
PAYROLL_STATUS_FOR = {
    PaystubStatus.APPROVED.value: PayrollStatus.APPROVED.value,
    PaystubStatus.PAID.value: PayrollStatus.PAID.value,
}


@dataclass
class PaystubOutcome:
    payroll_id: int
    employee_id: int
    employee_name: str
    status: str
    paystub_id: int | None = None
    net_pay: Decimal | None = None
    reason: str | None = None


@dataclass
class PaystubBatchResult:
    """Outcome of a paystub generation run."""

    total_payrolls: int = 0
    generated: int = 0
    skipped: int = 0
    errors: int = 0
    total_net_pay: Decimal = Decimal("0.00")
    results: list[PaystubOutcome] = field(default_factory=list)

    def add(self, outcome: PaystubOutcome) -> None:
        self.results.append(outcome)
        if outcome.status in ("created", "updated"):
            self.generated += 1
            self.total_net_pay = money(self.total_net_pay + money(outcome.net_pay))
        elif outcome.status == "skipped":
            self.skipped += 1
        else:
            self.errors += 1


class PaystubService:
    """Snapshots payroll figures into paystubs.

    A paystub copies its payroll's figures as they are; nothing is
    recalculated. A draft paystub is refreshed by the next generation run,
    an approved or paid one is never overwritten.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = PayrollStore(session)

    async def generate(
        self,
        payroll_ids: list[int] | None = None,
        employee_ids: list[int] | None = None,
        window: WeekWindow | None = None,
        generated_by: str | None = None,
        auto_approve: bool = False,
    ) -> PaystubBatchResult:
        """Generate paystubs for a selection of payrolls.

        Selection, in order of precedence:
        1. The given payroll ids
        2. The given employees' payrolls of ``window``
        3. Every CALCULATED or REVIEWED payroll of ``window``

        Raises:
            ValidationError: If no selection can be made from the arguments
            NotFoundError: If the selection matches no payroll
        """
        payrolls = await self._select_payrolls(payroll_ids, employee_ids, window)
        if not payrolls:
            raise NotFoundError("Payroll records for paystub generation", None)

        generated_by = generated_by or "system"
        result = PaystubBatchResult(total_payrolls=len(payrolls))

        for payroll in payrolls:
            payroll_id = payroll.id
            employee_id = payroll.employee_id
            employee_name = payroll.employee_name
            try:
                async with self.session.begin_nested():
                    outcome = await self._generate_one(payroll, generated_by, auto_approve)
            except Exception as exc:
                logger.exception("Error generating paystub for %s", employee_name)
                outcome = PaystubOutcome(
                    payroll_id=payroll_id,
                    employee_id=employee_id,
                    employee_name=employee_name,
                    status="error",
                    reason=str(exc),
                )
            result.add(outcome)

        logger.info(
            "Paystub generation completed: %d generated, %d errors, %d skipped",
            result.generated,
            result.errors,
            result.skipped,
        )
        return result

    async def _select_payrolls(
        self,
        payroll_ids: list[int] | None,
        employee_ids: list[int] | None,
        window: WeekWindow | None,
    ) -> list[IndividualPayroll]:
        if payroll_ids:
            rows = await self.session.execute(
                select(IndividualPayroll)
                .where(IndividualPayroll.id.in_(payroll_ids))
                .order_by(IndividualPayroll.employee_name, IndividualPayroll.id)
            )
            return list(rows.scalars().all())
        if window is None:
            raise ValidationError(
                "Must provide either payroll_ids, employee_ids with a week, or a week"
            )
        if employee_ids:
            return await self.store.list_for_week(window, employee_ids=employee_ids)
        return await self.store.list_for_week(window, statuses=GENERATABLE_STATUSES)

    async def _generate_one(
        self,
        payroll: IndividualPayroll,
        generated_by: str,
        auto_approve: bool,
    ) -> PaystubOutcome:
        now = utcnow()
        paystub = await self.get_for_payroll(payroll.id)
        outcome = PaystubOutcome(
            payroll_id=payroll.id,
            employee_id=payroll.employee_id,
            employee_name=payroll.employee_name,
            status="created" if paystub is None else "updated",
        )

        if paystub is not None:
            if not PaystubStateMachine.can_refresh(paystub.status):
                outcome.status = "skipped"
                outcome.paystub_id = paystub.id
                outcome.net_pay = paystub.net_pay
                outcome.reason = "Paystub already approved"
                logger.info(
                    "Paystub %s for payroll %s is %s, not refreshed",
                    paystub.id,
                    payroll.id,
                    paystub.status,
                )
                return outcome
            copy_payroll_figures(paystub, payroll)
            paystub.updated_at = now
        else:
            paystub = Paystub(payroll_id=payroll.id, created_by=generated_by)
            copy_payroll_figures(paystub, payroll)
            paystub.generated_at = now
            paystub.status = PaystubStatus.DRAFT.value
            if auto_approve:
                paystub.status = PaystubStatus.APPROVED.value
                paystub.approved_at = now
                self._advance_payroll(payroll, PaystubStatus.APPROVED.value)
            self.session.add(paystub)

        await self.session.flush()
        outcome.paystub_id = paystub.id
        outcome.net_pay = paystub.net_pay
        logger.info(
            "Generated paystub for %s: %s (%s)",
            payroll.employee_name,
            paystub.net_pay,
            outcome.status,
        )
        return outcome

    async def transition(
        self,
        paystub_id: int,
        to_status: str,
        actor: str | None = None,
    ) -> Paystub:
        """Move a paystub through its workflow.

        Raises:
            NotFoundError: If the paystub does not exist
            InvalidTransitionError: If the transition is not allowed
        """
        paystub = await self.get_paystub(paystub_id)
        PaystubStateMachine.validate_transition(paystub.status, to_status)

        now = utcnow()
        if to_status == PaystubStatus.APPROVED.value:
            paystub.approved_at = now
        elif to_status == PaystubStatus.PAID.value:
            paystub.paid_at = now
        elif to_status == PaystubStatus.DRAFT.value:
            paystub.approved_at = None
        paystub.status = to_status
        paystub.updated_at = now

        payroll = await self.store.get(paystub.payroll_id)
        if payroll is not None:
            self._advance_payroll(payroll, to_status)

        await self.session.flush()
        logger.info("Paystub %s moved to %s by %s", paystub.id, to_status, actor or "system")
        return paystub

    async def get_paystub(self, paystub_id: int) -> Paystub:
        paystub = await self.session.get(Paystub, paystub_id)
        if paystub is None:
            raise NotFoundError("Paystub", paystub_id)
        return paystub

    async def list_for_week(self, window: WeekWindow) -> list[Paystub]:
        result = await self.session.execute(
            select(Paystub)
            .where(
                Paystub.week_start_date == window.start,
                Paystub.week_end_date == window.end,
            )
            .order_by(Paystub.employee_name, Paystub.id)
        )
        return list(result.scalars().all())

    async def get_for_payroll(self, payroll_id: int) -> Paystub | None:
        result = await self.session.execute(
            select(Paystub).where(Paystub.payroll_id == payroll_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _advance_payroll(payroll: IndividualPayroll, paystub_status: str) -> None:
        """Follow a paystub status on its payroll when the payroll may move there."""
        target = PAYROLL_STATUS_FOR.get(paystub_status)
        if target is None:
            return
        if PayrollStateMachine.can_transition(payroll.status, target):
            payroll.status = target
            payroll.updated_at = utcnow()


def copy_payroll_figures(paystub: Paystub, payroll: IndividualPayroll) -> None:
    for name in SNAPSHOT_FIELDS:
        setattr(paystub, name, getattr(payroll, name))
