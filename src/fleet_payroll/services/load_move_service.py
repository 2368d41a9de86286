"""Reassignment of a load to another payroll week."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_payroll.calculators import WeekWindow, week_of, week_window
from fleet_payroll.exceptions import ConflictError, NotFoundError, ValidationError
from fleet_payroll.models import Employee, IndividualPayroll, Load, PayrollLoad
from fleet_payroll.services.audit_service import AuditService
from fleet_payroll.services.payroll_store import PayrollStore
from fleet_payroll.services.state_machine import PayrollStateMachine
from fleet_payroll.services.week_lock_service import WeekLockService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadMoveResult:
    load_id: int
    load_number: str
    from_year: int
    from_week: int
    to_year: int
    to_week: int
    source_payroll_id: int | None
    target_payroll_id: int

    @property
    def message(self) -> str:
        return f"Load {self.load_number} moved to Week {self.to_week}, {self.to_year}"


class LoadMoveService:
    """Moves a load's pay from one week's payroll to another's.

    The load itself is untouched. Its snapshot leaves the payroll of the
    week it currently counts in, and a new snapshot flagged ``is_moved`` is
    added to the driver's payroll for the target week. Both payrolls are
    recalculated and the move is written to the audit ledger, all in one
    savepoint.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = PayrollStore(session)
        self.locks = WeekLockService(session)
        self.audit = AuditService(session)

    async def move_load(
        self,
        load_id: int,
        target_year: int,
        target_week: int,
        moved_by: str | None = None,
        reason: str | None = None,
    ) -> LoadMoveResult:
        """Move a load into the payroll of another week.

        Raises:
            NotFoundError: If the load does not exist
            ValidationError: If the load has no driver or the target week is invalid
            WeekLockedError: If the target or the current week is locked
            ConflictError: If either payroll is already approved or paid
        """
        moved_by = moved_by or "system"
        logger.info("Moving load %s to week %s, %s", load_id, target_week, target_year)

        load = await self.session.get(Load, load_id)
        if load is None:
            raise NotFoundError("Load", load_id)
        if not load.has_driver:
            raise ValidationError("Cannot move unassigned loads", load_id=load_id)

        target = week_window(target_year, target_week)
        await self.locks.ensure_unlocked(target, label="Target week")

        current = await self._current_window(load)
        await self.locks.ensure_unlocked(current, label="Current week")

        async with self.session.begin_nested():
            source_payroll = await self.store.get_for_week(load.driver_id, current)
            if source_payroll is not None:
                self._ensure_mutable(source_payroll)
                if await self._remove_snapshots(source_payroll.id, load.id):
                    await self.store.recalculate_from_snapshots(source_payroll)

            target_payroll = await self._get_or_create_target(load, target, moved_by)
            self._ensure_mutable(target_payroll)
            await self._remove_snapshots(target_payroll.id, load.id)
            self.session.add(
                PayrollLoad(
                    payroll_id=target_payroll.id,
                    load_id=load.id,
                    load_number=load.load_number,
                    gross_amount=load.gross_amount,
                    driver_rate=load.driver_rate,
                    # Miles are not carried over with a move
                    final_miles=0,
                    delivery_date=load.delivery_date,
                    is_included=True,
                    is_moved=True,
                    notes=f"Moved from Week {current.week}, {current.year}",
                )
            )
            await self.session.flush()
            await self.store.recalculate_from_snapshots(target_payroll)

            await self.audit.record(
                action="LOAD_MOVED",
                entity_type="load",
                entity_id=load.id,
                actor=moved_by,
                details={
                    "load_number": load.load_number,
                    "driver_id": load.driver_id,
                    "driver_name": load.driver_name,
                    "from_week": current.week,
                    "from_year": current.year,
                    "to_week": target.week,
                    "to_year": target.year,
                    "gross_amount": load.gross_amount,
                    "driver_rate": load.driver_rate,
                    "reason": reason or "Manual move",
                },
            )

        logger.info(
            "Moved load %s from %s to %s", load.load_number, current.key, target.key
        )
        return LoadMoveResult(
            load_id=load.id,
            load_number=load.load_number,
            from_year=current.year,
            from_week=current.week,
            to_year=target.year,
            to_week=target.week,
            source_payroll_id=source_payroll.id if source_payroll is not None else None,
            target_payroll_id=target_payroll.id,
        )

    async def _current_window(self, load: Load) -> WeekWindow:
        """The week the load's pay currently counts in.

        A load that was moved before counts in the week it was moved to;
        otherwise in the week of its delivery date (today when undelivered).
        """
        moved_to = await self.session.scalar(
            select(IndividualPayroll.week_start_date)
            .join(PayrollLoad, PayrollLoad.payroll_id == IndividualPayroll.id)
            .where(
                PayrollLoad.load_id == load.id,
                PayrollLoad.is_moved.is_(True),
                IndividualPayroll.employee_id == load.driver_id,
            )
            .order_by(PayrollLoad.id.desc())
            .limit(1)
        )
        if moved_to is not None:
            return week_of(moved_to)
        return week_of(load.delivery_date or date.today())

    async def _get_or_create_target(
        self,
        load: Load,
        target: WeekWindow,
        moved_by: str,
    ) -> IndividualPayroll:
        employee = await self.session.get(Employee, load.driver_id)
        if employee is None:
            raise NotFoundError("Employee", load.driver_id)
        payroll, _ = await self.store.get_or_create(employee, target, moved_by)
        return payroll

    async def _remove_snapshots(self, payroll_id: int, load_id: int) -> int:
        """Delete the load's snapshots on a payroll; returns how many were removed."""
        result = await self.session.execute(
            delete(PayrollLoad).where(
                PayrollLoad.payroll_id == payroll_id,
                PayrollLoad.load_id == load_id,
            )
        )
        return result.rowcount or 0

    @staticmethod
    def _ensure_mutable(payroll: IndividualPayroll) -> None:
        if not PayrollStateMachine.is_mutable(payroll.status):
            raise ConflictError(
                f"Payroll {payroll.id} is {payroll.status} and cannot be changed",
                payroll_id=payroll.id,
            )
