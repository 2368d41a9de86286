"""Week lock gate for payroll weeks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_payroll.calculators import WeekWindow, week_window, weeks_in_year
from fleet_payroll.exceptions import ValidationError, WeekLockedError
from fleet_payroll.models import IndividualPayroll, utcnow
from fleet_payroll.services.audit_service import AuditService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WeekLockResult:
    """Outcome of locking or unlocking a week."""

    week_key: str
    year: int
    week: int
    locked: bool
    locked_by: str | None
    affected_records: int
    timestamp: datetime


@dataclass(frozen=True)
class WeekLockStatus:
    """Observed lock state of one week."""

    year: int
    week: int
    week_key: str
    is_locked: bool
    locked_count: int
    total_count: int
    partially_locked: bool
    start_date: date
    end_date: date


class WeekLockService:
    """Service for locking payroll weeks.

    A week has no row of its own. It counts as locked when any payroll row
    in its Monday-Sunday range is locked; locking and unlocking flip the flag
    on every row of the week at once.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.audit = AuditService(session)

    async def is_week_locked(self, window: WeekWindow) -> bool:
        locked_count = await self._count(window, locked_only=True)
        return locked_count > 0

    async def ensure_unlocked(self, window: WeekWindow, label: str = "Week") -> None:
        """Raise WeekLockedError if the week is locked."""
        if await self.is_week_locked(window):
            raise WeekLockedError(window.year, window.week, label=label)

    async def set_lock(
        self,
        window: WeekWindow,
        locked: bool,
        locked_by: str | None = None,
    ) -> WeekLockResult:
        """Lock or unlock every payroll row of a week.

        Returns the lock result with the number of rows touched.
        """
        now = utcnow()
        values: dict = {"is_locked": locked, "updated_at": now}
        if locked:
            values["reviewed_at"] = now
            values["reviewed_by"] = locked_by

        result = await self.session.execute(
            update(IndividualPayroll)
            .where(
                IndividualPayroll.week_start_date == window.start,
                IndividualPayroll.week_end_date == window.end,
            )
            .values(**values)
        )
        affected = result.rowcount or 0

        logger.info(
            "%s %d payroll records for week %s",
            "Locked" if locked else "Unlocked",
            affected,
            window.key,
        )

        await self.audit.record(
            action="WEEK_LOCKED" if locked else "WEEK_UNLOCKED",
            entity_type="payroll_week",
            actor=locked_by,
            details={
                "week_key": window.key,
                "year": window.year,
                "week": window.week,
                "start_date": window.start,
                "end_date": window.end,
                "affected_records": affected,
            },
        )

        return WeekLockResult(
            week_key=window.key,
            year=window.year,
            week=window.week,
            locked=locked,
            locked_by=locked_by,
            affected_records=affected,
            timestamp=now,
        )

    async def lock_status(
        self,
        year: int,
        start_week: int = 1,
        end_week: int | None = None,
    ) -> list[WeekLockStatus]:
        """Lock state for a range of weeks of one year."""
        last_week = weeks_in_year(year)
        if end_week is None:
            end_week = last_week
        if start_week < 1 or end_week > last_week or start_week > end_week:
            raise ValidationError(
                f"Week range {start_week}..{end_week} is outside 1..{last_week} for {year}"
            )

        statuses = []
        for week in range(start_week, end_week + 1):
            window = week_window(year, week)
            locked_count = await self._count(window, locked_only=True)
            total_count = await self._count(window)
            statuses.append(
                WeekLockStatus(
                    year=year,
                    week=week,
                    week_key=window.key,
                    is_locked=locked_count > 0,
                    locked_count=locked_count,
                    total_count=total_count,
                    partially_locked=0 < locked_count < total_count,
                    start_date=window.start,
                    end_date=window.end,
                )
            )
        return statuses

    async def _count(self, window: WeekWindow, locked_only: bool = False) -> int:
        query = select(func.count(IndividualPayroll.id)).where(
            IndividualPayroll.week_start_date == window.start,
            IndividualPayroll.week_end_date == window.end,
        )
        if locked_only:
            query = query.where(IndividualPayroll.is_locked.is_(True))
        return await self.session.scalar(query) or 0
