"""Week lock endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query

from fleet_payroll.api.dependencies import DbSession
from fleet_payroll.api.schemas import (
    ErrorResponse,
    WeekLockRangeResponse,
    WeekLockRequest,
    WeekLockResponse,
    WeekLockStatusResponse,
)
from fleet_payroll.calculators import resolve_window, weeks_in_year
from fleet_payroll.services import WeekLockService

router = APIRouter(prefix="/payroll", tags=["week-lock"])


@router.post(
    "/week-lock",
    response_model=WeekLockResponse,
    responses={400: {"model": ErrorResponse}},
)
async def set_week_lock(db: DbSession, payload: WeekLockRequest) -> WeekLockResponse:
    """Lock or unlock every payroll of a week."""
    window = resolve_window(payload.year, payload.week, payload.start_date, payload.end_date)
    result = await WeekLockService(db).set_lock(window, payload.locked, payload.locked_by)
    action = "locked" if result.locked else "unlocked"
    return WeekLockResponse(
        message=f"Week {window.week}, {window.year} has been {action}",
        week_key=result.week_key,
        year=result.year,
        week=result.week,
        locked=result.locked,
        locked_by=result.locked_by,
        affected_records=result.affected_records,
        timestamp=result.timestamp,
    )


@router.get(
    "/week-lock",
    response_model=WeekLockRangeResponse,
    responses={400: {"model": ErrorResponse}},
)
async def get_week_lock_status(
    db: DbSession,
    year: Annotated[int | None, Query()] = None,
    start_week: Annotated[int, Query(ge=1, le=53)] = 1,
    end_week: Annotated[int | None, Query(ge=1, le=53)] = None,
) -> WeekLockRangeResponse:
    """Lock state of a range of weeks (the whole current year by default)."""
    year = year or date.today().isocalendar()[0]
    end_week = end_week or weeks_in_year(year)
    statuses = await WeekLockService(db).lock_status(year, start_week, end_week)
    return WeekLockRangeResponse(
        year=year,
        start_week=start_week,
        end_week=end_week,
        weeks=[WeekLockStatusResponse.model_validate(s) for s in statuses],
    )
