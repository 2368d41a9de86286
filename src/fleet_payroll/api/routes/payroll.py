"""Weekly payroll calculation and listing endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query

from fleet_payroll.api.dependencies import DbSession
from fleet_payroll.api.schemas import (
    AggregationResponse,
    CalculateWeeklyRequest,
    EmployeeAggregationResponse,
    ErrorResponse,
    PayrollResponse,
    WeeklyPayrollResponse,
)
from fleet_payroll.calculators import money, resolve_window
from fleet_payroll.services import PayrollAggregationService, PayrollStore, WeekLockService

router = APIRouter(prefix="/payroll", tags=["payroll"])


@router.post(
    "/calculate-weekly",
    response_model=AggregationResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def calculate_weekly_payroll(
    db: DbSession,
    payload: CalculateWeeklyRequest,
) -> AggregationResponse:
    """Aggregate delivered loads into one payroll per employee for a week."""
    window = resolve_window(payload.year, payload.week, payload.start_date, payload.end_date)
    result = await PayrollAggregationService(db).aggregate_week(
        window,
        employee_ids=payload.employee_ids,
        calculated_by=payload.calculated_by,
    )
    return AggregationResponse(
        message=f"Payroll calculation completed for Week {window.week}, {window.year}",
        week_key=result.week_key,
        start_date=result.start_date,
        end_date=result.end_date,
        processed=result.processed,
        skipped=result.skipped,
        errors=result.errors,
        results=[EmployeeAggregationResponse.model_validate(r) for r in result.results],
    )


@router.get(
    "/weekly",
    response_model=WeeklyPayrollResponse,
    responses={400: {"model": ErrorResponse}},
)
async def get_weekly_payroll(
    db: DbSession,
    year: Annotated[int | None, Query()] = None,
    week: Annotated[int | None, Query(ge=1, le=53)] = None,
    start_date: Annotated[date | None, Query()] = None,
    end_date: Annotated[date | None, Query()] = None,
    status_filter: Annotated[list[str] | None, Query(alias="status")] = None,
) -> WeeklyPayrollResponse:
    """List every payroll row of a week with the week's lock state."""
    window = resolve_window(year, week, start_date, end_date)
    payrolls = await PayrollStore(db).list_for_week(window, statuses=status_filter)
    is_locked = await WeekLockService(db).is_week_locked(window)

    return WeeklyPayrollResponse(
        week_key=window.key,
        year=window.year,
        week=window.week,
        start_date=window.start,
        end_date=window.end,
        is_locked=is_locked,
        total=len(payrolls),
        total_gross_pay=money(sum(money(p.gross_pay) for p in payrolls)),
        total_net_pay=money(sum(money(p.net_pay) for p in payrolls)),
        items=[PayrollResponse.model_validate(p) for p in payrolls],
    )
