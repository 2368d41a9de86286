"""Fuel-to-payroll integration endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query

from fleet_payroll.api.dependencies import DbSession
from fleet_payroll.api.schemas import (
    DriverFuelResultResponse,
    ErrorResponse,
    FuelImportRequest,
    FuelImportResponse,
    FuelImportSummary,
    FuelWeekStatusResponse,
)
from fleet_payroll.calculators import resolve_window
from fleet_payroll.services import FuelIntegrationService

router = APIRouter(prefix="/payroll", tags=["fuel-integration"])


@router.post(
    "/fuel-integration",
    response_model=FuelImportResponse,
    responses={400: {"model": ErrorResponse}},
)
async def import_fuel_transactions(
    db: DbSession,
    payload: FuelImportRequest,
) -> FuelImportResponse:
    """Import a week's fuel transactions as payroll deductions."""
    window = resolve_window(payload.year, payload.week, payload.start_date, payload.end_date)
    result = await FuelIntegrationService(db).import_week(window, payload.processed_by)

    if result.total_transactions == 0:
        message = "No fuel transactions found for the specified date range"
    else:
        message = f"Fuel import completed for Week {window.week}, {window.year}"
    return FuelImportResponse(
        message=message,
        week_key=result.week_key,
        summary=FuelImportSummary.model_validate(result),
        results=[DriverFuelResultResponse.model_validate(r) for r in result.results],
    )


@router.get(
    "/fuel-integration",
    response_model=FuelWeekStatusResponse,
    responses={400: {"model": ErrorResponse}},
)
async def get_fuel_integration_status(
    db: DbSession,
    year: Annotated[int | None, Query()] = None,
    week: Annotated[int | None, Query(ge=1, le=53)] = None,
    start_date: Annotated[date | None, Query()] = None,
    end_date: Annotated[date | None, Query()] = None,
) -> FuelWeekStatusResponse:
    """Fuel deductions already integrated into a week."""
    window = resolve_window(year, week, start_date, end_date)
    status = await FuelIntegrationService(db).week_status(window)
    return FuelWeekStatusResponse.model_validate(status)
