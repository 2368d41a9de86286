"""Recurring deduction endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, Query, Response, status

from fleet_payroll.api.dependencies import DbSession
from fleet_payroll.api.schemas import (
    ErrorResponse,
    RecurringDeductionCreate,
    RecurringDeductionListResponse,
    RecurringDeductionResponse,
    RecurringDeductionUpdate,
)
from fleet_payroll.calculators import money
from fleet_payroll.services import RecurringDeductionService

router = APIRouter(prefix="/payroll/recurring-deductions", tags=["recurring-deductions"])


@router.get("", response_model=RecurringDeductionListResponse)
async def list_recurring_deductions(
    db: DbSession,
    employee_id: Annotated[int | None, Query()] = None,
    active_only: Annotated[bool, Query()] = False,
    recurring_type: Annotated[str | None, Query()] = None,
) -> RecurringDeductionListResponse:
    deductions = await RecurringDeductionService(db).list_deductions(
        employee_id=employee_id,
        active_only=active_only,
        recurring_type=recurring_type,
    )
    return RecurringDeductionListResponse(
        items=[RecurringDeductionResponse.model_validate(d) for d in deductions],
        total=len(deductions),
        active_amount=money(sum(money(d.amount) for d in deductions if d.is_active)),
    )


@router.post(
    "",
    response_model=RecurringDeductionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def create_recurring_deduction(
    db: DbSession,
    payload: RecurringDeductionCreate,
) -> RecurringDeductionResponse:
    """Start a weekly deduction; open payrolls from its first week on pick it up."""
    deduction = await RecurringDeductionService(db).create_deduction(
        employee_id=payload.employee_id,
        recurring_type=payload.recurring_type,
        amount=payload.amount,
        week_start=payload.week_start,
        description=payload.description,
        end_date=payload.end_date,
        created_by=payload.created_by,
    )
    return RecurringDeductionResponse.model_validate(deduction)


@router.patch(
    "/{deduction_id}",
    response_model=RecurringDeductionResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_recurring_deduction(
    db: DbSession,
    deduction_id: Annotated[int, Path()],
    payload: RecurringDeductionUpdate,
) -> RecurringDeductionResponse:
    deduction = await RecurringDeductionService(db).update_deduction(
        deduction_id,
        amount=payload.amount,
        description=payload.description,
        is_active=payload.is_active,
        end_date=payload.end_date,
        updated_by=payload.updated_by,
    )
    return RecurringDeductionResponse.model_validate(deduction)


@router.delete(
    "/{deduction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_recurring_deduction(
    db: DbSession,
    deduction_id: Annotated[int, Path()],
) -> Response:
    await RecurringDeductionService(db).delete_deduction(deduction_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
