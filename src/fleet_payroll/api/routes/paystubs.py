"""Paystub endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Path, Query

from fleet_payroll.api.dependencies import DbSession
from fleet_payroll.api.schemas import (
    ErrorResponse,
    PaystubBatchResponse,
    PaystubGenerateRequest,
    PaystubListResponse,
    PaystubOutcomeResponse,
    PaystubResponse,
    PaystubTransitionRequest,
)
from fleet_payroll.calculators import resolve_window
from fleet_payroll.services import PaystubService

router = APIRouter(prefix="/payroll/paystubs", tags=["paystubs"])


@router.post(
    "/generate",
    response_model=PaystubBatchResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def generate_paystubs(
    db: DbSession,
    payload: PaystubGenerateRequest,
) -> PaystubBatchResponse:
    """Snapshot payroll figures into paystubs."""
    window = None
    if payload.year is not None or payload.start_date is not None:
        window = resolve_window(
            payload.year, payload.week, payload.start_date, payload.end_date
        )

    result = await PaystubService(db).generate(
        payroll_ids=payload.payroll_ids,
        employee_ids=payload.employee_ids,
        window=window,
        generated_by=payload.generated_by,
        auto_approve=payload.auto_approve,
    )
    scope = f" for Week {window.week}, {window.year}" if window is not None else ""
    return PaystubBatchResponse(
        message=f"Generated {result.generated} paystubs{scope}",
        total_payrolls=result.total_payrolls,
        generated=result.generated,
        skipped=result.skipped,
        errors=result.errors,
        total_net_pay=result.total_net_pay,
        results=[PaystubOutcomeResponse.model_validate(r) for r in result.results],
    )


@router.get(
    "",
    response_model=PaystubListResponse,
    responses={400: {"model": ErrorResponse}},
)
async def list_paystubs(
    db: DbSession,
    year: Annotated[int | None, Query()] = None,
    week: Annotated[int | None, Query(ge=1, le=53)] = None,
    start_date: Annotated[date | None, Query()] = None,
    end_date: Annotated[date | None, Query()] = None,
) -> PaystubListResponse:
    window = resolve_window(year, week, start_date, end_date)
    paystubs = await PaystubService(db).list_for_week(window)
    return PaystubListResponse(
        week_key=window.key,
        items=[PaystubResponse.model_validate(p) for p in paystubs],
        total=len(paystubs),
    )


@router.get(
    "/{paystub_id}",
    response_model=PaystubResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_paystub(
    db: DbSession,
    paystub_id: Annotated[int, Path()],
) -> PaystubResponse:
    paystub = await PaystubService(db).get_paystub(paystub_id)
    return PaystubResponse.model_validate(paystub)


@router.post(
    "/{paystub_id}/status",
    response_model=PaystubResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def transition_paystub(
    db: DbSession,
    paystub_id: Annotated[int, Path()],
    payload: PaystubTransitionRequest,
) -> PaystubResponse:
    """Approve, reopen or mark a paystub paid."""
    paystub = await PaystubService(db).transition(paystub_id, payload.status, payload.actor)
    return PaystubResponse.model_validate(paystub)
