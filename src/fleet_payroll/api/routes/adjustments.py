"""Payroll adjustment endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Path, Query, Response, status

from fleet_payroll.api.dependencies import DbSession
from fleet_payroll.api.schemas import (
    AdjustmentCreate,
    AdjustmentListResponse,
    AdjustmentResponse,
    AdjustmentUpdate,
    ErrorResponse,
)
from fleet_payroll.services import AdjustmentService

router = APIRouter(prefix="/payroll/adjustments", tags=["adjustments"])


@router.get("", response_model=AdjustmentListResponse)
async def list_adjustments(
    db: DbSession,
    employee_id: Annotated[int | None, Query()] = None,
    week_start_date: Annotated[date | None, Query()] = None,
    category: Annotated[str | None, Query()] = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> AdjustmentListResponse:
    """List adjustments, newest effective date first, with category totals."""
    listing = await AdjustmentService(db).list_adjustments(
        employee_id=employee_id,
        week_start=week_start_date,
        category=category,
        status=status_filter,
        limit=limit,
    )
    return AdjustmentListResponse(
        items=[AdjustmentResponse.model_validate(a) for a in listing.items],
        total=len(listing.items),
        total_amount=listing.total_amount,
        category_totals=listing.category_totals,
    )


@router.post(
    "",
    response_model=AdjustmentResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def create_adjustment(db: DbSession, payload: AdjustmentCreate) -> AdjustmentResponse:
    """Create an adjustment and fold it into the week's payroll."""
    adjustment = await AdjustmentService(db).create_adjustment(
        employee_id=payload.employee_id,
        category=payload.category,
        name=payload.name,
        amount=payload.amount,
        effective_date=payload.effective_date,
        week_start_date=payload.week_start_date,
        adjustment_type=payload.adjustment_type,
        description=payload.description,
        load_number=payload.load_number,
        reference_number=payload.reference_number,
        created_by=payload.created_by,
    )
    return AdjustmentResponse.model_validate(adjustment)


@router.get(
    "/{adjustment_id}",
    response_model=AdjustmentResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_adjustment(
    db: DbSession,
    adjustment_id: Annotated[int, Path()],
) -> AdjustmentResponse:
    adjustment = await AdjustmentService(db).get_adjustment(adjustment_id)
    return AdjustmentResponse.model_validate(adjustment)


@router.patch(
    "/{adjustment_id}",
    response_model=AdjustmentResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_adjustment(
    db: DbSession,
    adjustment_id: Annotated[int, Path()],
    payload: AdjustmentUpdate,
) -> AdjustmentResponse:
    adjustment = await AdjustmentService(db).update_adjustment(
        adjustment_id,
        name=payload.name,
        description=payload.description,
        amount=payload.amount,
        status=payload.status,
        reference_number=payload.reference_number,
        updated_by=payload.updated_by,
    )
    return AdjustmentResponse.model_validate(adjustment)


@router.delete(
    "/{adjustment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_adjustment(
    db: DbSession,
    adjustment_id: Annotated[int, Path()],
) -> Response:
    await AdjustmentService(db).delete_adjustment(adjustment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
