"""Payment method history endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Path, Query, Response, status

from fleet_payroll.api.dependencies import DbSession
from fleet_payroll.api.schemas import (
    EffectivePaymentMethodResponse,
    ErrorResponse,
    PaymentHistoryCreate,
    PaymentHistoryListResponse,
    PaymentHistoryResponse,
    PaymentHistoryUpdate,
)
from fleet_payroll.calculators import PaymentMethodResolver
from fleet_payroll.services import PaymentHistoryService

router = APIRouter(tags=["payment-history"])


@router.get(
    "/employees/{employee_id}/payment-history",
    response_model=PaymentHistoryListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_payment_history(
    db: DbSession,
    employee_id: Annotated[int, Path()],
) -> PaymentHistoryListResponse:
    """List an employee's payment method history, newest first."""
    entries = await PaymentHistoryService(db).list_history(employee_id)
    return PaymentHistoryListResponse(
        employee_id=employee_id,
        items=[PaymentHistoryResponse.model_validate(e) for e in entries],
        total=len(entries),
    )


@router.get(
    "/employees/{employee_id}/payment-method",
    response_model=EffectivePaymentMethodResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_effective_payment_method(
    db: DbSession,
    employee_id: Annotated[int, Path()],
    as_of: Annotated[date | None, Query(alias="date")] = None,
) -> EffectivePaymentMethodResponse:
    """Resolve the pay configuration in force on a date (today by default)."""
    resolved = await PaymentMethodResolver(db).resolve(employee_id, as_of or date.today())
    return EffectivePaymentMethodResponse.model_validate(resolved)


@router.post(
    "/employees/{employee_id}/payment-history",
    response_model=PaymentHistoryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def record_payment_change(
    db: DbSession,
    employee_id: Annotated[int, Path()],
    payload: PaymentHistoryCreate,
) -> PaymentHistoryResponse:
    """Record a payment method change effective from a date."""
    entry = await PaymentHistoryService(db).record_change(
        employee_id=employee_id,
        payment_method=payload.payment_method,
        effective_date=payload.effective_date,
        driver_percent=payload.driver_percent,
        company_percent=payload.company_percent,
        service_fee_percent=payload.service_fee_percent,
        pay_per_mile_rate=payload.pay_per_mile_rate,
        note=payload.note,
        created_by=payload.created_by,
    )
    return PaymentHistoryResponse.model_validate(entry)


@router.patch(
    "/payment-history/{history_id}",
    response_model=PaymentHistoryResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_payment_history(
    db: DbSession,
    history_id: Annotated[int, Path()],
    payload: PaymentHistoryUpdate,
) -> PaymentHistoryResponse:
    entry = await PaymentHistoryService(db).update_entry(
        history_id, note=payload.note, end_date=payload.end_date
    )
    return PaymentHistoryResponse.model_validate(entry)


@router.delete(
    "/payment-history/{history_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_payment_history(
    db: DbSession,
    history_id: Annotated[int, Path()],
) -> Response:
    await PaymentHistoryService(db).delete_entry(history_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
