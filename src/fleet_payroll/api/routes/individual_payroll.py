"""Single payroll read and update endpoints."""

from typing import Annotated

from fastapi import APIRouter, Path, Query

from fleet_payroll.api.dependencies import DbSession
from fleet_payroll.api.schemas import (
    EmployeePayrollListResponse,
    ErrorResponse,
    PayrollDetailResponse,
    PayrollResponse,
    PayrollUpdate,
    PaystubResponse,
)
from fleet_payroll.calculators import money
from fleet_payroll.exceptions import NotFoundError
from fleet_payroll.services import IndividualPayrollService, PaystubService

router = APIRouter(prefix="/payroll/individual", tags=["payroll"])


@router.get(
    "",
    response_model=EmployeePayrollListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_employee_payrolls(
    db: DbSession,
    employee_id: Annotated[int, Query()],
) -> EmployeePayrollListResponse:
    """An employee's payroll history, newest week first."""
    payrolls = await IndividualPayrollService(db).list_for_employee(employee_id)
    return EmployeePayrollListResponse(
        employee_id=employee_id,
        items=[PayrollResponse.model_validate(p) for p in payrolls],
        total=len(payrolls),
        total_gross_pay=money(sum(money(p.gross_pay) for p in payrolls)),
        total_net_pay=money(sum(money(p.net_pay) for p in payrolls)),
    )


@router.get(
    "/{payroll_id}",
    response_model=PayrollDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_detail(
    db: DbSession,
    payroll_id: Annotated[int, Path()],
) -> PayrollDetailResponse:
    """A payroll with the loads, fuel, adjustments and paystub behind it."""
    detail = await IndividualPayrollService(db).get_detail(payroll_id)
    return PayrollDetailResponse.model_validate(detail)


@router.put(
    "/{payroll_id}",
    response_model=PayrollResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_payroll(
    db: DbSession,
    payroll_id: Annotated[int, Path()],
    payload: PayrollUpdate,
) -> PayrollResponse:
    """Update a payroll's notes or status."""
    payroll = await IndividualPayrollService(db).update_payroll(
        payroll_id,
        notes=payload.notes,
        status=payload.status,
        updated_by=payload.updated_by,
    )
    return PayrollResponse.model_validate(payroll)


@router.get(
    "/{payroll_id}/paystub",
    response_model=PaystubResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payroll_paystub(
    db: DbSession,
    payroll_id: Annotated[int, Path()],
) -> PaystubResponse:
    await IndividualPayrollService(db).get_payroll(payroll_id)
    paystub = await PaystubService(db).get_for_payroll(payroll_id)
    if paystub is None:
        raise NotFoundError("Paystub", None)
    return PaystubResponse.model_validate(paystub)
