"""Load reassignment endpoint."""

from fastapi import APIRouter

from fleet_payroll.api.dependencies import DbSession
from fleet_payroll.api.schemas import ErrorResponse, MoveLoadRequest, MoveLoadResponse
from fleet_payroll.services import LoadMoveService

router = APIRouter(prefix="/payroll", tags=["move-load"])


@router.post(
    "/move-load",
    response_model=MoveLoadResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def move_load(db: DbSession, payload: MoveLoadRequest) -> MoveLoadResponse:
    """Move a load's pay into another week's payroll."""
    result = await LoadMoveService(db).move_load(
        load_id=payload.load_id,
        target_year=payload.target_year,
        target_week=payload.target_week,
        moved_by=payload.moved_by,
        reason=payload.reason,
    )
    return MoveLoadResponse.model_validate(result)
