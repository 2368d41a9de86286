"""Audit ledger endpoint."""

from typing import Annotated

from fastapi import APIRouter, Query

from fleet_payroll.api.dependencies import DbSession
from fleet_payroll.api.schemas import AuditEventListResponse, AuditEventResponse
from fleet_payroll.services import AuditService

router = APIRouter(tags=["audit"])


@router.get("/audit-events", response_model=AuditEventListResponse)
async def list_audit_events(
    db: DbSession,
    entity_type: str | None = None,
    action: str | None = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> AuditEventListResponse:
    """Most recent audit events first."""
    events = await AuditService(db).list_events(entity_type=entity_type, action=action, limit=limit)
    return AuditEventListResponse(
        items=[AuditEventResponse.model_validate(e) for e in events],
        total=len(events),
    )
