"""Append-only audit ledger."""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_payroll.models import AuditEvent

logger = logging.getLogger(__name__)


def _jsonable(details: dict[str, Any] | None) -> dict[str, Any] | None:
    """Dates and decimals are stored as strings."""
    if details is None:
        return None
    return json.loads(json.dumps(details, default=str))


class AuditService:
    """Records audit events in the caller's transaction.

    Events are only ever inserted. Nothing here commits; an event becomes
    durable together with the change it describes, or not at all.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        action: str,
        entity_type: str,
        entity_id: int | None = None,
        actor: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditEvent:
        """Append an audit event."""
        event = AuditEvent(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor=actor or "system",
            details=_jsonable(details),
        )
        self.session.add(event)
        await self.session.flush()
        logger.info("audit %s %s:%s by %s", action, entity_type, entity_id, event.actor)
        return event

    async def list_events(
        self,
        entity_type: str | None = None,
        action: str | None = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Most recent audit events first."""
        query = select(AuditEvent)
        if entity_type:
            query = query.where(AuditEvent.entity_type == entity_type)
        if action:
            query = query.where(AuditEvent.action == action)
        query = query.order_by(AuditEvent.id.desc()).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())
