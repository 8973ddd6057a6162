"""
Get Audit Events Use Case

Retrieves the security log of the authenticated user with pagination.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel

from src.app.services.store_guard import guard_store
from src.app.services.unit_of_work import UnitOfWork
from src.domain.result import Result, Return


class AuditEventInfo(BaseModel):
    action: str
    timestamp: str
    metadata: Dict[str, Any]


class AuditEventsResponse(BaseModel):
    events: List[AuditEventInfo]
    next_cursor: Optional[str]


class GetAuditEventsUseCase:
    """
    Use case for retrieving a user's own audit events.

    Business Rules:
    - Results are scoped to the caller
    - Results ordered by newest first
    - Supports cursor-based pagination
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    @guard_store
    async def execute(
        self, user_id: UUID, limit: int = 50, cursor: Optional[str] = None
    ) -> Result[AuditEventsResponse]:
        async with self.uow:
            events, next_cursor = await self.uow.audit_events.get_by_user_paginated(
                user_id, limit=limit, cursor=cursor
            )

        return Return.ok(
            AuditEventsResponse(
                events=[
                    AuditEventInfo(
                        action=event.action,
                        timestamp=event.created_at.isoformat() + "Z",
                        metadata=event.event_metadata or {},
                    )
                    for event in events
                ],
                next_cursor=next_cursor,
            )
        )
