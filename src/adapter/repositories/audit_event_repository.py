import base64
import binascii
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.audit_event_repository import IAuditEventRepository
from src.domain.entities import AuditEvent


def encode_cursor(created_at: datetime) -> str:
    return base64.urlsafe_b64encode(created_at.isoformat().encode()).decode()


def decode_cursor(cursor: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(base64.urlsafe_b64decode(cursor).decode())
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None


class AuditEventRepository(IAuditEventRepository):
    """Append-only security log"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        self.session.add(audit_event)
        await self.session.flush()
        return audit_event

    async def get_by_user_paginated(
        self, user_id: UUID, limit: int = 50, cursor: Optional[str] = None
    ) -> Tuple[List[AuditEvent], Optional[str]]:
        """
        Events of one user, newest first.

        The cursor is the created_at of the last event on the previous page;
        an unreadable cursor starts from the newest event.
        """
        stmt = select(AuditEvent).where(AuditEvent.user_id == user_id)

        before = decode_cursor(cursor) if cursor else None
        if before is not None:
            stmt = stmt.where(AuditEvent.created_at < before)

        # One extra row tells whether another page exists
        stmt = stmt.order_by(AuditEvent.created_at.desc()).limit(limit + 1)
        events = list((await self.session.exec(stmt)).all())

        if len(events) <= limit:
            return events, None
        events = events[:limit]
        return events, encode_cursor(events[-1].created_at)
