"""
Export Account Data Use Case

Everything the service stores about the caller, minus credentials and MFA
secrets.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from src.app.services.store_guard import guard_store
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.auth.dtos import UserInfo
from src.domain.base import utc_now
from src.domain.entities import AuditEvent
from src.domain.result import Error, Result, Return

logger = logging.getLogger(__name__)


class SessionRecord(BaseModel):
    id: str
    issued_at: datetime
    ip: str
    expires_at: datetime
    is_revoked: bool
    revoked_reason: Optional[str] = None


class AccountExportResponse(BaseModel):
    profile: UserInfo
    sessions: List[SessionRecord]
    exported_at: datetime


class ExportAccountDataUseCase:
    """Sessions include revoked and expired ones, newest first."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    @guard_store
    async def execute(self, user_id: UUID) -> Result[AccountExportResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            tokens = await self.uow.refresh_tokens.get_all_by_user_id(user.id)

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    action="account_export",
                    event_metadata={"session_count": len(tokens)},
                )
            )

            await self.uow.commit()

        logger.info(f"Account data exported for user: {user.id}")
        return Return.ok(
            AccountExportResponse(
                profile=UserInfo.from_user(user),
                sessions=[
                    SessionRecord(
                        id=str(token.id),
                        issued_at=token.created_at,
                        ip=token.ip,
                        expires_at=token.expires_at,
                        is_revoked=token.is_revoked,
                        revoked_reason=token.revoked_reason,
                    )
                    for token in tokens
                ],
                exported_at=utc_now(),
            )
        )
