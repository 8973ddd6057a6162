"""
Session Registry

Read/revoke view over the active refresh tokens of a user.
"""

import logging
from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel

from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utc_now
from src.domain.entities import RevokedReason
from src.domain.result import Error, Result, Return

logger = logging.getLogger(__name__)


class SessionInfo(BaseModel):
    id: str
    issued_at: datetime
    ip: str
    expires_at: datetime


class SessionRegistry:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def list_active(self, user_id: UUID) -> List[SessionInfo]:
        tokens = await self.uow.refresh_tokens.get_active_by_user_id(user_id, utc_now())
        return [
            SessionInfo(
                id=str(t.id), issued_at=t.created_at, ip=t.ip, expires_at=t.expires_at
            )
            for t in tokens
        ]

    async def revoke_one(self, user_id: UUID, token_id: UUID) -> Result[None]:
        """
        Revoke one session of a user.

        Errors:
            - SESSION_NOT_FOUND: unknown or already revoked
            - UNAUTHORIZED: the session belongs to someone else
        """
        token = await self.uow.refresh_tokens.get_by_id(token_id)
        if token is None or token.is_revoked:
            return Return.err(
                Error("SESSION_NOT_FOUND", "Session not found or already revoked")
            )
        if token.user_id != user_id:
            logger.warning(f"User {user_id} attempted to revoke session {token_id} of another user")
            return Return.err(Error("UNAUTHORIZED", "Session does not belong to user"))

        if not await self.uow.refresh_tokens.revoke_if_active(token_id, RevokedReason.manual):
            return Return.err(
                Error("SESSION_NOT_FOUND", "Session not found or already revoked")
            )
        logger.info(f"Session revoked for user: {user_id}, session: {token_id}")
        return Return.ok(None)

    async def revoke_all(self, user_id: UUID, reason: RevokedReason) -> int:
        count = await self.uow.refresh_tokens.revoke_all_by_user_id(user_id, reason)
        logger.info(f"All sessions revoked for user: {user_id}, count: {count}, reason: {reason.value}")
        return count
