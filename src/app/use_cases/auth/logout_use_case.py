"""
Logout Use Case

Revokes the presented refresh token. Idempotent.
"""

import logging

from src.app.services.store_guard import guard_store
from src.app.services.token_issuer import TokenIssuer, token_prefix
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent, RevokedReason
from src.domain.result import Result, Return
from .dtos import MessageResponse

logger = logging.getLogger(__name__)


class LogoutUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.tokens = TokenIssuer.from_config(uow)

    @guard_store
    async def execute(self, refresh_token: str) -> Result[MessageResponse]:
        """
        Revoke a refresh token with reason logout.

        Unknown, expired or already revoked tokens are not an error; the
        response is the same either way.
        """
        if refresh_token:
            async with self.uow:
                record = await self.tokens.revoke(refresh_token, RevokedReason.logout)
                if record is not None:
                    await self.uow.audit_events.create(
                        AuditEvent(
                            user_id=record.user_id,
                            action="logout",
                            event_metadata={"session_id": str(record.id)},
                        )
                    )
                    await self.uow.commit()
                    logger.info(f"User logged out: {record.user_id}")
                else:
                    logger.info(f"Logout with inactive token: {token_prefix(refresh_token)}")

        return Return.ok(MessageResponse(status="logged_out", message="Logged out successfully"))
