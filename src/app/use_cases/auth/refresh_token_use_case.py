"""
Refresh Token Use Case

Handles access token refresh with single-use refresh token rotation.
"""

import logging
from uuid import UUID

from src.app.services.store_guard import guard_store
from src.app.services.token_issuer import TokenIssuer
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent
from src.domain.result import Error, Result, Return
from .dtos import RefreshTokenResponse

logger = logging.getLogger(__name__)

# Security events that must be recorded even though the refresh fails
_AUDITED_FAILURES = {
    "TOKEN_REUSED": "token_reuse_detected",
    "TOKEN_IP_MISMATCH": "token_ip_mismatch",
}


class RefreshTokenUseCase:
    """
    Use case for refreshing JWT access tokens.

    Business Rules:
    - Refresh token rotation: old token revoked, new pair issued atomically
    - A rotated token presented again is TOKEN_REUSED
    - A token used from a different IP (when binding is on) revokes all
      sessions of its owner
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.tokens = TokenIssuer.from_config(uow)

    @guard_store
    async def execute(self, refresh_token: str, ip: str) -> Result[RefreshTokenResponse]:
        if not refresh_token:
            return Return.err(Error("TOKEN_INVALID", "Refresh token required"))

        async with self.uow:
            rotated = await self.tokens.rotate(refresh_token, ip)

            if rotated.is_err():
                error = rotated.error
                action = _AUDITED_FAILURES.get(error.code)
                if action:
                    await self.uow.audit_events.create(
                        AuditEvent(
                            user_id=UUID(error.details["user_id"]),
                            action=action,
                            event_metadata={
                                "ip": ip,
                                "session_id": error.details.get("session_id"),
                                "revoked_count": error.details.get("revoked_count", 0),
                            },
                        )
                    )
                    await self.uow.commit()
                return Return.err(error)

            user, tokens = rotated.value

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    action="token_refresh",
                    event_metadata={"ip": ip, "session_id": tokens.session_id},
                )
            )

            await self.uow.commit()

        return Return.ok(RefreshTokenResponse(**tokens.model_dump()))
