"""
Revoke Sessions Use Case

Handles session revocation for security and session management.
"""

from uuid import UUID

from pydantic import BaseModel

from src.app.services.session_registry import SessionRegistry
from src.app.services.store_guard import guard_store
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent, RevokedReason
from src.domain.result import Result, Return


class RevokedSessionsResponse(BaseModel):
    message: str
    revoked_count: int


class RevokeSessionsUseCase:
    """
    Use case for revoking a user's own sessions.

    Business Rules:
    - Users can only revoke their own sessions
    - Revoking an unknown or already revoked session is SESSION_NOT_FOUND
    - Revocation is audit-logged
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.registry = SessionRegistry(uow)

    @guard_store
    async def revoke_session(
        self, user_id: UUID, session_id: UUID
    ) -> Result[RevokedSessionsResponse]:
        """
        Revoke a specific session by ID.

        Returns:
            Result with revoked count 1, or Error SESSION_NOT_FOUND / UNAUTHORIZED
        """
        async with self.uow:
            revoked = await self.registry.revoke_one(user_id, session_id)
            if revoked.is_err():
                return Return.err(revoked.error)

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user_id,
                    action="revoke_session",
                    event_metadata={"session_id": str(session_id)},
                )
            )

            await self.uow.commit()

        return Return.ok(
            RevokedSessionsResponse(message="Session revoked successfully", revoked_count=1)
        )

    @guard_store
    async def revoke_all_sessions(self, user_id: UUID) -> Result[RevokedSessionsResponse]:
        """Log out everywhere (reason logout-all)."""
        async with self.uow:
            count = await self.registry.revoke_all(user_id, RevokedReason.logout_all)

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user_id,
                    action="revoke_all_sessions",
                    event_metadata={"revoked_count": count},
                )
            )

            await self.uow.commit()

        return Return.ok(
            RevokedSessionsResponse(
                message=f"Successfully revoked {count} session(s)", revoked_count=count
            )
        )
