"""
Change Password Use Case

Replaces a password and ends every session of the user.
"""

import logging
from uuid import UUID

from config import ApplicationConfig
from src.app.services.credential_store import CredentialStore
from src.app.services.password_hasher import IPasswordHasher
from src.app.services.session_registry import SessionRegistry
from src.app.services.store_guard import guard_store
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent, RevokedReason
from src.domain.result import Error, Result, Return
from .dtos import ChangePasswordCommand, MessageResponse
from .validation import validate_password

logger = logging.getLogger(__name__)


class ChangePasswordUseCase:
    """
    Business Rules:
    - Current password must match (CURRENT_PASSWORD_MISMATCH)
    - New password must differ from the current one (SAME_AS_CURRENT)
    - New password must not match the last 5 (PASSWORD_REUSED)
    - Every active refresh token is revoked with reason password-change
    """

    def __init__(self, uow: UnitOfWork, hasher: IPasswordHasher):
        self.uow = uow
        self.credentials = CredentialStore(
            uow, hasher, ApplicationConfig.PASSWORD_HISTORY_SIZE
        )
        self.sessions = SessionRegistry(uow)

    @guard_store
    async def execute(self, command: ChangePasswordCommand) -> Result[MessageResponse]:
        if not command.current_password:
            return Return.err(
                Error(
                    "VALIDATION_ERROR",
                    "Current password is required",
                    {"field": "current_password"},
                )
            )
        invalid = validate_password(command.new_password, field="new_password")
        if invalid:
            return Return.err(invalid)

        async with self.uow:
            user = await self.uow.users.get_by_id(UUID(command.user_id))
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            changed = await self.credentials.change_password(
                user, command.current_password, command.new_password
            )
            if changed.is_err():
                return Return.err(changed.error)

            revoked = await self.sessions.revoke_all(user.id, RevokedReason.password_change)

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    action="password_change",
                    event_metadata={"revoked_sessions": revoked},
                )
            )

            await self.uow.commit()

        return Return.ok(
            MessageResponse(
                status="password_changed",
                message="Password changed successfully. Please log in again.",
            )
        )
