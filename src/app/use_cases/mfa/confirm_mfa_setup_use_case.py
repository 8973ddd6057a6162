"""
Confirm MFA Setup Use Case

Verifies the first code and enables MFA.
"""

from uuid import UUID

from src.app.services.mfa_manager import STATE_CHANGED, MfaManager
from src.app.services.store_guard import guard_store
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent
from src.domain.result import Error, Result, Return
from .dtos import BackupCodesResponse


class ConfirmMfaSetupUseCase:
    def __init__(self, uow: UnitOfWork, mfa: MfaManager):
        self.uow = uow
        self.mfa = mfa

    @guard_store
    async def execute(self, user_id: str, code: str) -> Result[BackupCodesResponse]:
        """
        Returns:
            Result with the backup codes (only time they are shown), or Error
            MFA_NOT_INITIATED / INVALID_MFA_CODE / VALIDATION_ERROR
        """
        if not code:
            return Return.err(Error("VALIDATION_ERROR", "Verification code is required"))

        async with self.uow:
            user = await self.uow.users.get_by_id(UUID(user_id))
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            confirmed = self.mfa.verify_setup(user, code)
            if confirmed.is_err():
                return Return.err(confirmed.error)

            if not await self.uow.users.save_mfa(user):
                return Return.err(STATE_CHANGED)
            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    action="mfa_enabled",
                    event_metadata={"method": user.mfa_method.value},
                )
            )

            await self.uow.commit()

        return Return.ok(
            BackupCodesResponse(
                message="MFA enabled successfully. Save these backup codes in a safe place.",
                backup_codes=confirmed.value,
            )
        )
