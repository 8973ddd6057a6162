"""
Regenerate Backup Codes Use Case

Replaces every backup code of an MFA-enabled user.
"""

from uuid import UUID

from src.app.services.mfa_manager import STATE_CHANGED, MfaManager
from src.app.services.store_guard import guard_store
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent
from src.domain.result import Error, Result, Return
from .dtos import BackupCodesResponse


class RegenerateBackupCodesUseCase:
    def __init__(self, uow: UnitOfWork, mfa: MfaManager):
        self.uow = uow
        self.mfa = mfa

    @guard_store
    async def execute(self, user_id: str) -> Result[BackupCodesResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_id(UUID(user_id))
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            regenerated = self.mfa.regenerate_backup_codes(user)
            if regenerated.is_err():
                return Return.err(regenerated.error)

            if not await self.uow.users.save_mfa(user):
                return Return.err(STATE_CHANGED)
            await self.uow.audit_events.create(
                AuditEvent(user_id=user.id, action="mfa_backup_codes_regenerated")
            )

            await self.uow.commit()

        return Return.ok(
            BackupCodesResponse(
                message="New backup codes generated. Previous codes no longer work.",
                backup_codes=regenerated.value,
            )
        )
