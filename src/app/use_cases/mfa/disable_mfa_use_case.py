"""
Disable MFA Use Case
"""

from uuid import UUID

from src.app.services.mfa_manager import STATE_CHANGED, MfaManager
from src.app.services.store_guard import guard_store
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent
from src.domain.result import Error, Result, Return
from .dtos import MfaStatusResponse


class DisableMfaUseCase:
    """Clears method, secret, destination and backup codes."""

    def __init__(self, uow: UnitOfWork, mfa: MfaManager):
        self.uow = uow
        self.mfa = mfa

    @guard_store
    async def execute(self, user_id: str) -> Result[MfaStatusResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_id(UUID(user_id))
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            previous_method = user.mfa_method.value
            disabled = self.mfa.disable(user)
            if disabled.is_err():
                return Return.err(disabled.error)

            if not await self.uow.users.save_mfa(user):
                return Return.err(STATE_CHANGED)
            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    action="mfa_disabled",
                    event_metadata={"method": previous_method},
                )
            )

            await self.uow.commit()

        return Return.ok(
            MfaStatusResponse(status="disabled", message="MFA disabled successfully")
        )
