"""
Setup MFA Use Case

Starts enrollment of a second factor for the authenticated user.
"""

from uuid import UUID

from src.app.services.mfa_manager import STATE_CHANGED, MfaManager
from src.app.services.store_guard import guard_store
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent, MfaMethod
from src.domain.result import Error, Result, Return
from .dtos import SetupMfaCommand, SetupMfaResponse


class SetupMfaUseCase:
    """
    Business Rules:
    - Not allowed while MFA is enabled (MFA_ALREADY_ENABLED)
    - TOTP: secret and otpauth:// URI returned for the authenticator app
    - SMS: destination must be an international phone number
    - Email: code goes to the account email
    - MFA is not active until the first code is confirmed
    """

    def __init__(self, uow: UnitOfWork, mfa: MfaManager):
        self.uow = uow
        self.mfa = mfa

    @guard_store
    async def execute(self, command: SetupMfaCommand) -> Result[SetupMfaResponse]:
        if command.method == MfaMethod.none:
            return Return.err(Error("VALIDATION_ERROR", "Invalid MFA method"))

        async with self.uow:
            user = await self.uow.users.get_by_id(UUID(command.user_id))
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            started = await self.mfa.setup(user, command.method, command.destination)
            if started.is_err():
                return Return.err(started.error)

            if not await self.uow.users.save_mfa(user):
                return Return.err(STATE_CHANGED)
            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    action="mfa_setup_started",
                    event_metadata={"method": command.method.value},
                )
            )

            await self.uow.commit()

        setup = started.value
        if setup.method == MfaMethod.totp:
            message = "Scan the QR code with your authenticator app, then verify a code"
        else:
            message = f"Verification code sent to {setup.destination}"
        return Return.ok(SetupMfaResponse(message=message, **setup.model_dump(mode="json")))
