"""
Register Use Case

Creates an account and signs the new user in.
"""

import logging

from config import ApplicationConfig
from src.app.services.credential_store import CredentialStore
from src.app.services.password_hasher import IPasswordHasher
from src.app.services.store_guard import guard_store
from src.app.services.token_issuer import TokenIssuer
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent
from src.domain.result import Result, Return
from .dtos import RegisterCommand, RegisterResponse, UserInfo
from .validation import validate_registration

logger = logging.getLogger(__name__)


class RegisterUseCase:
    """
    Register Use Case

    Command/Response Pattern:
    - Input: RegisterCommand
    - Output: Result[RegisterResponse]

    Business Logic:
    1. Validate username, email and password rules (VALIDATION_ERROR)
    2. Reject taken username or email (DUPLICATE_USER)
    3. Hash password with Argon2id and create the User
    4. Issue access + refresh tokens bound to the client IP
    5. Create AuditEvent with action=register
    6. Commit transaction atomically
    """

    def __init__(self, uow: UnitOfWork, hasher: IPasswordHasher):
        self.uow = uow
        self.credentials = CredentialStore(
            uow, hasher, ApplicationConfig.PASSWORD_HISTORY_SIZE
        )
        self.tokens = TokenIssuer.from_config(uow)

    @guard_store
    async def execute(self, command: RegisterCommand) -> Result[RegisterResponse]:
        invalid = validate_registration(command.username, command.email, command.password)
        if invalid:
            logger.warning(f"Registration validation error: {invalid.message}")
            return Return.err(invalid)

        async with self.uow:
            registered = await self.credentials.register(
                command.username, command.email, command.password
            )
            if registered.is_err():
                return Return.err(registered.error)
            user = registered.value

            tokens = await self.tokens.issue(user, command.ip)

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    action="register",
                    event_metadata={"ip": command.ip, "session_id": tokens.session_id},
                )
            )

            await self.uow.commit()

        return Return.ok(
            RegisterResponse(user=UserInfo.from_user(user), **tokens.model_dump())
        )
