"""
Login Use Case

Verifies credentials under the lockout policy and either issues tokens or
starts an MFA challenge.
"""

import logging
from typing import Union
from uuid import UUID

from config import ApplicationConfig
from src.api.utils.jwt import generate_mfa_challenge
from src.app.services.credential_store import CredentialStore
from src.app.services.mfa_manager import STATE_CHANGED, MfaManager
from src.app.services.password_hasher import IPasswordHasher
from src.app.services.store_guard import guard_store
from src.app.services.token_issuer import TokenIssuer
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent
from src.domain.result import Error, Result, Return
from .dtos import LoginCommand, LoginResponse, MfaChallengeResponse, UserInfo

logger = logging.getLogger(__name__)


class LoginUseCase:
    """
    Use case for user login and token issuance.

    Business Rules:
    - Identifier may be an email (case-insensitive) or a username
    - Locked accounts fail fast with ACCOUNT_LOCKED and a retry time
    - Unknown identifier and wrong password are indistinguishable
    - Failed attempts are persisted even though the login fails
    - Failures on a known account are audited under its id, never echoed back
    - With MFA enabled no tokens are issued; a challenge token is returned
      and SMS/email users receive a fresh code
    """

    def __init__(self, uow: UnitOfWork, hasher: IPasswordHasher, mfa: MfaManager):
        self.uow = uow
        self.mfa = mfa
        self.credentials = CredentialStore(
            uow, hasher, ApplicationConfig.PASSWORD_HISTORY_SIZE
        )
        self.tokens = TokenIssuer.from_config(uow)

    @guard_store
    async def execute(
        self, command: LoginCommand
    ) -> Result[Union[LoginResponse, MfaChallengeResponse]]:
        """
        Execute login use case.

        Returns:
            Result with LoginResponse, MfaChallengeResponse, or Error
            (VALIDATION_ERROR, INVALID_CREDENTIALS, ACCOUNT_LOCKED,
            MFA_RATE_LIMITED, MFA_DELIVERY_FAILED, MFA_STATE_CHANGED)
        """
        if not command.identifier or not command.password:
            return Return.err(
                Error("VALIDATION_ERROR", "Email or username and password are required")
            )

        async with self.uow:
            verified = await self.credentials.verify_credentials(
                command.identifier, command.password
            )

            if verified.is_err():
                error = verified.error
                details = dict(error.details)
                user_id = details.pop("user_id", None)
                await self.uow.audit_events.create(
                    AuditEvent(
                        user_id=UUID(user_id) if user_id else None,
                        action="login_locked" if error.code == "ACCOUNT_LOCKED" else "login_failed",
                        event_metadata={"identifier": command.identifier, "ip": command.ip},
                    )
                )
                # Keep the failed-attempt counter and lock
                await self.uow.commit()
                logger.warning(f"Login failed ({error.code}) from {command.ip}")
                return Return.err(Error(error.code, error.message, details))

            user = verified.value

            if user.mfa_enabled:
                challenge = await self.mfa.send_login_challenge(user)
                # TOTP challenges store nothing
                if challenge.is_ok() and challenge.value is not None:
                    if not await self.uow.users.save_mfa(user):
                        challenge = Return.err(STATE_CHANGED)
                await self.uow.audit_events.create(
                    AuditEvent(
                        user_id=user.id,
                        action="login_mfa_challenge",
                        event_metadata={
                            "ip": command.ip,
                            "method": user.mfa_method.value,
                            "delivered": challenge.is_ok(),
                        },
                    )
                )
                await self.uow.commit()

                if challenge.is_err():
                    return Return.err(challenge.error)

                logger.info(f"MFA challenge issued for user: {user.id}")
                return Return.ok(
                    MfaChallengeResponse(
                        user_id=str(user.id),
                        method=user.mfa_method.value,
                        challenge_token=generate_mfa_challenge(user.id),
                        destination=challenge.value,
                    )
                )

            tokens = await self.tokens.issue(user, command.ip)

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    action="login",
                    event_metadata={"ip": command.ip, "session_id": tokens.session_id},
                )
            )

            await self.uow.commit()

        logger.info(f"User logged in: {user.id}")
        return Return.ok(LoginResponse(user=UserInfo.from_user(user), **tokens.model_dump()))
