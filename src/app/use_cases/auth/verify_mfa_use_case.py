"""
Verify MFA Use Case

Second login step: exchanges a challenge token plus a TOTP/SMS/email code
or a backup code for a token pair.
"""

import logging
from uuid import UUID

from src.api.utils.jwt import verify_mfa_challenge
from src.app.services.mfa_manager import INVALID_CODE, MfaManager
from src.app.services.store_guard import guard_store
from src.app.services.token_issuer import TokenIssuer
from src.app.services.unit_of_work import UnitOfWork
from src.domain.entities import AuditEvent, MfaMethod
from src.domain.result import Error, Result, Return
from .dtos import LoginResponse, UserInfo, VerifyMfaCommand

logger = logging.getLogger(__name__)

CHALLENGE_INVALID = Error("MFA_CHALLENGE_INVALID", "MFA challenge is invalid or expired")
ATTEMPTS_EXHAUSTED = Error(
    "MFA_RATE_LIMITED", "Too many verification attempts, log in again to get a new challenge"
)


class VerifyMfaUseCase:
    """
    Business Rules:
    - The challenge token must be valid, unexpired and issued for user_id
    - A backup code is consumed forever on success
    - SMS/email codes are single use
    - Each challenge allows a limited number of code checks
    - Failures never touch the login lockout counter
    """

    def __init__(self, uow: UnitOfWork, mfa: MfaManager):
        self.uow = uow
        self.mfa = mfa
        self.tokens = TokenIssuer.from_config(uow)

    @guard_store
    async def execute(self, command: VerifyMfaCommand) -> Result[LoginResponse]:
        claims = verify_mfa_challenge(command.challenge_token)
        if claims is None or claims.get("sub") != command.user_id:
            logger.warning(f"Invalid MFA challenge for user: {command.user_id}")
            return Return.err(CHALLENGE_INVALID)

        if not command.code and not command.backup_code:
            return Return.err(
                Error("VALIDATION_ERROR", "A verification code or backup code is required")
            )

        if not claims.get("jti") or not await self.mfa.allow_verify_attempt(claims["jti"]):
            return Return.err(ATTEMPTS_EXHAUSTED)

        async with self.uow:
            user = await self.uow.users.get_by_id(UUID(command.user_id))
            if user is None or not user.mfa_enabled:
                return Return.err(CHALLENGE_INVALID)

            verified = self.mfa.verify_login(user, command.code, command.backup_code)
            # TOTP checks leave nothing to consume
            consumed = bool(command.backup_code) or user.mfa_method != MfaMethod.totp
            if verified.is_ok() and consumed and not await self.uow.users.save_mfa(user):
                logger.warning(f"MFA code for user {user.id} was consumed by another request")
                verified = Return.err(INVALID_CODE)

            if verified.is_err():
                await self.uow.audit_events.create(
                    AuditEvent(
                        user_id=user.id,
                        action="mfa_verify_failed",
                        event_metadata={"ip": command.ip},
                    )
                )
                await self.uow.commit()
                return Return.err(verified.error)

            tokens = await self.tokens.issue(user, command.ip)

            await self.uow.audit_events.create(
                AuditEvent(
                    user_id=user.id,
                    action="mfa_verified",
                    event_metadata={
                        "ip": command.ip,
                        "session_id": tokens.session_id,
                        "backup_code_used": bool(command.backup_code),
                    },
                )
            )

            await self.uow.commit()

        logger.info(f"MFA login completed for user: {user.id}")
        return Return.ok(LoginResponse(user=UserInfo.from_user(user), **tokens.model_dump()))
