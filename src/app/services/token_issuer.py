"""
Token Issuer

Mints access/refresh token pairs and rotates refresh tokens with reuse and
theft detection.
"""

import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Optional, Tuple

from pydantic import BaseModel

from config import ApplicationConfig
from src.api.utils.jwt import generate_access_token
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utc_now
from src.domain.entities import RefreshToken, RevokedReason, User
from src.domain.result import Error, Result, Return

logger = logging.getLogger(__name__)

REFRESH_TOKEN_BYTES = 40
UNKNOWN_IP = "unknown"


class IssuedTokens(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    session_id: str


def hash_refresh_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def token_prefix(token: str) -> str:
    return f"{token[:10]}..."


class TokenIssuer:
    """
    Issues and rotates tokens.

    Business Rules:
    - Access tokens are RS256 JWTs valid for 15 minutes
    - Refresh tokens carry 320 bits of randomness, stored as SHA-256 digests
    - A refresh token is single use; presenting a rotated token is TOKEN_REUSED
    - With IP binding on, a token used from another IP revokes every
      session of its owner
    """

    def __init__(
        self,
        uow: UnitOfWork,
        refresh_ttl: timedelta = timedelta(days=7),
        enforce_ip_binding: bool = False,
    ):
        self.uow = uow
        self.refresh_ttl = refresh_ttl
        self.enforce_ip_binding = enforce_ip_binding

    @classmethod
    def from_config(cls, uow: UnitOfWork) -> "TokenIssuer":
        return cls(
            uow,
            refresh_ttl=timedelta(days=ApplicationConfig.REFRESH_TOKEN_TTL_DAYS),
            enforce_ip_binding=ApplicationConfig.ENFORCE_REFRESH_IP_BINDING,
        )

    async def issue(self, user: User, ip: str) -> IssuedTokens:
        now = utc_now()
        ip = ip or UNKNOWN_IP

        # Expired rows of this owner are dead weight
        await self.uow.refresh_tokens.delete_expired(now, user_id=user.id)

        raw_token = secrets.token_hex(REFRESH_TOKEN_BYTES)
        record = RefreshToken(
            token_hash=hash_refresh_token(raw_token),
            user_id=user.id,
            ip=ip,
            created_at=now,
            expires_at=now + self.refresh_ttl,
        )
        record = await self.uow.refresh_tokens.create(record)

        access_token, expires_in = generate_access_token(user, ip)
        return IssuedTokens(
            access_token=access_token,
            refresh_token=raw_token,
            expires_in=expires_in,
            session_id=str(record.id),
        )

    async def rotate(
        self, refresh_token: str, request_ip: str
    ) -> Result[Tuple[User, IssuedTokens]]:
        """
        Exchange a refresh token for a new pair.

        Returns:
            Result with (user, new tokens), or Error:
            - TOKEN_INVALID: unknown, revoked (not by rotation) or orphaned
            - TOKEN_REUSED: already rotated
            - TOKEN_EXPIRED
            - TOKEN_IP_MISMATCH: all sessions of the owner were revoked
        """
        request_ip = request_ip or UNKNOWN_IP
        record = await self.uow.refresh_tokens.get_by_token_hash(
            hash_refresh_token(refresh_token)
        )

        if record is None:
            logger.warning(f"Invalid refresh token: {token_prefix(refresh_token)}")
            return Return.err(Error("TOKEN_INVALID", "Invalid refresh token"))

        details = {"user_id": str(record.user_id), "session_id": str(record.id)}

        if record.is_revoked:
            if record.revoked_reason == RevokedReason.rotation.value:
                logger.warning(
                    f"Refresh token reuse detected for user {record.user_id}, session {record.id}"
                )
                return Return.err(
                    Error("TOKEN_REUSED", "Refresh token already used", details)
                )
            return Return.err(Error("TOKEN_INVALID", "Invalid refresh token", details))

        if record.is_expired(utc_now()):
            return Return.err(Error("TOKEN_EXPIRED", "Refresh token expired", details))

        if (
            self.enforce_ip_binding
            and record.ip != UNKNOWN_IP
            and record.ip != request_ip
        ):
            revoked = await self.uow.refresh_tokens.revoke_all_by_user_id(
                record.user_id, RevokedReason.security_ip_mismatch
            )
            logger.warning(
                f"Potential refresh token theft: token issued to {record.ip} "
                f"but used from {request_ip}; revoked {revoked} session(s) of user {record.user_id}"
            )
            return Return.err(
                Error(
                    "TOKEN_IP_MISMATCH",
                    "Refresh token used from a different address",
                    {**details, "revoked_count": revoked},
                )
            )

        user = await self.uow.users.get_by_id(record.user_id)
        if user is None:
            logger.warning(f"User not found for refresh token: {token_prefix(refresh_token)}")
            return Return.err(Error("TOKEN_INVALID", "Invalid refresh token", details))

        # Only one concurrent caller can win this update
        if not await self.uow.refresh_tokens.revoke_if_active(
            record.id, RevokedReason.rotation
        ):
            logger.warning(
                f"Concurrent refresh token reuse for user {record.user_id}, session {record.id}"
            )
            return Return.err(Error("TOKEN_REUSED", "Refresh token already used", details))

        tokens = await self.issue(user, request_ip)
        logger.info(f"Access token refreshed for user: {user.id}")
        return Return.ok((user, tokens))

    async def revoke(
        self, refresh_token: str, reason: RevokedReason
    ) -> Optional[RefreshToken]:
        """Revoke an active token; returns its record, or None when nothing changed."""
        record = await self.uow.refresh_tokens.get_by_token_hash(
            hash_refresh_token(refresh_token)
        )
        if record is None:
            return None
        if not await self.uow.refresh_tokens.revoke_if_active(record.id, reason):
            return None
        return record
