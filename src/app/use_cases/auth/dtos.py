"""
Authentication Use Case DTOs (Data Transfer Objects)

All Command and Response classes for auth domain.
Provides type safety and clear contracts between layers.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel


# ============================================================================
# Command DTOs
# ============================================================================


class RegisterCommand(BaseModel):
    """
    Register command - represents registration intent

    Created by API layer; field rules are checked by the use case.
    """

    username: str
    email: str
    password: str
    ip: str


class LoginCommand(BaseModel):
    """Login command; identifier is an email or a username"""

    identifier: str
    password: str
    ip: str


class VerifyMfaCommand(BaseModel):
    """Second login step, exactly one of code / backup_code is used"""

    user_id: str
    challenge_token: str
    code: Optional[str] = None
    backup_code: Optional[str] = None
    ip: str


class ChangePasswordCommand(BaseModel):
    user_id: str
    current_password: str
    new_password: str


# ============================================================================
# Response DTOs
# ============================================================================


class UserInfo(BaseModel):
    """Public user fields (never hashes, secrets or backup codes)"""

    id: str
    username: str
    email: str
    mfa_enabled: bool
    mfa_method: Optional[str] = None
    created_at: datetime
    last_login_at: Optional[datetime] = None
    password_changed_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "UserInfo":
        return cls(
            id=str(user.id),
            username=user.username,
            email=user.email,
            mfa_enabled=user.mfa_enabled,
            mfa_method=user.mfa_method.value if user.mfa_enabled else None,
            created_at=user.created_at,
            last_login_at=user.last_login_at,
            password_changed_at=user.password_changed_at,
        )


class TokenResponse(BaseModel):
    """Access + refresh token pair"""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    session_id: str


class RegisterResponse(TokenResponse):
    user: UserInfo


class LoginResponse(TokenResponse):
    """Response for a login that needs no second factor"""

    mfa_required: Literal[False] = False
    user: UserInfo


class MfaChallengeResponse(BaseModel):
    """Password accepted; the client must complete MFA verification"""

    mfa_required: Literal[True] = True
    user_id: str
    method: str
    challenge_token: str
    destination: Optional[str] = None


class RefreshTokenResponse(TokenResponse):
    pass


class MessageResponse(BaseModel):
    status: str
    message: str


class PurgeResponse(BaseModel):
    deleted_count: int
