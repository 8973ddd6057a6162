"""
Authentication Use Cases

All authentication-related business logic.
"""

from .register_use_case import RegisterUseCase
from .login_use_case import LoginUseCase
from .verify_mfa_use_case import VerifyMfaUseCase
from .refresh_token_use_case import RefreshTokenUseCase
from .logout_use_case import LogoutUseCase
from .change_password_use_case import ChangePasswordUseCase
from .purge_expired_tokens_use_case import PurgeExpiredTokensUseCase
from .dtos import (
    RegisterCommand,
    LoginCommand,
    VerifyMfaCommand,
    ChangePasswordCommand,
    UserInfo,
    TokenResponse,
    RegisterResponse,
    LoginResponse,
    MfaChallengeResponse,
    RefreshTokenResponse,
    MessageResponse,
    PurgeResponse,
)

__all__ = [
    # Use Cases
    "RegisterUseCase",
    "LoginUseCase",
    "VerifyMfaUseCase",
    "RefreshTokenUseCase",
    "LogoutUseCase",
    "ChangePasswordUseCase",
    "PurgeExpiredTokensUseCase",
    # DTOs - Commands
    "RegisterCommand",
    "LoginCommand",
    "VerifyMfaCommand",
    "ChangePasswordCommand",
    # DTOs - Responses
    "TokenResponse",
    "RegisterResponse",
    "LoginResponse",
    "MfaChallengeResponse",
    "RefreshTokenResponse",
    "MessageResponse",
    "PurgeResponse",
    # DTOs - Nested Models
    "UserInfo",
]
