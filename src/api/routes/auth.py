from typing import Optional, Union

from fastapi import APIRouter, Depends, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from src.api.error import ClientError, store_or_server_error
from src.api.utils.jwt import get_public_key_pem
from src.app.services.mfa_manager import MfaManager
from src.app.services.password_hasher import IPasswordHasher
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.auth import (
    ChangePasswordCommand,
    ChangePasswordUseCase,
    LoginCommand,
    LoginResponse,
    LoginUseCase,
    LogoutUseCase,
    MessageResponse,
    MfaChallengeResponse,
    RefreshTokenResponse,
    RefreshTokenUseCase,
    RegisterCommand,
    RegisterResponse,
    RegisterUseCase,
    VerifyMfaCommand,
    VerifyMfaUseCase,
)
from src.depends import (
    get_client_ip,
    get_current_user,
    get_mfa_manager,
    get_password_hasher,
    get_unit_of_work,
    limit_sensitive_endpoint,
)
from src.domain.result import Error

router = APIRouter(prefix="/auth", tags=["Authentication"])

# One public answer for every refresh failure
REFRESH_FAILED = Error("REFRESH_FAILED", "Please log in again")
REFRESH_ERROR_CODES = ("TOKEN_INVALID", "TOKEN_EXPIRED", "TOKEN_REUSED", "TOKEN_IP_MISMATCH")


def _account_locked(error: Error) -> ClientError:
    retry_after = error.details.get("retry_after", 1)
    return ClientError(
        error,
        status_code=status.HTTP_423_LOCKED,
        headers={"Retry-After": str(retry_after)},
    )


class RegisterRequest(BaseModel):
    """
    Register HTTP request payload

    Field rules (length, email syntax, password strength) are enforced by
    the use case so they map to VALIDATION_ERROR.
    """

    username: str = Field(..., description="3-30 characters")
    email: str = Field(..., description="User email address")
    password: str = Field(
        ...,
        description="8-100 characters with lowercase, uppercase, digit and one of @$!%*?&",
    )


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
    dependencies=[Depends(limit_sensitive_endpoint)],
)
async def register(
    request: RegisterRequest,
    ip: str = Depends(get_client_ip),
    uow: UnitOfWork = Depends(get_unit_of_work),
    hasher: IPasswordHasher = Depends(get_password_hasher),
):
    """
    Register

    Creates a user and returns an access + refresh token pair.

    Raises:
        - 400 Bad Request: Validation failed
        - 409 Conflict: Username or email already exists
        - 503 Service Unavailable: Store unavailable
    """
    command = RegisterCommand(
        username=request.username, email=request.email, password=request.password, ip=ip
    )

    use_case = RegisterUseCase(uow, hasher)
    result = await use_case.execute(command)

    if result.is_err():
        error = result.error
        if error.code == "VALIDATION_ERROR":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        elif error.code == "DUPLICATE_USER":
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        raise store_or_server_error(error)

    return result.value


class LoginRequest(BaseModel):
    """Login with an email address or a username"""

    email: Optional[str] = Field(None, description="User email address")
    username: Optional[str] = Field(None, description="Username")
    password: str = Field(..., description="User password")


@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    response_model=Union[LoginResponse, MfaChallengeResponse],
    dependencies=[Depends(limit_sensitive_endpoint)],
)
async def login(
    request: LoginRequest,
    ip: str = Depends(get_client_ip),
    uow: UnitOfWork = Depends(get_unit_of_work),
    hasher: IPasswordHasher = Depends(get_password_hasher),
    mfa: MfaManager = Depends(get_mfa_manager),
):
    """
    User Login

    Returns tokens, or an MFA challenge (mfa_required=true) when the user
    has a second factor enabled.

    Raises:
        - 400 Bad Request: Missing identifier or password
        - 401 Unauthorized: Invalid credentials
        - 423 Locked: Account locked (Retry-After header)
        - 409 Conflict: A concurrent login replaced the MFA code
        - 429 Too Many Requests: MFA code delivery rate limit
        - 502 Bad Gateway: MFA code could not be delivered
    """
    command = LoginCommand(
        identifier=request.email or request.username or "",
        password=request.password,
        ip=ip,
    )

    use_case = LoginUseCase(uow, hasher, mfa)
    result = await use_case.execute(command)

    if result.is_err():
        error = result.error
        if error.code == "VALIDATION_ERROR":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        elif error.code == "INVALID_CREDENTIALS":
            raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)
        elif error.code == "ACCOUNT_LOCKED":
            raise _account_locked(error)
        elif error.code == "MFA_RATE_LIMITED":
            raise ClientError(error, status_code=status.HTTP_429_TOO_MANY_REQUESTS)
        elif error.code == "MFA_DELIVERY_FAILED":
            raise ClientError(error, status_code=status.HTTP_502_BAD_GATEWAY)
        elif error.code == "MFA_STATE_CHANGED":
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        raise store_or_server_error(error)

    return result.value


class VerifyMfaRequest(BaseModel):
    user_id: str = Field(..., description="user_id from the MFA challenge")
    challenge_token: str = Field(..., description="challenge_token from the MFA challenge")
    code: Optional[str] = Field(None, description="TOTP / SMS / email code")
    backup_code: Optional[str] = Field(None, description="One-time backup code")


@router.post(
    "/mfa/verify",
    status_code=status.HTTP_200_OK,
    response_model=LoginResponse,
    dependencies=[Depends(limit_sensitive_endpoint)],
)
async def verify_mfa(
    request: VerifyMfaRequest,
    ip: str = Depends(get_client_ip),
    uow: UnitOfWork = Depends(get_unit_of_work),
    mfa: MfaManager = Depends(get_mfa_manager),
):
    """
    Complete an MFA login

    Raises:
        - 400 Bad Request: No code supplied
        - 401 Unauthorized: Invalid code or invalid/expired challenge
        - 429 Too Many Requests: Too many codes tried for this challenge or from this IP
    """
    command = VerifyMfaCommand(
        user_id=request.user_id,
        challenge_token=request.challenge_token,
        code=request.code,
        backup_code=request.backup_code,
        ip=ip,
    )

    use_case = VerifyMfaUseCase(uow, mfa)
    result = await use_case.execute(command)

    if result.is_err():
        error = result.error
        if error.code == "VALIDATION_ERROR":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        elif error.code in ("INVALID_MFA_CODE", "MFA_CHALLENGE_INVALID"):
            raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)
        elif error.code == "MFA_RATE_LIMITED":
            raise ClientError(error, status_code=status.HTTP_429_TOO_MANY_REQUESTS)
        raise store_or_server_error(error)

    return result.value


class RefreshRequest(BaseModel):
    """Refresh token HTTP request payload"""

    refresh_token: str = Field(..., description="Refresh token")


@router.post("/refresh", status_code=status.HTTP_200_OK, response_model=RefreshTokenResponse)
async def refresh(
    request: RefreshRequest,
    ip: str = Depends(get_client_ip),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Refresh Token

    Rotates the refresh token and returns a new pair. The old token stops
    working immediately.

    Raises:
        - 401 Unauthorized: Any refresh failure ("Please log in again")
    """
    use_case = RefreshTokenUseCase(uow)
    result = await use_case.execute(request.refresh_token, ip)

    if result.is_err():
        error = result.error
        if error.code in REFRESH_ERROR_CODES:
            raise ClientError(REFRESH_FAILED, status_code=status.HTTP_401_UNAUTHORIZED)
        raise store_or_server_error(error)

    return result.value


class LogoutRequest(BaseModel):
    refresh_token: str = Field(..., description="Refresh token to revoke")


@router.post("/logout", status_code=status.HTTP_200_OK, response_model=MessageResponse)
async def logout(request: LogoutRequest, uow: UnitOfWork = Depends(get_unit_of_work)):
    """Revoke a refresh token (idempotent)."""
    use_case = LogoutUseCase(uow)
    result = await use_case.execute(request.refresh_token)

    if result.is_err():
        raise store_or_server_error(result.error)

    return result.value


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., description="Current password")
    new_password: str = Field(..., description="New password")


@router.post("/change-password", status_code=status.HTTP_200_OK, response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    hasher: IPasswordHasher = Depends(get_password_hasher),
):
    """
    Change Password

    Revokes every session of the user; the client must log in again.

    Raises:
        - 400 Bad Request: Validation failed, same as current, or reused password
        - 401 Unauthorized: Current password is incorrect
        - 404 Not Found: User no longer exists
    """
    command = ChangePasswordCommand(
        user_id=current_user["sub"],
        current_password=request.current_password,
        new_password=request.new_password,
    )

    use_case = ChangePasswordUseCase(uow, hasher)
    result = await use_case.execute(command)

    if result.is_err():
        error = result.error
        if error.code in ("VALIDATION_ERROR", "SAME_AS_CURRENT", "PASSWORD_REUSED"):
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        elif error.code == "CURRENT_PASSWORD_MISMATCH":
            raise ClientError(error, status_code=status.HTTP_401_UNAUTHORIZED)
        elif error.code == "USER_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise store_or_server_error(error)

    return result.value


@router.get("/public-key", response_class=PlainTextResponse)
async def public_key():
    """PEM public key for verifying access tokens in other services."""
    return get_public_key_pem()
