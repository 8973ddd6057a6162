"""
MFA API Routes

Second factor management for the authenticated user.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from src.api.error import ClientError, store_or_server_error
from src.app.services.mfa_manager import MfaManager
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.mfa import (
    BackupCodesResponse,
    ConfirmMfaSetupUseCase,
    DisableMfaUseCase,
    MfaStatusResponse,
    RegenerateBackupCodesUseCase,
    SetupMfaCommand,
    SetupMfaResponse,
    SetupMfaUseCase,
)
from src.depends import get_current_user, get_mfa_manager, get_unit_of_work
from src.domain.entities import MfaMethod
from src.domain.result import Error

router = APIRouter(prefix="/mfa", tags=["MFA"])


def _raise_for(error: Error):
    if error.code in ("VALIDATION_ERROR", "MFA_NOT_INITIATED", "INVALID_MFA_CODE", "MFA_NOT_ENABLED"):
        raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
    elif error.code in ("MFA_ALREADY_ENABLED", "MFA_STATE_CHANGED"):
        raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
    elif error.code == "USER_NOT_FOUND":
        raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
    elif error.code == "MFA_RATE_LIMITED":
        raise ClientError(error, status_code=status.HTTP_429_TOO_MANY_REQUESTS)
    elif error.code == "MFA_DELIVERY_FAILED":
        raise ClientError(error, status_code=status.HTTP_502_BAD_GATEWAY)
    raise store_or_server_error(error)


class SetupMfaRequest(BaseModel):
    method: str = Field(..., description="totp, sms or email")
    phone_number: Optional[str] = Field(None, description="Required for sms, e.g. +1234567890")


@router.post("/setup", status_code=status.HTTP_200_OK, response_model=SetupMfaResponse)
async def setup_mfa(
    request: SetupMfaRequest,
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    mfa: MfaManager = Depends(get_mfa_manager),
):
    """
    Start MFA enrollment

    TOTP returns a secret and an otpauth:// URI; SMS and email send a code.
    """
    try:
        method = MfaMethod(request.method.lower())
    except ValueError:
        raise ClientError(
            Error("VALIDATION_ERROR", "Invalid MFA method. Use totp, sms or email"),
            status_code=status.HTTP_400_BAD_REQUEST,
        ) from None

    command = SetupMfaCommand(
        user_id=current_user["sub"], method=method, destination=request.phone_number
    )
    result = await SetupMfaUseCase(uow, mfa).execute(command)

    if result.is_err():
        _raise_for(result.error)

    return result.value


class VerifySetupRequest(BaseModel):
    code: str = Field(..., description="First code from the authenticator app, SMS or email")


@router.post("/verify-setup", status_code=status.HTTP_200_OK, response_model=BackupCodesResponse)
async def verify_setup(
    request: VerifySetupRequest,
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    mfa: MfaManager = Depends(get_mfa_manager),
):
    """Enable MFA; the response carries the backup codes exactly once."""
    result = await ConfirmMfaSetupUseCase(uow, mfa).execute(current_user["sub"], request.code)

    if result.is_err():
        _raise_for(result.error)

    return result.value


@router.post("/disable", status_code=status.HTTP_200_OK, response_model=MfaStatusResponse)
async def disable_mfa(
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    mfa: MfaManager = Depends(get_mfa_manager),
):
    result = await DisableMfaUseCase(uow, mfa).execute(current_user["sub"])

    if result.is_err():
        _raise_for(result.error)

    return result.value


@router.post("/backup-codes", status_code=status.HTTP_200_OK, response_model=BackupCodesResponse)
async def regenerate_backup_codes(
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    mfa: MfaManager = Depends(get_mfa_manager),
):
    """Replace all backup codes; previous codes stop working."""
    result = await RegenerateBackupCodesUseCase(uow, mfa).execute(current_user["sub"])

    if result.is_err():
        _raise_for(result.error)

    return result.value
