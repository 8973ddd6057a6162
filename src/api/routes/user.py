from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from src.api.error import ClientError, store_or_server_error
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.auth import UserInfo
from src.app.use_cases.users import (
    AccountExportResponse,
    AuditEventsResponse,
    ExportAccountDataUseCase,
    GetAuditEventsUseCase,
    GetProfileUseCase,
    UpdateProfileCommand,
    UpdateProfileUseCase,
)
from src.depends import get_current_user, get_unit_of_work

router = APIRouter(prefix="/users", tags=["User"])


@router.get("/me", status_code=status.HTTP_200_OK, response_model=UserInfo)
async def get_me(
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Current user profile

    Never includes password hashes, MFA secrets or backup codes.

    Raises:
        - 401 Unauthorized: Invalid or expired JWT
        - 404 Not Found: User no longer exists
    """
    use_case = GetProfileUseCase(uow)
    result = await use_case.execute(UUID(current_user["sub"]))

    if result.is_err():
        error = result.error
        if error.code == "USER_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise store_or_server_error(error)

    return result.value


@router.get(
    "/me/audit-events",
    status_code=status.HTTP_200_OK,
    response_model=AuditEventsResponse,
)
async def get_my_audit_events(
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
    limit: int = Query(50, ge=1, le=100, description="Maximum number of events to return"),
    cursor: Optional[str] = Query(None, description="Pagination cursor"),
):
    """
    Security log of the current user, newest first.

    Query Parameters:
        - limit: Maximum number of events to return (1-100, default 50)
        - cursor: Pagination cursor for fetching next page
    """
    use_case = GetAuditEventsUseCase(uow)
    result = await use_case.execute(UUID(current_user["sub"]), limit=limit, cursor=cursor)

    if result.is_err():
        raise store_or_server_error(result.error)

    return result.value


class UpdateProfileRequest(BaseModel):
    username: Optional[str] = Field(None, description="3-30 characters, no @")
    email: Optional[str] = Field(None, description="New email address")


@router.put("/me", status_code=status.HTTP_200_OK, response_model=UserInfo)
async def update_me(
    request: UpdateProfileRequest,
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Change username and/or email

    Raises:
        - 400 Bad Request: Invalid username or email
        - 404 Not Found: User no longer exists
        - 409 Conflict: Username or email belongs to another account
    """
    command = UpdateProfileCommand(
        user_id=UUID(current_user["sub"]),
        username=request.username,
        email=request.email,
    )

    use_case = UpdateProfileUseCase(uow)
    result = await use_case.execute(command)

    if result.is_err():
        error = result.error
        if error.code == "VALIDATION_ERROR":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        elif error.code == "USER_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        elif error.code == "DUPLICATE_USER":
            raise ClientError(error, status_code=status.HTTP_409_CONFLICT)
        raise store_or_server_error(error)

    return result.value


@router.get("/me/export", status_code=status.HTTP_200_OK, response_model=AccountExportResponse)
async def export_my_data(
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Profile plus every session ever issued, with revocation state.

    Raises:
        - 401 Unauthorized: Invalid or expired JWT
        - 404 Not Found: User no longer exists
    """
    use_case = ExportAccountDataUseCase(uow)
    result = await use_case.execute(UUID(current_user["sub"]))

    if result.is_err():
        error = result.error
        if error.code == "USER_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise store_or_server_error(error)

    return result.value
