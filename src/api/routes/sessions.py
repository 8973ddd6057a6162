from uuid import UUID

from fastapi import APIRouter, Depends, status

from src.api.error import ClientError, store_or_server_error
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.sessions import (
    ListSessionsUseCase,
    RevokedSessionsResponse,
    RevokeSessionsUseCase,
    SessionListResponse,
)
from src.depends import get_current_user, get_unit_of_work
from src.domain.result import Error

router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.get("", status_code=status.HTTP_200_OK, response_model=SessionListResponse)
async def list_sessions(
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Active sessions (unrevoked, unexpired refresh tokens), newest first."""
    use_case = ListSessionsUseCase(uow)
    result = await use_case.execute(UUID(current_user["sub"]))

    if result.is_err():
        raise store_or_server_error(result.error)

    return result.value


@router.post(
    "/revoke-all",
    status_code=status.HTTP_200_OK,
    response_model=RevokedSessionsResponse,
)
async def revoke_all_sessions(
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Revoke All Sessions

    Logs the user out on every device. The current access token stays
    valid until it expires.
    """
    use_case = RevokeSessionsUseCase(uow)
    result = await use_case.revoke_all_sessions(UUID(current_user["sub"]))

    if result.is_err():
        raise store_or_server_error(result.error)

    return result.value


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_200_OK,
    response_model=RevokedSessionsResponse,
)
async def revoke_session(
    session_id: str,
    current_user: dict = Depends(get_current_user),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Revoke Specific Session

    Raises:
        - 403 Forbidden: Session belongs to another user
        - 404 Not Found: Session not found or already revoked
    """
    try:
        session_uuid = UUID(session_id)
    except ValueError:
        raise ClientError(
            Error("SESSION_NOT_FOUND", "Session not found or already revoked"),
            status_code=status.HTTP_404_NOT_FOUND,
        ) from None

    use_case = RevokeSessionsUseCase(uow)
    result = await use_case.revoke_session(UUID(current_user["sub"]), session_uuid)

    if result.is_err():
        error = result.error
        if error.code == "UNAUTHORIZED":
            raise ClientError(error, status_code=status.HTTP_403_FORBIDDEN)
        elif error.code == "SESSION_NOT_FOUND":
            raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
        raise store_or_server_error(error)

    return result.value
