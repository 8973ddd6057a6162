"""
Get Profile Use Case

Public fields of the authenticated user.
"""

from uuid import UUID

from src.app.services.store_guard import guard_store
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.auth.dtos import UserInfo
from src.domain.result import Error, Result, Return


class GetProfileUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    @guard_store
    async def execute(self, user_id: UUID) -> Result[UserInfo]:
        async with self.uow:
            user = await self.uow.users.get_by_id(user_id)
            if user is None:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))
            return Return.ok(UserInfo.from_user(user))
