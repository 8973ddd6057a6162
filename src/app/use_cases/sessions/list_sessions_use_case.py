"""
List Sessions Use Case

Active (unrevoked, unexpired) refresh tokens of the caller, newest first.
"""

from typing import List
from uuid import UUID

from pydantic import BaseModel

from src.app.services.session_registry import SessionInfo, SessionRegistry
from src.app.services.store_guard import guard_store
from src.app.services.unit_of_work import UnitOfWork
from src.domain.result import Result, Return


class SessionListResponse(BaseModel):
    sessions: List[SessionInfo]
    count: int


class ListSessionsUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.registry = SessionRegistry(uow)

    @guard_store
    async def execute(self, user_id: UUID) -> Result[SessionListResponse]:
        async with self.uow:
            sessions = await self.registry.list_active(user_id)
        return Return.ok(SessionListResponse(sessions=sessions, count=len(sessions)))
