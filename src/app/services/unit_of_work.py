from abc import ABC, abstractmethod

from src.app.repositories.audit_event_repository import IAuditEventRepository
from src.app.repositories.refresh_token_repository import IRefreshTokenRepository
from src.app.repositories.user_repository import IUserRepository


class UnitOfWork(ABC):
    """
    Abstract UnitOfWork - defines repository access and transaction management.

    Nothing is persisted unless commit() is called; leaving the context
    (including by cancellation) rolls back.
    """

    # Repository properties (initialized in __aenter__)
    users: IUserRepository
    refresh_tokens: IRefreshTokenRepository
    audit_events: IAuditEventRepository

    @abstractmethod
    async def __aenter__(self):
        pass

    @abstractmethod
    async def __aexit__(self, *args):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
