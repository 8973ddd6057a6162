from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from src.domain.entities import User


class IUserRepository(ABC):
    """User repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID"""
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email address (case-insensitive)"""
        pass

    @abstractmethod
    async def get_by_username(self, username: str) -> Optional[User]:
        """Get user by username"""
        pass

    @abstractmethod
    async def get_by_username_or_email(
        self, username: str, email: str, exclude_id: Optional[UUID] = None
    ) -> Optional[User]:
        """Get any user (other than exclude_id) holding the username or the email"""
        pass

    @abstractmethod
    async def create(self, user: User) -> User:
        """Create a new user. Raises DuplicateKeyError on unique violation."""
        pass

    @abstractmethod
    async def update(self, user: User) -> User:
        """
        Update existing user (not the MFA columns, see save_mfa).

        Raises DuplicateKeyError when a new username or email is taken.
        """
        pass

    @abstractmethod
    async def save_mfa(self, user: User) -> bool:
        """
        Write the MFA columns of user if nobody changed them since it was read.

        Returns False when another request won; user then holds the stored
        MFA state instead of the local changes.
        """
        pass

    @abstractmethod
    async def increment_failed_attempts(self, user_id: UUID) -> int:
        """Atomically add one failed login. Returns the new count."""
        pass

    @abstractmethod
    async def set_locked_until(self, user_id: UUID, locked_until: datetime) -> None:
        """Set the lock expiry for a user"""
        pass
