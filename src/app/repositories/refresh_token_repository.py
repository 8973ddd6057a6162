from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from src.domain.entities import RefreshToken, RevokedReason


class IRefreshTokenRepository(ABC):
    """Refresh token repository interface - application layer"""

    @abstractmethod
    async def create(self, token: RefreshToken) -> RefreshToken:
        """Persist a newly issued refresh token"""
        pass

    @abstractmethod
    async def get_by_id(self, token_id: UUID) -> Optional[RefreshToken]:
        """Get refresh token by ID"""
        pass

    @abstractmethod
    async def get_by_token_hash(self, token_hash: str) -> Optional[RefreshToken]:
        """Get refresh token by the SHA-256 digest of its value"""
        pass

    @abstractmethod
    async def revoke_if_active(self, token_id: UUID, reason: RevokedReason) -> bool:
        """
        Revoke a token only if it is still unrevoked (compare-and-swap).

        Returns True for the single caller that performed the revocation.
        """
        pass

    @abstractmethod
    async def revoke_all_by_user_id(self, user_id: UUID, reason: RevokedReason) -> int:
        """Revoke every unrevoked token of a user. Returns count of revoked tokens."""
        pass

    @abstractmethod
    async def get_active_by_user_id(
        self, user_id: UUID, now: datetime
    ) -> List[RefreshToken]:
        """Unrevoked, unexpired tokens of a user, newest first"""
        pass

    @abstractmethod
    async def get_all_by_user_id(self, user_id: UUID) -> List[RefreshToken]:
        """Every token of a user, revoked and expired ones included, newest first"""
        pass

    @abstractmethod
    async def delete_expired(
        self, now: datetime, user_id: Optional[UUID] = None
    ) -> int:
        """Delete tokens past expiry (optionally for one user). Returns count."""
        pass
