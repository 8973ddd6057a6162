from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.refresh_token_repository import IRefreshTokenRepository
from src.domain.base import utc_now
from src.domain.entities import RefreshToken, RevokedReason


class RefreshTokenRepository(IRefreshTokenRepository):
    """Refresh token repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, token: RefreshToken) -> RefreshToken:
        """Persist a newly issued refresh token"""
        self.session.add(token)
        await self.session.flush()
        await self.session.refresh(token)
        return token

    async def get_by_id(self, token_id: UUID) -> Optional[RefreshToken]:
        """Get refresh token by ID"""
        stmt = select(RefreshToken).where(RefreshToken.id == token_id).execution_options(
            populate_existing=True
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_token_hash(self, token_hash: str) -> Optional[RefreshToken]:
        """Get refresh token by the SHA-256 digest of its value"""
        stmt = select(RefreshToken).where(RefreshToken.token_hash == token_hash).execution_options(
            populate_existing=True
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def revoke_if_active(self, token_id: UUID, reason: RevokedReason) -> bool:
        """Revoke a token only if it is still unrevoked"""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.id == token_id, RefreshToken.is_revoked == False)
            .values(is_revoked=True, revoked_reason=reason.value, revoked_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount == 1

    async def revoke_all_by_user_id(self, user_id: UUID, reason: RevokedReason) -> int:
        """Revoke all unrevoked tokens of a user"""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.is_revoked == False)
            .values(is_revoked=True, revoked_reason=reason.value, revoked_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount

    async def get_active_by_user_id(
        self, user_id: UUID, now: datetime
    ) -> List[RefreshToken]:
        """Unrevoked, unexpired tokens of a user, newest first"""
        stmt = (
            select(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.is_revoked == False,
                RefreshToken.expires_at > now,
            )
            .order_by(RefreshToken.created_at.desc())
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def get_all_by_user_id(self, user_id: UUID) -> List[RefreshToken]:
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.user_id == user_id)
            .order_by(RefreshToken.created_at.desc())
        )
        result = await self.session.exec(stmt)
        return list(result.all())

    async def delete_expired(
        self, now: datetime, user_id: Optional[UUID] = None
    ) -> int:
        """Delete tokens past expiry"""
        stmt = delete(RefreshToken).where(RefreshToken.expires_at <= now)
        if user_id is not None:
            stmt = stmt.where(RefreshToken.user_id == user_id)
        result = await self.session.execute(
            stmt.execution_options(synchronize_session=False)
        )
        await self.session.flush()
        return result.rowcount
