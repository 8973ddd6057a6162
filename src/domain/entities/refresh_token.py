"""
RefreshToken Entity

Server-side record of an opaque refresh token (one per session).
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from src.domain.base import utc_now


class RefreshToken(SQLModel, table=True):
    """
    RefreshToken entity - one row per issued refresh token.

    Business Rules:
    - Only the SHA-256 digest of the token is stored
    - Single use: revoked with reason "rotation" when exchanged
    - Revoked rows are kept until expiry so reuse can be detected
    - Expires 7 days after issuance and is purged afterwards
    """

    __tablename__ = "refresh_tokens"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    token_hash: str = Field(unique=True, index=True, max_length=64)
    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)

    ip: str = Field(max_length=64)
    is_revoked: bool = Field(default=False)
    revoked_reason: Optional[str] = Field(default=None, max_length=50)
    revoked_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    # Timestamps
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime))
    expires_at: datetime = Field(sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_refresh_token_expires_at", "expires_at"),
        Index("idx_refresh_token_user_active", "user_id", "is_revoked", "expires_at"),
    )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now
