"""
Purge Expired Tokens Use Case

Physically deletes refresh tokens past their expiry (maintenance job).
"""

import logging

from src.app.services.store_guard import guard_store
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utc_now
from src.domain.result import Result, Return
from .dtos import PurgeResponse

logger = logging.getLogger(__name__)


class PurgeExpiredTokensUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    @guard_store
    async def execute(self) -> Result[PurgeResponse]:
        async with self.uow:
            deleted = await self.uow.refresh_tokens.delete_expired(utc_now())
            await self.uow.commit()

        logger.info(f"Purged {deleted} expired refresh token(s)")
        return Return.ok(PurgeResponse(deleted_count=deleted))
