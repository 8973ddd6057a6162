"""
Store guard for use case entry points.

Bounds every use case by a request-scoped timeout and turns infrastructure
failures into a STORE_UNAVAILABLE result so they never cross the core
boundary as exceptions.
"""

import asyncio
import functools
import logging

from config import ApplicationConfig
from src.domain.errors import StoreUnavailableError
from src.domain.result import Error, Return

logger = logging.getLogger(__name__)


def guard_store(func):
    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            async with asyncio.timeout(ApplicationConfig.STORE_TIMEOUT_SECONDS):
                return await func(self, *args, **kwargs)
        except (StoreUnavailableError, TimeoutError) as exc:
            logger.error(
                f"Store unavailable during {type(self).__name__}: {exc!r}", exc_info=True
            )
            return Return.err(
                Error("STORE_UNAVAILABLE", "Service temporarily unavailable")
            )

    return wrapper
