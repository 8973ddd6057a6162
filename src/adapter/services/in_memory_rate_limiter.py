import asyncio
from collections import OrderedDict
from datetime import timedelta
from typing import Tuple

from src.app.services.rate_limiter import IRateLimiter
from src.domain.base import utc_now


class InMemoryRateLimiter(IRateLimiter):
    """
    Bounded fixed-window counter cache: key -> (count, reset time).

    Least recently used keys are evicted once max_entries is reached.
    Safe for concurrent coroutines within one process; swap for a shared
    store when running several instances.
    """

    def __init__(self, max_entries: int = 10000):
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, Tuple[int, object]]" = OrderedDict()
        self._lock = asyncio.Lock()

    async def hit(self, key: str, limit: int, window: timedelta) -> bool:
        async with self._lock:
            now = utc_now()
            count, reset_at = self._entries.get(key, (0, None))
            if reset_at is None or now >= reset_at:
                count, reset_at = 0, now + window

            if count >= limit:
                self._entries.move_to_end(key)
                return False

            self._entries[key] = (count + 1, reset_at)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
            return True

    async def reset(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)
