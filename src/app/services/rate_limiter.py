from abc import ABC, abstractmethod
from datetime import timedelta


class IRateLimiter(ABC):
    """Fixed-window counter keyed by an arbitrary string (phone, email, IP)"""

    @abstractmethod
    async def hit(self, key: str, limit: int, window: timedelta) -> bool:
        """
        Count one event for key.

        Returns False (and does not count) when the key already reached
        limit within the current window.
        """
        pass
