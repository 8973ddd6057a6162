from abc import ABC, abstractmethod

from src.domain.entities import MfaMethod


class ICodeSender(ABC):
    """Out-of-band delivery of MFA codes (SMS / email)"""

    @abstractmethod
    async def send(self, channel: MfaMethod, destination: str, message: str) -> bool:
        """Deliver message to destination. Returns False on delivery failure."""
        pass
