import logging
from datetime import UTC, datetime

from src.app.services.code_sender import ICodeSender
from src.domain.entities import MfaMethod

logger = logging.getLogger(__name__)


class LoggingCodeSender(ICodeSender):
    """
    Development sender: writes MFA messages to the log instead of a gateway.

    The message (including the code) is only emitted at DEBUG level.
    """

    async def send(self, channel: MfaMethod, destination: str, message: str) -> bool:
        sid = f"MOCK_{channel.value.upper()}_{int(datetime.now(UTC).timestamp() * 1000)}"
        logger.info(f"[MOCK {channel.value.upper()}] queued {sid}")
        logger.debug(f"[MOCK {channel.value.upper()}] To: {destination}, Message: {message}")
        return True
