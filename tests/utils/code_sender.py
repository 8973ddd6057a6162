from typing import List, Tuple

from src.app.services.code_sender import ICodeSender
from src.domain.entities import MfaMethod


class CapturingCodeSender(ICodeSender):
    """Records delivered messages so tests can read the codes back"""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Tuple[MfaMethod, str, str]] = []

    async def send(self, channel: MfaMethod, destination: str, message: str) -> bool:
        if self.fail:
            return False
        self.sent.append((channel, destination, message))
        return True

    @property
    def last_code(self) -> str:
        return self.sent[-1][2].rsplit(" ", 1)[-1]
