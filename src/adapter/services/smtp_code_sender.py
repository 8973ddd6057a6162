"""
SMTP delivery for email MFA codes.
"""

import asyncio
import logging
import smtplib
from email.mime.text import MIMEText

from src.app.services.code_sender import ICodeSender
from src.domain.entities import MfaMethod

logger = logging.getLogger(__name__)


class SmtpCodeSender(ICodeSender):
    """Sends email codes over SMTP; other channels go to the fallback sender."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        fallback: ICodeSender,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        subject: str = "Your MFA Verification Code",
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.fallback = fallback
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.subject = subject

    async def send(self, channel: MfaMethod, destination: str, message: str) -> bool:
        if channel != MfaMethod.email:
            return await self.fallback.send(channel, destination, message)
        try:
            await asyncio.to_thread(self._send_email, destination, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP delivery error: {e}")
            return False
        logger.info("MFA email sent")
        return True

    def _send_email(self, to_email: str, body: str) -> None:
        msg = MIMEText(body, "plain", "utf-8")
        msg["From"] = self.sender
        msg["To"] = to_email
        msg["Subject"] = self.subject

        with smtplib.SMTP(self.host, self.port, timeout=10) as server:
            if self.use_tls:
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.sendmail(self.sender, [to_email], msg.as_string())
