"""
Notification Service - receipt email dispatch over SMTP
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from config.settings import settings

logger = logging.getLogger(__name__)


class Notifier:
    """
    Fire-and-forget email sender.

    send() never raises: a missing SMTP configuration or a delivery failure is
    logged and reported as False so the triggering operation is unaffected.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        secure: Optional[bool] = None,
        from_email: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.host = host if host is not None else settings.smtp_host
        self.port = port if port is not None else settings.smtp_port
        self.user = user if user is not None else settings.smtp_user
        self.password = password if password is not None else settings.smtp_pass
        self.secure = secure if secure is not None else settings.smtp_secure
        self.from_email = from_email or settings.from_email or self.user
        self.timeout = timeout if timeout is not None else settings.mail_timeout_seconds

    @property
    def configured(self) -> bool:
        return bool(self.host and self.user and self.password)

    async def send(self, to_email: Optional[str], subject: str, html: str) -> bool:
        if not self.configured:
            logger.warning("Mailer not configured; skipping email")
            return False
        if not to_email:
            logger.warning("No recipient address; skipping email")
            return False

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to_email
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")

        try:
            await asyncio.wait_for(asyncio.to_thread(self._deliver, msg), timeout=self.timeout + 1)
        except (smtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Failed to send email to {to_email}: {e}")
            return False

        logger.info(f"Email sent to {to_email}: {subject}")
        return True

    def _deliver(self, msg: EmailMessage) -> None:
        smtp_cls = smtplib.SMTP_SSL if self.secure else smtplib.SMTP
        with smtp_cls(self.host, self.port, timeout=self.timeout) as smtp:
            if not self.secure:
                smtp.ehlo()
                smtp.starttls()
                smtp.ehlo()
            smtp.login(self.user, self.password)
            smtp.send_message(msg)
