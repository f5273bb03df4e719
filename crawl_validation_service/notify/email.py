"""E-mail notifications for finished crawl jobs."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional, Protocol

from ..config import Settings
from ..monitoring.metrics import NOTIFICATIONS_SENT

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, recipient: str, subject: str, body: str) -> None: ...


class SmtpNotifier:
    """Sends plain text mail; delivery problems are logged and never raised."""

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        *,
        sender: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        starttls: bool = True,
        timeout: float = 20.0,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.user = user
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpNotifier":
        return cls(
            settings.smtp_host,
            settings.smtp_port,
            sender=settings.smtp_sender,
            user=settings.smtp_user,
            password=settings.smtp_password,
            starttls=settings.smtp_starttls,
            timeout=settings.request_timeout_seconds,
        )

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.starttls:
                smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password or "")
            smtp.send_message(message)

    async def send(self, recipient: str, subject: str, body: str) -> None:
        if not self.host:
            logger.warning("SMTP host not configured, dropping notification", extra={"recipient": recipient})
            return

        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError):
            logger.exception("Email sending error", extra={"recipient": recipient})
            NOTIFICATIONS_SENT.labels(result="failed").inc()
            return
        NOTIFICATIONS_SENT.labels(result="sent").inc()
        logger.info("Notification sent", extra={"recipient": recipient, "subject": subject})


__all__ = ["Notifier", "SmtpNotifier"]
