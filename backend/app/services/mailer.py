"""SMTP mail transport. Delivery runs in a worker thread; failures raise MailDeliveryError."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

from app.config import settings
from app.core.errors import MailDeliveryError

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(
        self,
        host: str,
        port: int,
        username: str = "",
        password: str = "",
        starttls: bool = False,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.starttls = starttls

    @classmethod
    def from_settings(cls) -> Mailer:
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            starttls=settings.smtp_starttls,
        )

    async def send_mail(self, from_addr: str, to: str, subject: str, html: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = from_addr
        msg["To"] = to
        msg.attach(MIMEText(html, "html"))
        try:
            await asyncio.to_thread(self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise MailDeliveryError(f"could not deliver mail to {to}") from e
        logger.debug("Mail sent: subject=%r", subject)

    def _send_sync(self, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.host, self.port) as server:
            if self.starttls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(msg)


def render_otp_email(name: str, code: str, expire_minutes: int) -> str:
    return (
        f"<p>Hi {escape(name)},</p>"
        f"<p>Your password reset code is <b>{code}</b>.</p>"
        f"<p>The code expires in {expire_minutes} minutes. "
        "If you did not request a password reset, you can ignore this email.</p>"
    )
