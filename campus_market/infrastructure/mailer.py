"""SMTP mailer for fire-and-forget account notices."""

import smtplib
from email.message import EmailMessage
from typing import Optional

import structlog

from campus_market.config import Settings

logger = structlog.get_logger(__name__)


class Mailer:
    def __init__(self, settings: Settings):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.user = settings.SMTP_USER
        self.password = settings.SMTP_PASSWORD
        self.sender = settings.SMTP_FROM
        self.use_tls = settings.SMTP_USE_TLS

    @property
    def configured(self) -> bool:
        return bool(self.host and self.sender)

    def send(self, to_email: str, subject: str, body: str) -> Optional[str]:
        """Send a plain-text message. Returns an error string instead of raising."""
        if not self.configured:
            logger.info("SMTP not configured, skipping notice", to=to_email, subject=subject)
            return "SMTP not configured"

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_email
        msg.set_content(body)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as server:
                if self.use_tls:
                    server.starttls()
                if self.user or self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Failed to send notice", to=to_email, subject=subject, error=str(exc))
            return str(exc)

        logger.info("Notice sent", to=to_email, subject=subject)
        return None
