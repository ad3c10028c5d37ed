from __future__ import annotations

import logging
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import Sequence

import aiosmtplib

from lppm_forms.core.config import settings

logger = logging.getLogger("lppm_forms.mailer")


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    mime_type: str


class Mailer:
    """Async SMTP delivery (implicit TLS on 465 by default)."""

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        user: str | None = None,
        password: str | None = None,
        use_tls: bool | None = None,
    ):
        self.host = host if host is not None else settings.SMTP_HOST
        self.port = port if port is not None else settings.SMTP_PORT
        self.user = user if user is not None else settings.SMTP_USER
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.use_tls = use_tls if use_tls is not None else settings.SMTP_USE_TLS
        self.sender = formataddr((settings.EMAIL_FROM_NAME, settings.EMAIL_FROM))

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.user and self.password)

    def build_message(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: Sequence[Attachment] = (),
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)
        for a in attachments:
            maintype, _, subtype = a.mime_type.partition("/")
            msg.add_attachment(a.content, maintype=maintype, subtype=subtype or "octet-stream", filename=a.filename)
        return msg

    async def send(
        self,
        to: str,
        subject: str,
        body: str,
        attachments: Sequence[Attachment] = (),
    ) -> bool:
        """Send one message. Returns False when SMTP is not configured."""
        if not self.is_configured:
            logger.warning("SMTP not configured, skipping mail to %s: %s", to, subject)
            return False
        await aiosmtplib.send(
            self.build_message(to, subject, body, attachments),
            hostname=self.host,
            port=self.port,
            username=self.user,
            password=self.password,
            use_tls=self.use_tls,
        )
        logger.info("Mail sent to %s: %s", to, subject)
        return True


def get_mailer() -> Mailer:
    return Mailer()
