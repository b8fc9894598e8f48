"""Outgoing email over SMTP.

Only the outbox worker calls this. Failures are not caught here: the outbox
records them and schedules the retry.
"""

import logging
from email.message import EmailMessage
from email.utils import make_msgid

import aiosmtplib

from app.core.config import settings

logger = logging.getLogger(__name__)


def build_message(to: str, subject: str, body: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = f"{settings.app_name} <{settings.smtp_from}>"
    message["To"] = to
    message["Subject"] = subject
    message["Message-ID"] = make_msgid(domain=settings.smtp_from.split("@")[-1])
    if settings.smtp_reply_to:
        message["Reply-To"] = settings.smtp_reply_to
    message.set_content(body)
    return message


async def send_email(to: str, subject: str, body: str) -> None:
    """Send a plain-text email via SMTP."""
    await aiosmtplib.send(
        build_message(to, subject, body),
        hostname=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        start_tls=settings.smtp_starttls,
        timeout=settings.smtp_timeout,
    )
    logger.info("Email '%s' sent to %s", subject, to)
