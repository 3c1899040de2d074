"""Outgoing mail over SMTP and the password reset message."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from useradmin.core.config import Settings

logger = logging.getLogger(__name__)

PASSWORD_RESET_SUBJECT = "Reset Password"

PASSWORD_RESET_TEXT = """\
Reset Your Password

We received a request to reset the password for {username}. Visit this link to choose a new one:
{reset_url}

This link expires in {expire_minutes} minutes.

If you didn't request this, you can safely ignore this email.
"""


class MailSender:
    """Send plain-text mail through the configured SMTP relay."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def send(self, to: str, subject: str, body: str) -> None:
        """Deliver one message. Raises smtplib.SMTPException or OSError on failure."""
        message = EmailMessage()
        message["From"] = self.settings.SMTP_FROM
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        with smtplib.SMTP(
            self.settings.SMTP_HOST,
            self.settings.SMTP_PORT,
            timeout=self.settings.SMTP_TIMEOUT_SEC,
        ) as server:
            if self.settings.SMTP_USE_TLS:
                server.starttls()
            if self.settings.SMTP_USERNAME and self.settings.SMTP_PASSWORD is not None:
                server.login(
                    self.settings.SMTP_USERNAME,
                    self.settings.SMTP_PASSWORD.get_secret_value(),
                )
            server.send_message(message)


def send_password_reset_email(
    sender: MailSender,
    to: str,
    username: str,
    reset_url: str,
    expire_minutes: int,
) -> bool:
    """
    Send the reset link. Runs as a background task, so failures are logged
    and reported as False instead of raised.
    """
    body = PASSWORD_RESET_TEXT.format(
        username=username,
        reset_url=reset_url,
        expire_minutes=expire_minutes,
    )
    try:
        sender.send(to, PASSWORD_RESET_SUBJECT, body)
    except (smtplib.SMTPException, OSError):
        logger.exception("Password reset email could not be sent to %s", to)
        return False
    logger.info("Password reset email sent to %s", to)
    return True
