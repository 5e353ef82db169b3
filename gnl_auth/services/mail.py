"""
services/mail.py

Mail dispatcher contract and its two implementations.

The credential service only knows the MailDispatcher protocol:
``send_verification(user, link)`` and ``send_password_reset(user, link)``.

- SmtpMailDispatcher    : delivers through SMTP (smtplib, STARTTLS)
- LoggingMailDispatcher : writes the link to the log; used when SMTP is not configured

Tests override ``get_mail_dispatcher`` with a capturing fake.

"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol

from gnl_auth.core.config import settings
from gnl_auth.models.user import User

logger = logging.getLogger(__name__)


class MailDispatcher(Protocol):
    def send_verification(self, user: User, link: str) -> None: ...

    def send_password_reset(self, user: User, link: str) -> None: ...


class LoggingMailDispatcher:
    def send_verification(self, user: User, link: str) -> None:
        logger.info("mail verification user_id=%s email=%s link=%s", user.id, user.email, link)

    def send_password_reset(self, user: User, link: str) -> None:
        logger.info("mail password_reset user_id=%s email=%s link=%s", user.id, user.email, link)


class SmtpMailDispatcher:
    def __init__(
        self,
        host: str,
        port: int,
        user: str | None,
        password: str | None,
        sender: str,
        use_tls: bool = True,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.use_tls = use_tls

    def _send(self, to: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=10) as server:
            if self.use_tls:
                server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.send_message(msg)

    def send_verification(self, user: User, link: str) -> None:
        self._send(
            user.email,
            "Verify your Great Nigeria Library email",
            f"Hello {user.full_name or user.username},\n\n"
            f"Confirm your email address by opening this link:\n{link}\n\n"
            f"The link expires in {settings.EMAIL_VERIFICATION_EXPIRE_HOURS} hours.",
        )

    def send_password_reset(self, user: User, link: str) -> None:
        self._send(
            user.email,
            "Reset your Great Nigeria Library password",
            f"Hello {user.full_name or user.username},\n\n"
            f"Reset your password by opening this link:\n{link}\n\n"
            f"The link expires in {settings.PASSWORD_RESET_EXPIRE_HOURS} hours. "
            "If you did not request a reset you can ignore this message.",
        )


def build_mail_dispatcher() -> MailDispatcher:
    if settings.SMTP_HOST:
        return SmtpMailDispatcher(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            sender=settings.SMTP_FROM,
            use_tls=settings.SMTP_USE_TLS,
        )
    return LoggingMailDispatcher()


_dispatcher: MailDispatcher | None = None


def get_mail_dispatcher() -> MailDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = build_mail_dispatcher()
    return _dispatcher
