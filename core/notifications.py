# core/notifications.py
"""
Outbound email for the authentication flow.

Two backends:
- console: logs the message (local development and tests)
- smtp: delivers through the configured SMTP relay

Delivery is best effort. Callers in the business layer catch failures and
never roll back the state change that triggered the email.
"""
import logging
import smtplib
from email.message import EmailMessage
from functools import lru_cache

from fastapi.concurrency import run_in_threadpool

from config import settings

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when a message could not be handed to the mail backend."""
    pass


class Notifier:
    """Composes the account emails and hands them to a delivery backend."""

    def __init__(self, backend: str = "console", sender: str = "no-reply@example.com",
                 frontend_url: str = "http://localhost:3000"):
        if backend not in ("console", "smtp"):
            raise ValueError(f"Unknown mail backend: {backend}")
        self.backend = backend
        self.sender = sender
        self.frontend_url = frontend_url.rstrip("/")

    async def send_verification_email(self, to: str, username: str, token: str) -> None:
        link = f"{self.frontend_url}/verify-email?token={token}"
        await self.send(
            to,
            "Verify your Council Management System account",
            f"Hello {username},\n\n"
            f"Please confirm your email address by opening the link below:\n{link}\n\n"
            f"The link expires in {settings.VERIFICATION_TOKEN_EXPIRE_HOURS} hours.",
        )

    async def send_password_reset_email(self, to: str, username: str, token: str) -> None:
        link = f"{self.frontend_url}/reset-password?token={token}"
        await self.send(
            to,
            "Reset your Council Management System password",
            f"Hello {username},\n\n"
            f"A password reset was requested for your account:\n{link}\n\n"
            f"The link expires in {settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES} minutes. "
            "If you did not request it, ignore this email.",
        )

    async def send_welcome_email(self, to: str, username: str, role: str) -> None:
        await self.send(
            to,
            "Welcome to the Council Management System",
            f"Hello {username},\n\n"
            f"Your email has been verified. You have been registered with the {role} role.\n"
            f"Sign in at {self.frontend_url}/login",
        )

    async def send(self, to: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        if self.backend == "console":
            logger.info("Email (console backend) to=%s subject=%r\n%s", to, subject, body)
            return

        try:
            await run_in_threadpool(_deliver_smtp, message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"Failed to send email to {to}: {exc}") from exc


def _deliver_smtp(message: EmailMessage) -> None:
    if not settings.SMTP_HOST:
        raise NotificationError("SMTP_HOST is not configured")
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SEC) as smtp:
        if settings.SMTP_USE_TLS:
            smtp.starttls()
        if settings.SMTP_USER:
            smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD or "")
        smtp.send_message(message)


@lru_cache
def get_notifier() -> Notifier:
    """FastAPI dependency; override in tests to capture outgoing mail."""
    return Notifier(
        backend=settings.MAIL_BACKEND,
        sender=settings.MAIL_FROM,
        frontend_url=settings.FRONTEND_URL,
    )
