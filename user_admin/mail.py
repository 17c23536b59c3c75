"""Verification email delivery over SMTP."""

from __future__ import annotations

import logging
import smtplib
from concurrent.futures import Future, ThreadPoolExecutor
from email.message import EmailMessage

from .config import Settings

logger = logging.getLogger(__name__)


class SmtpVerificationMailer:
    """Send verification links without blocking the caller.

    Delivery runs on a small worker pool. Failures are logged and never
    propagate back to registration.
    """

    def __init__(self, settings: Settings, max_workers: int = 2) -> None:
        self._settings = settings
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="mailer")

    def verification_link(self, token: str) -> str:
        return f"{self._settings.frontend_url.rstrip('/')}/verify/{token}"

    def send_verification_email(self, to_address: str, token: str) -> None:
        """Queue a verification email and return immediately."""
        self.submit(to_address, token)

    def submit(self, to_address: str, token: str) -> Future:
        """Queue a verification email and return the pending delivery."""
        return self._executor.submit(self._deliver, to_address, token)

    def _deliver(self, to_address: str, token: str) -> None:
        link = self.verification_link(token)
        settings = self._settings
        if not settings.smtp_user or not settings.smtp_password:
            logger.warning("SMTP not configured. Verification link: %s", link)
            return

        try:
            # header assignment rejects CR/LF smuggled into the address
            message = EmailMessage()
            message["From"] = f"User Management <{settings.smtp_user}>"
            message["To"] = to_address
            message["Subject"] = "Verify your email"
            message.set_content(f"Please verify your email by clicking this link: {link}")

            with smtplib.SMTP(
                settings.smtp_host,
                settings.smtp_port,
                timeout=settings.smtp_timeout_seconds,
            ) as smtp:
                smtp.starttls()
                smtp.login(settings.smtp_user, settings.smtp_password)
                smtp.send_message(message)
        except Exception:
            logger.exception("failed to send verification email to %r", to_address)
            return
        logger.info("verification email sent to %s", to_address)

    def close(self) -> None:
        """Wait for queued deliveries and release the worker pool."""
        self._executor.shutdown(wait=True)
