"""Outgoing email over SMTP (password reset links)."""

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from studyhub.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


class EmailService:
    """Async SMTP email sender. Sending is skipped when no SMTP host is configured."""

    @property
    def is_configured(self) -> bool:
        return bool(settings.smtp_host)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
    ) -> bool:
        """
        Send an email.

        Returns True if the SMTP server accepted it, False if sending was
        skipped or failed. Failures are logged, never raised.
        """
        if not self.is_configured:
            logger.warning("Email service not configured, skipping email to %s", to_email)
            return False

        message = MIMEMultipart("alternative")
        message["From"] = settings.email_from
        message["To"] = to_email
        message["Subject"] = subject
        if text_content:
            message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_user,
                password=settings.smtp_password,
                start_tls=settings.smtp_use_tls,
            )
        except aiosmtplib.SMTPException:
            logger.exception("Failed to send email to %s: %s", to_email, subject)
            return False

        logger.info("Sent email to %s: %s", to_email, subject)
        return True

    async def send_password_reset_email(self, to_email: str, user_name: str, reset_token: str) -> bool:
        """Send a password reset link."""
        reset_link = f"{settings.frontend_url.rstrip('/')}/reset-password?token={reset_token}"
        minutes = settings.reset_token_expire_minutes
        subject = f"Reset your password - {settings.app_name}"
        html_content = f"""
        <p>Hi {user_name or 'there'},</p>
        <p>We received a request to reset your {settings.app_name} password.</p>
        <p><a href="{reset_link}">Reset your password</a></p>
        <p>This link expires in {minutes} minutes. If you didn't request a reset, you can ignore this email.</p>
        """
        text_content = (
            f"Hi {user_name or 'there'},\n\n"
            f"Reset your {settings.app_name} password: {reset_link}\n\n"
            f"This link expires in {minutes} minutes."
        )
        return await self.send_email(to_email, subject, html_content, text_content)


# Singleton instance
email_service = EmailService()
