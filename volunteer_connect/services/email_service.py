"""
Email Service
=============
Outbound mail over SMTP. Only password reset mail is sent today.
Failures are logged and reported as ``False``; callers never surface them.
"""

import html
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import aiosmtplib

from volunteer_connect.core.config import settings

logger = logging.getLogger("volunteer_connect.email")


class EmailService:
    """Async SMTP email sender."""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.start_tls = settings.SMTP_START_TLS
        self.timeout = settings.SMTP_TIMEOUT_SECONDS
        self.from_email = settings.SMTP_FROM_EMAIL or settings.SMTP_USER
        self.from_name = settings.SMTP_FROM_NAME
        self.frontend_url = settings.FRONTEND_URL.rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> bool:
        """Send an email. Returns True on success, False otherwise."""
        if not self.is_configured:
            logger.warning("[Email] SMTP not configured, skipping email to %s", to_email)
            return False

        message = MIMEMultipart("alternative")
        message["From"] = f"{self.from_name} <{self.from_email}>"
        message["To"] = to_email
        message["Subject"] = subject
        if text_content:
            message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user or None,
                password=self.smtp_password if self.smtp_user else None,
                use_tls=self.use_tls,
                start_tls=self.start_tls and not self.use_tls,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("[Email] Failed to send email to %s: %s", to_email, e)
            return False

        logger.info("[Email] Sent '%s' to %s", subject, to_email)
        return True

    async def send_password_reset_email(self, to_email: str, user_name: Optional[str], reset_token: str) -> bool:
        """Send the password reset link."""
        reset_link = f"{self.frontend_url}/reset-password?token={reset_token}"
        expiry_minutes = settings.RESET_TOKEN_EXPIRY_MINUTES
        display_name = user_name or "there"
        subject = f"Reset your password - {settings.APP_NAME}"

        html_content = f"""
        <html>
        <body style="font-family: sans-serif; line-height: 1.6; color: #333;">
            <h2>Password Reset Request</h2>
            <p>Hi {html.escape(display_name)},</p>
            <p>We received a request to reset your password. Use the link below to choose a new one:</p>
            <p><a href="{html.escape(reset_link, quote=True)}">Reset Password</a></p>
            <p>This link expires in {expiry_minutes} minutes. If you did not request a reset,
            ignore this email and your password will stay the same.</p>
        </body>
        </html>
        """
        text_content = (
            f"Hi {display_name},\n\n"
            f"Reset your password here: {reset_link}\n\n"
            f"This link expires in {expiry_minutes} minutes. "
            "If you did not request a reset, ignore this email."
        )
        return await self.send_email(to_email, subject, html_content, text_content)


email_service = EmailService()
