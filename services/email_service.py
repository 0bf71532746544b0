"""
Email Service

Outbound account notifications over SMTP (password changed, email
verification). Sending is best-effort: failures are logged and reported
as False, never raised, so a mail outage cannot fail the request that
triggered it.
"""

import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
from core.config import settings
import logging

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails"""

    def __init__(self):
        self.smtp_server = settings.SMTP_SERVER
        self.smtp_port = settings.SMTP_PORT
        self.smtp_username = settings.EMAIL_USER
        self.smtp_password = settings.EMAIL_PASSWORD
        self.from_email = settings.EMAIL_USER or "noreply@localhost"
        self.from_name = settings.FROM_NAME
        self.enabled = settings.EMAIL_ENABLED

    def send_email(
        self,
        to_email: str,
        subject: str,
        text_content: str,
        html_content: Optional[str] = None
    ) -> bool:
        """
        Send an email.

        Returns True if sent successfully, False otherwise.
        """
        if not self.enabled:
            logger.info(f"Email disabled, would send to {to_email}: {subject}")
            return False

        if not (self.smtp_username and self.smtp_password):
            logger.warning(f"Email credentials missing, not sending to {to_email}: {subject}")
            return False

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{self.from_name} <{self.from_email}>"
            msg["To"] = to_email

            msg.attach(MIMEText(text_content, "plain"))
            if html_content:
                msg.attach(MIMEText(html_content, "html"))

            with smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=10) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)

            logger.info(f"Email sent to {to_email}: {subject}")
            return True

        except Exception as e:
            logger.error(f"Error sending email to {to_email}: {str(e)}")
            return False

    def send_password_changed(self, to_email: str, full_name: str) -> bool:
        text_content = (
            f"Hello {full_name},\n\n"
            "Your password has been successfully changed. "
            "If this wasn't you, please contact us immediately.\n\n"
            f"Best regards,\n{self.from_name}"
        )
        return self.send_email(to_email, "Password Change Notification", text_content)

    def send_verification(self, to_email: str, verification_link: str) -> bool:
        text_content = f"Please verify your email by clicking the following link: {verification_link}"
        html_content = f'<a href="{verification_link}">Verify your email</a>'
        return self.send_email(to_email, "Email Verification", text_content, html_content)


# Singleton instance
email_service = EmailService()
