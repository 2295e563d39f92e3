import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional

from loguru import logger

from clinic.settings import Settings, settings


class SmtpEmailSender:
    """Email sender delivering multipart messages over SMTP."""

    def __init__(self, config: Optional[Settings] = None) -> None:
        self._config = config or settings

    def build_message(
        self,
        to_email: str,
        to_name: str,
        subject: str,
        html_body: str,
        plain_text_body: str,
    ) -> MIMEMultipart:
        """Build a multipart/alternative message, plain text first."""
        message = MIMEMultipart("alternative")
        message["From"] = formataddr(
            (self._config.EMAIL_FROM_NAME, self._config.EMAIL_FROM_ADDRESS),
        )
        message["To"] = formataddr((to_name or "Patient", to_email))
        message["Subject"] = subject
        if plain_text_body:
            message.attach(MIMEText(plain_text_body, "plain", "utf-8"))
        if html_body:
            message.attach(MIMEText(html_body, "html", "utf-8"))
        return message

    async def send(
        self,
        to_email: str,
        to_name: str,
        subject: str,
        html_body: str,
        plain_text_body: str,
    ) -> bool:
        """Send one email, returning False on any transport error."""
        message = self.build_message(
            to_email,
            to_name,
            subject,
            html_body,
            plain_text_body,
        )
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP error sending '{subject}' to {to_email}: {e}")
            return False

        logger.info(f"Email sent to {to_email} with subject: {subject}")
        return True

    def _deliver(self, message: MIMEMultipart) -> None:
        config = self._config
        with smtplib.SMTP(
            config.SMTP_HOST,
            config.SMTP_PORT,
            timeout=config.SMTP_TIMEOUT_SECONDS,
        ) as server:
            if config.SMTP_USE_TLS:
                server.starttls()
            if config.SMTP_USERNAME:
                server.login(config.SMTP_USERNAME, config.SMTP_PASSWORD)
            server.send_message(message)
