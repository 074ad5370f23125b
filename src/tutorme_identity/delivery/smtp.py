"""SMTP email implementation."""

from __future__ import annotations

import email.message
import email.policy
import logging

import aiosmtplib

from .records import DeliveryChannel, DeliveryRecord, OtpMessage
from .sender import IMessageSender

logger = logging.getLogger(__name__)


class SmtpEmailSender(IMessageSender):
    """
    Async SMTP email sender using aiosmtplib.

    Port 465 uses implicit TLS; any other port upgrades with STARTTLS.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        from_email: str = "noreply@tutorme.com",
        from_name: str = "TutorMe",
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout

    def _build(self, recipient: str, content: OtpMessage) -> email.message.EmailMessage:
        message = email.message.EmailMessage(policy=email.policy.default)
        message["To"] = recipient
        message["From"] = f'"{self.from_name}" <{self.from_email}>'
        if content.subject:
            message["Subject"] = content.subject

        if content.body_html:
            message.set_content(content.body_text, subtype="plain", charset="utf-8")
            message.add_alternative(content.body_html, subtype="html", charset="utf-8")
        else:
            message.set_content(content.body_text, charset="utf-8")
        return message

    async def send(
        self,
        recipient: str,
        message: OtpMessage,
        channel: DeliveryChannel,
    ) -> DeliveryRecord:
        if channel != DeliveryChannel.EMAIL:
            raise ValueError(f"SmtpEmailSender does not support {channel}")

        try:
            await aiosmtplib.send(
                self._build(recipient, message),
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                use_tls=self.port == 465,
                start_tls=self.port != 465,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", recipient, e)
            return DeliveryRecord.failed(recipient, channel, provider="smtp", error=str(e))

        logger.info("Email sent to %s via SMTP", recipient)
        return DeliveryRecord.sent(recipient, channel, provider="smtp")
