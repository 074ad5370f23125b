"""Delivery hook wiring email and SMS senders to the 2FA flow."""

from __future__ import annotations

import logging

from ..ports import IOtpDeliveryHook
from .console import ConsoleSender
from .messages import render_email_otp, render_sms_otp
from .records import DeliveryChannel, DeliveryRecord
from .sender import IMessageSender
from .sms import format_phone_number

logger = logging.getLogger(__name__)


class OtpDeliveryHook(IOtpDeliveryHook):
    """Renders code messages and hands them to the configured senders.

    A failed email is written to the console sender instead, so a code is
    never silently lost in development. SMS failures are only reported.

    Example:
        ```python
        hook = OtpDeliveryHook(
            email_sender=SmtpEmailSender(host="smtp.example.com", username=..., password=...),
            sms_sender=HttpApiSmsSender(api_url=..., api_key=...),
        )
        record = await hook.send_email_otp("alice@example.com", "123456")
        ```
    """

    def __init__(
        self,
        *,
        email_sender: IMessageSender | None = None,
        sms_sender: IMessageSender | None = None,
        fallback_sender: IMessageSender | None = None,
        brand: str = "TutorMe",
        ttl_seconds: int = 600,
    ) -> None:
        self.fallback_sender = fallback_sender or ConsoleSender()
        self.email_sender = email_sender or self.fallback_sender
        self.sms_sender = sms_sender or self.fallback_sender
        self.brand = brand
        self.ttl_seconds = ttl_seconds

    async def send_email_otp(self, email: str, code: str) -> DeliveryRecord:
        message = render_email_otp(code, brand=self.brand, ttl_seconds=self.ttl_seconds)
        record = await self.email_sender.send(email, message, DeliveryChannel.EMAIL)
        if record.ok:
            logger.info("Email OTP sent via %s", record.provider)
            return record

        logger.error("Failed to send email OTP: %s", record.error)
        if self.email_sender is self.fallback_sender:
            return record
        await self.fallback_sender.send(email, message, DeliveryChannel.EMAIL)
        return record

    async def send_sms_otp(self, phone: str, code: str) -> DeliveryRecord:
        message = render_sms_otp(code, brand=self.brand, ttl_seconds=self.ttl_seconds)
        record = await self.sms_sender.send(
            format_phone_number(phone), message, DeliveryChannel.SMS
        )
        if record.ok:
            logger.info("SMS OTP sent via %s", record.provider)
        else:
            logger.error("Failed to send SMS OTP: %s", record.error)
        return record
