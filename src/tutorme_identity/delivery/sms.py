"""SMS implementations: generic HTTP API (httpx) and Twilio (optional)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .records import DeliveryChannel, DeliveryRecord, OtpMessage
from .sender import IMessageSender

logger = logging.getLogger(__name__)


def format_phone_number(phone: str) -> str:
    """Ensure the number carries a leading ``+``."""
    phone = phone.strip()
    return phone if phone.startswith("+") else f"+{phone}"


class HttpApiSmsSender(IMessageSender):
    """
    Posts codes to a custom SMS gateway as JSON.

    The body is ``{"to", "message", "code", **extra_data}`` and the request
    carries ``Authorization: Bearer <api_key>`` plus any extra headers.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        extra_headers: dict[str, str] | None = None,
        extra_data: dict[str, Any] | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.extra_headers = extra_headers or {}
        self.extra_data = extra_data or {}
        self.timeout = timeout
        self._transport = transport

    async def send(
        self,
        recipient: str,
        message: OtpMessage,
        channel: DeliveryChannel,
    ) -> DeliveryRecord:
        if channel != DeliveryChannel.SMS:
            raise ValueError(f"HttpApiSmsSender does not support {channel}")

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            **self.extra_headers,
        }
        payload = {"to": recipient, "message": message.body_text, "code": message.code, **self.extra_data}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error("Failed to send SMS to %s: %s", recipient, e)
                return DeliveryRecord.failed(recipient, channel, provider="api", error=str(e))

        try:
            result = response.json()
        except ValueError:
            result = None
        message_id = None
        if isinstance(result, dict):
            message_id = result.get("messageId") or result.get("id")

        logger.info("SMS sent via API to %s", recipient)
        return DeliveryRecord.sent(
            recipient, channel, provider="api", provider_id=str(message_id) if message_id else None
        )


class TwilioSmsSender(IMessageSender):
    """
    Twilio SMS implementation.

    Requires twilio library:
    pip install 'tutorme-identity[twilio]'
    """

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number

    async def send(
        self,
        recipient: str,
        message: OtpMessage,
        channel: DeliveryChannel,
    ) -> DeliveryRecord:
        if channel != DeliveryChannel.SMS:
            raise ValueError(f"TwilioSmsSender does not support {channel}")

        # Lazy import of twilio
        try:
            from twilio.base.exceptions import TwilioRestException
            from twilio.rest import Client as TwilioClient
        except ImportError as e:
            raise ImportError(
                "twilio is required for TwilioSmsSender. "
                "Install with: pip install 'tutorme-identity[twilio]'"
            ) from e

        client = TwilioClient(self.account_sid, self.auth_token)
        try:
            sent = await asyncio.to_thread(
                client.messages.create,
                to=recipient,
                from_=self.from_number,
                body=message.body_text,
            )
        except TwilioRestException as e:
            logger.error("Twilio API error: %s", e)
            return DeliveryRecord.failed(recipient, channel, provider="twilio", error=str(e))

        logger.info("SMS sent via Twilio to %s (SID: %s)", recipient, sent.sid)
        return DeliveryRecord.sent(recipient, channel, provider="twilio", provider_id=sent.sid)
