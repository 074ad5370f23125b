"""Message sender port."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .records import DeliveryChannel, DeliveryRecord, OtpMessage


@runtime_checkable
class IMessageSender(Protocol):
    """
    Transport-agnostic port for sending a rendered message on one channel.

    Adapters must explicitly declare: class SmtpEmailSender(IMessageSender):
    """

    async def send(
        self,
        recipient: str,
        message: OtpMessage,
        channel: DeliveryChannel,
    ) -> DeliveryRecord:
        """Send the message and return a delivery record."""
        ...
