"""Console sender for development debugging."""

from __future__ import annotations

import logging

from .records import DeliveryChannel, DeliveryRecord, OtpMessage
from .sender import IMessageSender

logger = logging.getLogger(__name__)


class ConsoleSender(IMessageSender):
    """
    Development adapter that writes codes to the log instead of sending them.

    Used when SMTP or an SMS provider is not configured, and as the email
    fallback when the SMTP server rejects a message.
    """

    def __init__(self, output_to_stdout: bool = False):
        self.output_to_stdout = output_to_stdout

    async def send(
        self,
        recipient: str,
        message: OtpMessage,
        channel: DeliveryChannel,
    ) -> DeliveryRecord:
        output = [
            "═" * 50,
            f"{channel.value.upper()} CODE (console mode)",
            f"To:      {recipient}",
            f"Subject: {message.subject or '(No Subject)'}",
            f"Body:    {message.body_text}",
            "═" * 50,
        ]
        full_output = "\n".join(output)
        logger.info(full_output)

        if self.output_to_stdout:
            print(full_output)

        return DeliveryRecord.sent(recipient, channel, provider="console")
