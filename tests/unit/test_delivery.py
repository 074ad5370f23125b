"""Tests for code delivery: messages, senders and the delivery hook."""

from __future__ import annotations

import json
import sys
import types
from unittest.mock import AsyncMock, MagicMock, patch

import aiosmtplib
import httpx
import pytest

from tutorme_identity.delivery import (
    ConsoleSender,
    DeliveryChannel,
    DeliveryRecord,
    HttpApiSmsSender,
    OtpDeliveryHook,
    SmtpEmailSender,
    TwilioSmsSender,
    format_phone_number,
    render_email_otp,
    render_sms_otp,
)
from tutorme_identity.delivery.messages import EMAIL_SUBJECT


class TestMessages:
    def test_email_message(self) -> None:
        message = render_email_otp("123456", brand="TutorMe", ttl_seconds=600)

        assert message.subject == EMAIL_SUBJECT
        assert "Your verification code is: 123456" in message.body_text
        assert "expire in 10 minutes" in message.body_text
        assert message.body_html is not None
        assert "123456" in message.body_html
        assert message.code == "123456"

    def test_sms_message(self) -> None:
        message = render_sms_otp("654321")

        assert message.body_text == (
            "Your TutorMe verification code is: 654321. "
            "This code expires in 10 minutes."
        )
        assert message.subject is None


class TestFormatPhoneNumber:
    @pytest.mark.parametrize(
        ("phone", "expected"),
        [("15551234567", "+15551234567"), ("+15551234567", "+15551234567")],
    )
    def test_leading_plus(self, phone: str, expected: str) -> None:
        assert format_phone_number(phone) == expected


class TestConsoleSender:
    @pytest.mark.asyncio
    async def test_logs_and_reports_sent(self, caplog: pytest.LogCaptureFixture) -> None:
        sender = ConsoleSender()

        with caplog.at_level("INFO"):
            record = await sender.send(
                "alice@example.com", render_email_otp("123456"), DeliveryChannel.EMAIL
            )

        assert record.ok
        assert record.provider == "console"
        assert "123456" in caplog.text


class TestSmtpEmailSender:
    @pytest.mark.asyncio
    async def test_send_uses_starttls_on_587(self) -> None:
        sender = SmtpEmailSender(host="smtp.example.com", username="u", password="p")

        with patch(
            "tutorme_identity.delivery.smtp.aiosmtplib.send", new_callable=AsyncMock
        ) as send:
            record = await sender.send(
                "alice@example.com", render_email_otp("123456"), DeliveryChannel.EMAIL
            )

        assert record.ok
        assert record.provider == "smtp"
        message = send.await_args.args[0]
        assert message["To"] == "alice@example.com"
        assert message["Subject"] == EMAIL_SUBJECT
        assert send.await_args.kwargs["start_tls"] is True
        assert send.await_args.kwargs["use_tls"] is False

    @pytest.mark.asyncio
    async def test_send_uses_implicit_tls_on_465(self) -> None:
        sender = SmtpEmailSender(host="smtp.example.com", port=465)

        with patch(
            "tutorme_identity.delivery.smtp.aiosmtplib.send", new_callable=AsyncMock
        ) as send:
            await sender.send(
                "alice@example.com", render_email_otp("123456"), DeliveryChannel.EMAIL
            )

        assert send.await_args.kwargs["use_tls"] is True
        assert send.await_args.kwargs["start_tls"] is False

    @pytest.mark.asyncio
    async def test_failure_returns_failed_record(self) -> None:
        sender = SmtpEmailSender(host="smtp.example.com")

        with patch(
            "tutorme_identity.delivery.smtp.aiosmtplib.send",
            new_callable=AsyncMock,
            side_effect=aiosmtplib.SMTPException("relay denied"),
        ):
            record = await sender.send(
                "alice@example.com", render_email_otp("123456"), DeliveryChannel.EMAIL
            )

        assert not record.ok
        assert "relay denied" in (record.error or "")

    @pytest.mark.asyncio
    async def test_rejects_sms_channel(self) -> None:
        sender = SmtpEmailSender(host="smtp.example.com")
        with pytest.raises(ValueError):
            await sender.send("+1555", render_sms_otp("123456"), DeliveryChannel.SMS)


class TestHttpApiSmsSender:
    @pytest.mark.asyncio
    async def test_posts_json_with_bearer_key(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"messageId": "msg-42"})

        sender = HttpApiSmsSender(
            api_url="https://sms.example.com/send",
            api_key="key-1",
            extra_headers={"X-Tenant": "tutorme"},
            extra_data={"sender": "TUTORME"},
            transport=httpx.MockTransport(handler),
        )

        record = await sender.send(
            "+15551234567", render_sms_otp("123456"), DeliveryChannel.SMS
        )

        assert record.ok
        assert record.provider_id == "msg-42"
        request = requests[0]
        assert request.headers["Authorization"] == "Bearer key-1"
        assert request.headers["X-Tenant"] == "tutorme"
        body = json.loads(request.content)
        assert body["to"] == "+15551234567"
        assert body["code"] == "123456"
        assert body["sender"] == "TUTORME"

    @pytest.mark.asyncio
    async def test_http_error_returns_failed_record(self) -> None:
        sender = HttpApiSmsSender(
            api_url="https://sms.example.com/send",
            api_key="key-1",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )

        record = await sender.send("+1555", render_sms_otp("123456"), DeliveryChannel.SMS)

        assert not record.ok
        assert record.provider == "api"

    @pytest.mark.asyncio
    async def test_non_json_response_still_sent(self) -> None:
        sender = HttpApiSmsSender(
            api_url="https://sms.example.com/send",
            api_key="key-1",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="OK")),
        )

        record = await sender.send("+1555", render_sms_otp("123456"), DeliveryChannel.SMS)

        assert record.ok
        assert record.provider_id is None


class TestTwilioSmsSender:
    @pytest.mark.asyncio
    async def test_sends_through_client(self) -> None:
        client = MagicMock()
        client.messages.create.return_value = MagicMock(sid="SM123")
        rest = types.ModuleType("twilio.rest")
        rest.Client = MagicMock(return_value=client)
        exceptions = types.ModuleType("twilio.base.exceptions")
        exceptions.TwilioRestException = type("TwilioRestException", (Exception,), {})
        modules = {
            "twilio": types.ModuleType("twilio"),
            "twilio.rest": rest,
            "twilio.base": types.ModuleType("twilio.base"),
            "twilio.base.exceptions": exceptions,
        }

        with patch.dict(sys.modules, modules):
            sender = TwilioSmsSender("AC1", "token", "+15550000000")
            record = await sender.send(
                "+15551234567", render_sms_otp("123456"), DeliveryChannel.SMS
            )

        assert record.ok
        assert record.provider_id == "SM123"
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["to"] == "+15551234567"
        assert kwargs["from_"] == "+15550000000"


class TestOtpDeliveryHook:
    @staticmethod
    def _sender(ok: bool) -> AsyncMock:
        sender = AsyncMock()

        async def send(recipient, message, channel):
            if ok:
                return DeliveryRecord.sent(recipient, channel, provider="mock")
            return DeliveryRecord.failed(recipient, channel, provider="mock", error="down")

        sender.send.side_effect = send
        return sender

    @pytest.mark.asyncio
    async def test_email_sent(self) -> None:
        email_sender = self._sender(ok=True)
        hook = OtpDeliveryHook(email_sender=email_sender)

        record = await hook.send_email_otp("alice@example.com", "123456")

        assert record.ok
        recipient, message, channel = email_sender.send.await_args.args
        assert recipient == "alice@example.com"
        assert message.code == "123456"
        assert channel is DeliveryChannel.EMAIL

    @pytest.mark.asyncio
    async def test_email_failure_falls_back_to_console(self) -> None:
        fallback = self._sender(ok=True)
        hook = OtpDeliveryHook(email_sender=self._sender(ok=False), fallback_sender=fallback)

        record = await hook.send_email_otp("alice@example.com", "123456")

        assert not record.ok
        fallback.send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sms_number_formatted(self) -> None:
        sms_sender = self._sender(ok=True)
        hook = OtpDeliveryHook(sms_sender=sms_sender)

        await hook.send_sms_otp("15551234567", "123456")

        assert sms_sender.send.await_args.args[0] == "+15551234567"

    @pytest.mark.asyncio
    async def test_sms_failure_not_retried(self) -> None:
        fallback = self._sender(ok=True)
        hook = OtpDeliveryHook(sms_sender=self._sender(ok=False), fallback_sender=fallback)

        record = await hook.send_sms_otp("15551234567", "123456")

        assert not record.ok
        fallback.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_defaults_to_console(self) -> None:
        hook = OtpDeliveryHook()
        record = await hook.send_email_otp("alice@example.com", "123456")
        assert record.provider == "console"
