"""Delivery of one-time codes by email and SMS."""

from .console import ConsoleSender
from .hook import OtpDeliveryHook
from .messages import render_email_otp, render_sms_otp
from .records import DeliveryChannel, DeliveryRecord, DeliveryStatus, OtpMessage
from .sender import IMessageSender
from .smtp import SmtpEmailSender
from .sms import HttpApiSmsSender, TwilioSmsSender, format_phone_number

__all__: list[str] = [
    "IMessageSender",
    "OtpDeliveryHook",
    "ConsoleSender",
    "SmtpEmailSender",
    "HttpApiSmsSender",
    "TwilioSmsSender",
    "format_phone_number",
    "render_email_otp",
    "render_sms_otp",
    "DeliveryChannel",
    "DeliveryRecord",
    "DeliveryStatus",
    "OtpMessage",
]
