"""Request and response bodies for the two-factor routes.

Field names are camelCase on the wire.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SetupRequest(_CamelModel):
    method: str


class VerifySetupRequest(_CamelModel):
    code: str
    method: str


class SendLoginOtpRequest(_CamelModel):
    email: str


class VerifyLoginRequest(_CamelModel):
    email: str
    code: str
    is_backup_code: bool = False


class PasswordConfirmation(_CamelModel):
    password: str


class SetupResponse(_CamelModel):
    message: str
    method: str
    secret: str | None = None
    qr_code_url: str | None = None
    manual_entry_key: str | None = None
    destination: str | None = None


class BackupCodesResponse(_CamelModel):
    message: str
    backup_codes: list[str]


class ChallengeResponse(_CamelModel):
    message: str
    method: str
    destination: str | None = None


class VerifyLoginResponse(_CamelModel):
    success: bool = True
    session_token: str
    message: str = "Two-factor authentication verified"


class StatusResponse(_CamelModel):
    enabled: bool
    method: str
    pending_setup: bool
    backup_codes_remaining: int


class MessageResponse(_CamelModel):
    message: str


__all__: list[str] = [
    "SetupRequest",
    "VerifySetupRequest",
    "SendLoginOtpRequest",
    "VerifyLoginRequest",
    "PasswordConfirmation",
    "SetupResponse",
    "BackupCodesResponse",
    "ChallengeResponse",
    "VerifyLoginResponse",
    "StatusResponse",
    "MessageResponse",
]
