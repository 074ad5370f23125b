"""Two-factor HTTP routes.

Mounted under ``/api/auth/two-factor`` by default:

- ``POST /setup``           start enrolling a method (authenticated)
- ``POST /verify-setup``    confirm the first code, returns backup codes
- ``POST /send-otp``        resend the email/SMS code (authenticated)
- ``POST /send-login-otp``  issue the login challenge for an email
- ``POST /verify-login``    verify a login code, returns a pending-session token
- ``POST /disable``         disable 2FA after password confirmation
- ``POST /backup-codes``    regenerate backup codes after password confirmation
- ``GET  /status``          current 2FA state
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends

from ...models import TwoFactorMethod
from .dependencies import get_current_account_id
from .schemas import (
    BackupCodesResponse,
    ChallengeResponse,
    MessageResponse,
    PasswordConfirmation,
    SendLoginOtpRequest,
    SetupRequest,
    SetupResponse,
    StatusResponse,
    VerifyLoginRequest,
    VerifyLoginResponse,
    VerifySetupRequest,
)

if TYPE_CHECKING:
    from ...service import LoginChallenge, TwoFactorService

DEFAULT_PREFIX = "/api/auth/two-factor"


def _challenge_message(method: TwoFactorMethod) -> str:
    match method:
        case TwoFactorMethod.EMAIL:
            return "Verification code sent to your email"
        case TwoFactorMethod.SMS:
            return "Verification code sent to your phone"
        case _:
            return "Enter the code from your authenticator app"


def _challenge_response(challenge: LoginChallenge) -> ChallengeResponse:
    return ChallengeResponse(
        message=_challenge_message(challenge.method),
        method=challenge.method.value,
        destination=challenge.masked_destination,
    )


def create_two_factor_router(
    service: TwoFactorService,
    *,
    account_id_dependency: Callable[..., str] = get_current_account_id,
    prefix: str = DEFAULT_PREFIX,
) -> APIRouter:
    """Build the router bound to ``service``.

    Errors raised by the service are rendered by the handler installed
    with ``register_exception_handlers``.

    Args:
        service: Two-factor service the routes delegate to.
        account_id_dependency: Resolves the authenticated account id.
        prefix: Mount point.
    """
    router = APIRouter(prefix=prefix, tags=["two-factor"])
    current_account = Depends(account_id_dependency)

    @router.post("/setup", response_model=SetupResponse, response_model_exclude_none=True)
    async def setup(
        body: SetupRequest, account_id: str = current_account
    ) -> SetupResponse:
        challenge = await service.begin_setup(account_id, body.method)
        if challenge.totp is not None:
            return SetupResponse(
                message="Scan the QR code with your authenticator app",
                method=challenge.method.value,
                secret=challenge.totp.secret,
                qr_code_url=challenge.totp.qr_code_data_url,
                manual_entry_key=challenge.totp.manual_entry_key,
            )
        return SetupResponse(
            message=_challenge_message(challenge.method),
            method=challenge.method.value,
            destination=challenge.masked_destination,
        )

    @router.post("/verify-setup", response_model=BackupCodesResponse)
    async def verify_setup(
        body: VerifySetupRequest, account_id: str = current_account
    ) -> BackupCodesResponse:
        codes = await service.confirm_setup(account_id, body.method, body.code)
        return BackupCodesResponse(
            message="Two-factor authentication enabled successfully",
            backup_codes=codes,
        )

    @router.post("/send-otp", response_model=ChallengeResponse)
    async def send_otp(account_id: str = current_account) -> ChallengeResponse:
        return _challenge_response(await service.resend_otp(account_id))

    @router.post("/send-login-otp", response_model=ChallengeResponse)
    async def send_login_otp(body: SendLoginOtpRequest) -> ChallengeResponse:
        return _challenge_response(await service.issue_login_challenge(body.email))

    @router.post("/verify-login", response_model=VerifyLoginResponse)
    async def verify_login(body: VerifyLoginRequest) -> VerifyLoginResponse:
        token = await service.verify_login_challenge(
            body.email, body.code, is_backup_code=body.is_backup_code
        )
        return VerifyLoginResponse(session_token=token)

    @router.post("/disable", response_model=MessageResponse)
    async def disable(
        body: PasswordConfirmation, account_id: str = current_account
    ) -> MessageResponse:
        await service.disable(account_id, body.password)
        return MessageResponse(message="Two-factor authentication disabled successfully")

    @router.post("/backup-codes", response_model=BackupCodesResponse)
    async def regenerate_backup_codes(
        body: PasswordConfirmation, account_id: str = current_account
    ) -> BackupCodesResponse:
        codes = await service.regenerate_backup_codes(account_id, body.password)
        return BackupCodesResponse(message="Backup codes regenerated", backup_codes=codes)

    @router.get("/status", response_model=StatusResponse)
    async def status(account_id: str = current_account) -> StatusResponse:
        state = await service.get_status(account_id)
        return StatusResponse(
            enabled=state.enabled,
            method=state.method.value,
            pending_setup=state.pending_setup,
            backup_codes_remaining=state.backup_codes_remaining,
        )

    return router


__all__: list[str] = ["create_two_factor_router", "DEFAULT_PREFIX"]
