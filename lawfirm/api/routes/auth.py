"""
api/routes/auth.py
------------------
Authentication endpoints (all under /api/auth, outside the route guard).

POST /register             Create an account (+ organization), email verification link.
POST /login                Credentials (+2FA code) → session token, also set as cookie.
GET  /session              Current session claims.
POST /session              Update trigger: merge a patch into the session token.
POST /logout               Clear the session cookie.
GET  /verify-email         Consume an email verification token.
POST /forgot-password      Email a password reset link (silent for unknown emails).
POST /reset-password       Consume a reset token and set a new password.
POST /two-factor/setup     Start 2FA enrollment (secret, QR code, backup codes).
POST /two-factor/enable    Confirm enrollment with a TOTP code.
POST /two-factor/disable   Turn 2FA off with a TOTP or backup code.
"""

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from lawfirm.core.config import settings
from lawfirm.core.logging import get_logger
from lawfirm.core.security import decode_session_token
from lawfirm.db.session import get_db
from lawfirm.dependencies import get_current_account, get_session_claims, get_session_token
from lawfirm.models.account import Account
from lawfirm.schemas.auth import (
    AccountRead,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    SessionRead,
    SessionUpdateRequest,
    SessionUpdateResponse,
    TokenResponse,
    TwoFactorCodeRequest,
    TwoFactorSetupResponse,
)
from lawfirm.services import session_service, two_factor
from lawfirm.services.auth_service import AuthService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    summary="Register a new account",
)
async def register(
    body: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RegisterResponse:
    """
    Create a PENDING_VERIFICATION account. When organizationName is given
    the account also becomes OWNER of a new organization.
    """
    await AuthService.register(db, body)
    return RegisterResponse(
        message="Account created successfully. Please check your email to verify your account."
    )


@router.post("/login", response_model=TokenResponse, summary="Login and receive a session token")
async def login(
    body: LoginRequest,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TokenResponse:
    """
    A 2FA-enabled account without twoFactorCode gets 401 {"error": "2FA_REQUIRED"};
    resubmit with the code.
    """
    account = await AuthService.authenticate(db, body.email, body.password, body.two_factor_code)
    token = await session_service.issue_for_account(db, account)
    session_service.set_session_cookie(response, token)

    return TokenResponse(
        access_token=token,
        expires_in=settings.session_max_age_seconds,
        user=AccountRead.model_validate(account),
    )


@router.get("/session", response_model=SessionRead, summary="Current session")
async def get_session(
    claims: Annotated[Dict[str, Any], Depends(get_session_claims)],
) -> SessionRead:
    return SessionRead.from_claims(claims)


@router.post("/session", response_model=SessionUpdateResponse, summary="Update the session token")
async def update_session(
    token: Annotated[str, Depends(get_session_token)],
    claims: Annotated[Dict[str, Any], Depends(get_session_claims)],
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
    body: Optional[SessionUpdateRequest] = None,
) -> SessionUpdateResponse:
    """
    Re-sign the token with new firstName/lastName. {"organizations": true}
    reloads the memberships from the database. Identity and lifetime claims
    never change.
    """
    update = body or SessionUpdateRequest()
    updated = await session_service.apply_update(db, token, claims["sub"], update)
    session_service.set_session_cookie(response, updated)
    return SessionUpdateResponse(
        access_token=updated,
        session=SessionRead.from_claims(decode_session_token(updated)),
    )


@router.post("/logout", response_model=MessageResponse, summary="Clear the session cookie")
async def logout(response: Response) -> MessageResponse:
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return MessageResponse(message="Signed out")


@router.get("/verify-email", response_model=MessageResponse, summary="Verify an email address")
async def verify_email(
    token: Annotated[str, Query(min_length=1)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    await AuthService.verify_email(db, token)
    return MessageResponse(message="Email verified")


@router.post("/forgot-password", response_model=MessageResponse, summary="Request a password reset")
async def forgot_password(
    body: ForgotPasswordRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    await AuthService.request_password_reset(db, body.email)
    return MessageResponse(message="If an account exists for this email, a reset link has been sent.")


@router.post("/reset-password", response_model=MessageResponse, summary="Reset a password")
async def reset_password(
    body: ResetPasswordRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    await AuthService.reset_password(db, body.token, body.password)
    return MessageResponse(message="Password updated")


@router.post("/two-factor/setup", response_model=TwoFactorSetupResponse, summary="Start 2FA enrollment")
async def two_factor_setup(
    account: Annotated[Account, Depends(get_current_account)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TwoFactorSetupResponse:
    """Backup codes are only ever shown here, in plain text."""
    setup = await two_factor.begin_setup(db, account)
    return TwoFactorSetupResponse(
        secret=setup.secret,
        provisioning_uri=setup.provisioning_uri,
        qr_code_url=setup.qr_code_url,
        backup_codes=setup.backup_codes,
    )


@router.post("/two-factor/enable", response_model=MessageResponse, summary="Enable 2FA")
async def two_factor_enable(
    body: TwoFactorCodeRequest,
    account: Annotated[Account, Depends(get_current_account)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    await two_factor.enable(db, account, body.code)
    return MessageResponse(message="Two-factor authentication enabled")


@router.post("/two-factor/disable", response_model=MessageResponse, summary="Disable 2FA")
async def two_factor_disable(
    body: TwoFactorCodeRequest,
    account: Annotated[Account, Depends(get_current_account)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MessageResponse:
    await two_factor.disable(db, account, body.code)
    return MessageResponse(message="Two-factor authentication disabled")
