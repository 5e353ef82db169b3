"""
auth.py

Authentication API.

Covers the whole credential flow of the platform: sign-up, login (with
the optional second factor), token refresh, logout, password reset,
email verification and login through external identity providers.

Key features:
- registration with email verification
- login with device-bound sessions, two-step when 2FA is enabled
- refresh token rotation bound to the server-side session
- logout of the current session
- password reset / email verification through single-use links
- OAuth login (Google)

Design principles:
- access token travels in the Authorization header (Bearer)
- refresh token is posted in the body and bound to a session
- login and refresh failures never reveal their exact cause
- reset and verification requests always answer with success

Related files:
- gnl_auth.services.auth   : credential service
- gnl_auth.core.deps       : bearer authentication
- gnl_auth.schemas.auth    : request / response models

"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from gnl_auth.core.api_response import success_payload
from gnl_auth.core.deps import (
    RequestIdentity,
    get_current_user,
    get_db,
    get_identity,
    get_mailer,
    get_oauth_providers,
)
from gnl_auth.core.errors import (
    InvalidRefreshToken,
    SessionRevoked,
    TokenError,
    Unauthorized,
    UserDisabled,
)
from gnl_auth.core.observability import client_ip, device_fingerprint, log_business_event
from gnl_auth.models.user import User
from gnl_auth.schemas.auth import (
    EmailRequest,
    LoginRequest,
    LogoutRequest,
    PasswordResetConfirmRequest,
    RefreshRequest,
    RegisterRequest,
    TokenOut,
    TokenRequest,
    TwoFactorLoginRequest,
    UserOut,
)
from gnl_auth.services import auth as auth_service
from gnl_auth.services.auth import AuthResult
from gnl_auth.services.mail import MailDispatcher
from gnl_auth.services.oauth import ProviderRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

RESET_SENT_MESSAGE = "If the email exists, a password reset link has been sent"
VERIFICATION_SENT_MESSAGE = "If the account exists and is not verified, a verification email has been sent"


def _user_data(user: User) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json")


def _auth_data(result: AuthResult) -> dict:
    if result.two_factor_required:
        return {
            "two_factor_required": True,
            "challenge_token": result.challenge_token,
            "user_id": result.user.id,
        }
    tokens = TokenOut(
        access_token=result.tokens.access_token,
        refresh_token=result.tokens.refresh_token,
        token_type=result.tokens.token_type,
        expires_in=result.tokens.expires_in,
        session_id=result.session.id if result.session else None,
    )
    return {
        "two_factor_required": False,
        "user": _user_data(result.user),
        **tokens.model_dump(),
    }


"""
Sign-up API

- terms must be accepted
- email and username must be unused (deleted accounts included)
- new accounts start as basic / trust "new" / unverified
- a verification link is mailed; the user is logged in right away

"""

@router.post("/register", status_code=201)
def register(
    data: RegisterRequest,
    request: Request,
    db: Session = Depends(get_db),
    mailer: MailDispatcher = Depends(get_mailer),
):
    result = auth_service.register(
        db,
        mailer,
        email=data.email,
        username=data.username,
        password=data.password,
        full_name=data.full_name,
        accept_terms=data.accept_terms,
        fingerprint=device_fingerprint(request, data.device_info),
        address=client_ip(request),
        remember=data.remember_me,
    )
    log_business_event(logger, request, event="auth.register", user_id=result.user.id)
    return success_payload("Registration successful", _auth_data(result))


"""
Login API

- wrong email, wrong password and inactive accounts answer alike
- with 2FA enabled, no token is issued: the answer carries a short-lived
  challenge token to be completed at /auth/login/2fa

"""

@router.post("/login")
def login(data: LoginRequest, request: Request, db: Session = Depends(get_db)):
    result = auth_service.login(
        db,
        email=data.email,
        password=data.password,
        fingerprint=device_fingerprint(request, data.device_info),
        address=client_ip(request),
        remember=data.remember_me,
    )
    log_business_event(
        logger,
        request,
        event="auth.login",
        user_id=result.user.id,
        two_factor_required=result.two_factor_required,
    )
    if result.two_factor_required:
        return success_payload("Two-factor authentication required", _auth_data(result))
    return success_payload("Login successful", _auth_data(result))


@router.post("/login/2fa")
def login_two_factor(data: TwoFactorLoginRequest, request: Request, db: Session = Depends(get_db)):
    result = auth_service.complete_two_factor_login(
        db,
        challenge_token=data.challenge_token,
        code=data.code,
        backup_code=data.backup_code,
    )
    log_business_event(logger, request, event="auth.login_2fa", user_id=result.user.id)
    return success_payload("Login successful", _auth_data(result))


"""
Token refresh API

- the refresh token must be valid and its session active and unexpired
- the session expiry slides forward by its original lifetime
- any failure is reported as a plain 401

"""

@router.post("/refresh-token")
def refresh_token(data: RefreshRequest, request: Request, db: Session = Depends(get_db)):
    try:
        result = auth_service.refresh_with_session(
            db,
            refresh_token=data.refresh_token,
            address=client_ip(request),
            fingerprint=device_fingerprint(request, data.device_info),
        )
    except (InvalidRefreshToken, SessionRevoked, UserDisabled, TokenError) as e:
        log_business_event(logger, request, event="auth.refresh_rejected", kind=type(e).__name__)
        raise Unauthorized("Invalid or expired refresh token") from e

    log_business_event(logger, request, event="auth.refresh", user_id=result.user.id)
    return success_payload("Token refreshed", _auth_data(result))


@router.post("/logout")
def logout(
    request: Request,
    data: LogoutRequest | None = None,
    identity: RequestIdentity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    auth_service.logout(
        db,
        user_id=identity.user_id,
        refresh_token=data.refresh_token if data else None,
        session_id=identity.session_id,
    )
    log_business_event(logger, request, event="auth.logout", user_id=identity.user_id)
    return success_payload("Logged out successfully")


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return success_payload("User retrieved", _user_data(current_user))


# password reset

@router.post("/password/reset")
def request_password_reset(
    data: EmailRequest,
    request: Request,
    db: Session = Depends(get_db),
    mailer: MailDispatcher = Depends(get_mailer),
):
    auth_service.request_password_reset(db, mailer, email=data.email)
    log_business_event(logger, request, event="auth.password_reset_requested")
    return success_payload(RESET_SENT_MESSAGE)


@router.post("/password/reset/confirm")
def confirm_password_reset(data: PasswordResetConfirmRequest, request: Request, db: Session = Depends(get_db)):
    user = auth_service.confirm_password_reset(db, token=data.token, new_password=data.new_password)
    log_business_event(logger, request, event="auth.password_reset", user_id=user.id)
    return success_payload("Password has been reset successfully")


# email verification

@router.post("/email/verify/send")
def send_verification(
    data: EmailRequest,
    request: Request,
    db: Session = Depends(get_db),
    mailer: MailDispatcher = Depends(get_mailer),
):
    auth_service.send_email_verification(db, mailer, email=data.email)
    log_business_event(logger, request, event="auth.verification_sent")
    return success_payload(VERIFICATION_SENT_MESSAGE)


@router.post("/email/verify/resend")
def resend_verification(
    data: EmailRequest,
    request: Request,
    db: Session = Depends(get_db),
    mailer: MailDispatcher = Depends(get_mailer),
):
    auth_service.resend_verification(db, mailer, email=data.email)
    log_business_event(logger, request, event="auth.verification_resent")
    return success_payload(VERIFICATION_SENT_MESSAGE)


@router.post("/email/verify/confirm")
def confirm_verification(data: TokenRequest, request: Request, db: Session = Depends(get_db)):
    user = auth_service.verify_email(db, token=data.token)
    log_business_event(logger, request, event="auth.email_verified", user_id=user.id)
    return success_payload("Email verified successfully", _user_data(user))


# OAuth

@router.get("/oauth/{provider}")
def oauth_login(provider: str, registry: ProviderRegistry = Depends(get_oauth_providers)):
    return success_payload("OAuth login URL generated", auth_service.oauth_login_url(registry, provider))


@router.get("/oauth/{provider}/callback")
def oauth_callback(
    provider: str,
    code: str,
    state: str,
    request: Request,
    db: Session = Depends(get_db),
    registry: ProviderRegistry = Depends(get_oauth_providers),
):
    result = auth_service.oauth_callback(
        db,
        registry,
        provider=provider,
        code=code,
        state=state,
        fingerprint=device_fingerprint(request),
        address=client_ip(request),
    )
    log_business_event(
        logger,
        request,
        event="auth.oauth_login",
        provider=provider,
        user_id=result.user.id,
        created=result.created,
    )
    message = "Account created successfully" if result.created else "Login successful"
    return success_payload(message, _auth_data(result))
