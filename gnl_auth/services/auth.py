"""
services/auth.py

Credential service: the orchestrator behind every /auth and /account
credential endpoint.

Key features:
- registration with email verification
- login with optional device-bound session and a two-step 2FA flow
- session-bound refresh (compare-and-set against logout)
- logout of one session, all other sessions, or session-less tokens
- password reset and email verification through single-use tokens
- password change, profile edit and soft account deletion
- login / sign-up through OAuth providers

Design principles:
- every public function is one transaction: it commits on success and
  the request-scoped session rolls back on any raised error
- login collapses unknown email, wrong password and inactive account
  into InvalidCredentials
- password reset and verification requests never reveal whether the
  email exists

Related files:
- gnl_auth.core.tokens        : token pairs / 2FA challenge / OAuth state
- gnl_auth.services.sessions  : session lifecycle
- gnl_auth.services.two_factor: second factor
- gnl_auth.services.mail      : link delivery
- gnl_auth.routers.auth       : HTTP surface

"""

import datetime
import logging
import secrets
import string
import uuid
from dataclasses import dataclass

from sqlalchemy.orm import Session

from gnl_auth.core import clock
from gnl_auth.core.config import settings
from gnl_auth.core.errors import (
    Conflict,
    DuplicateEmail,
    DuplicateUsername,
    Forbidden,
    InvalidCredentials,
    InvalidPassword,
    InvalidRefreshToken,
    InvalidRequest,
    InvalidToken,
    SessionRevoked,
    TermsNotAccepted,
    TokenError,
    UserDisabled,
    WeakPassword,
)
from gnl_auth.core.security import hash_password, password_is_strong, verify_password
from gnl_auth.core.tokens import TokenPair, signer
from gnl_auth.models.session import UserSession
from gnl_auth.models.token import TokenPurpose
from gnl_auth.models.user import TrustLevel, User, UserRole
from gnl_auth.services import hooks, sessions as session_service, two_factor as two_factor_service
from gnl_auth.services.mail import MailDispatcher
from gnl_auth.services.oauth import ProviderRegistry
from gnl_auth.store import sessions as session_store
from gnl_auth.store import tokens as token_store
from gnl_auth.store import users as user_store

logger = logging.getLogger(__name__)

_USERNAME_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class AuthResult:
    user: User
    tokens: TokenPair | None = None
    session: UserSession | None = None
    two_factor_required: bool = False
    challenge_token: str | None = None
    created: bool = False


def _password_matches(user: User, password: str) -> bool:
    if not user.password_hash or not password:
        return False
    return verify_password(password, user.password_hash)


def _new_single_use_token(db: Session, user: User, purpose: TokenPurpose, ttl: datetime.timedelta) -> str:
    token_store.purge_for_user(db, user.id, purpose)
    value = str(uuid.uuid4())
    token_store.create(
        db,
        user_id=user.id,
        purpose=purpose,
        token=value,
        expires_at=clock.utcnow() + ttl,
    )
    return value


def _verification_link(token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/verify-email?token={token}"


def _reset_link(token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={token}"


def _deliver(send, user: User, link: str, kind: str) -> None:
    try:
        send(user, link)
    except Exception:
        # the token is already committed; the user can ask for a new mail
        logger.exception("mail dispatch failed kind=%s user_id=%s", kind, user.id)


"""
Session + token issuance shared by login, OAuth login and registration

- 2FA users get a session held in the pre-2FA state and a challenge
  token; no access/refresh token is issued until the second factor passes
- without a device fingerprint the pair is session-less (rtv-bound)

"""

def _start_authenticated(
    db: Session,
    user: User,
    *,
    fingerprint: str | None,
    address: str | None,
    remember: bool,
    check_two_factor: bool = True,
) -> AuthResult:
    if check_two_factor and two_factor_service.is_enabled(db, user.id):
        session = session_service.create_session(
            db,
            user_id=user.id,
            fingerprint=fingerprint,
            address=address,
            remember=remember,
            two_factor_pending=True,
        )
        challenge = signer.issue_challenge(user.id, session.id, remember=remember)
        return AuthResult(user=user, session=session, two_factor_required=True, challenge_token=challenge)

    session = None
    if fingerprint:
        session = session_service.create_session(
            db,
            user_id=user.id,
            fingerprint=fingerprint,
            address=address,
            remember=remember,
        )
    tokens = signer.issue_pair(
        user,
        session.id if session else None,
        session.device_class if session else None,
        remember=remember,
    )
    return AuthResult(user=user, tokens=tokens, session=session)


# registration / login

def register(
    db: Session,
    mailer: MailDispatcher,
    *,
    email: str,
    username: str,
    password: str,
    full_name: str,
    accept_terms: bool,
    fingerprint: str | None = None,
    address: str | None = None,
    remember: bool = False,
) -> AuthResult:
    if not accept_terms:
        raise TermsNotAccepted()

    email = email.strip().lower()
    username = username.strip()
    if user_store.email_exists(db, email):
        raise DuplicateEmail()
    if user_store.username_exists(db, username):
        raise DuplicateUsername()
    if not password_is_strong(password):
        raise WeakPassword()

    user = user_store.create(
        db,
        email=email,
        username=username,
        password_hash=hash_password(password),
        full_name=full_name.strip(),
        role=UserRole.BASIC,
        trust_level=TrustLevel.NEW,
        is_active=True,
        is_verified=False,
    )
    token = _new_single_use_token(
        db,
        user,
        TokenPurpose.EMAIL_VERIFICATION,
        datetime.timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS),
    )
    result = _start_authenticated(
        db,
        user,
        fingerprint=fingerprint,
        address=address,
        remember=remember,
        check_two_factor=False,
    )
    db.commit()
    db.refresh(user)

    _deliver(mailer.send_verification, user, _verification_link(token), "verification")
    result.created = True
    return result


def login(
    db: Session,
    *,
    email: str,
    password: str,
    fingerprint: str | None = None,
    address: str | None = None,
    remember: bool = False,
) -> AuthResult:
    user = user_store.by_email(db, email)
    if user is None or not user.is_active or not _password_matches(user, password):
        raise InvalidCredentials()

    user_store.update_last_login(db, user)
    result = _start_authenticated(db, user, fingerprint=fingerprint, address=address, remember=remember)
    db.commit()
    return result


"""
Second login step for 2FA users

- the challenge token proves the password step for one pending session
- accepts either a TOTP code or a single-use backup code
- the session leaves the pre-2FA state through a compare-and-set, so a
  challenge cannot be completed twice

"""

def complete_two_factor_login(
    db: Session,
    *,
    challenge_token: str,
    code: str | None = None,
    backup_code: str | None = None,
) -> AuthResult:
    try:
        claims = signer.verify_challenge(challenge_token)
    except TokenError as e:
        raise InvalidCredentials("Two-factor challenge is invalid or expired") from e

    user = user_store.by_id(db, claims["user_id"])
    if user is None or not user.is_active:
        raise InvalidCredentials()

    if code:
        two_factor_service.validate_code(db, user, code)
    elif backup_code:
        two_factor_service.consume_backup_code(db, user, backup_code)
    else:
        raise InvalidRequest("A verification code or backup code is required")

    session_id = claims["session_id"]
    if not session_store.complete_two_factor(db, session_id=session_id, user_id=user.id, now=clock.utcnow()):
        raise SessionRevoked()

    session = session_store.by_id(db, session_id)
    remember = bool(claims.get("remember"))
    tokens = signer.issue_pair(user, session.id, session.device_class, remember=remember)
    db.commit()
    return AuthResult(user=user, tokens=tokens, session=session)


# refresh / logout

def refresh_with_session(
    db: Session,
    *,
    refresh_token: str,
    address: str | None = None,
    fingerprint: str | None = None,
) -> AuthResult:
    try:
        claims = signer.verify(refresh_token, "refresh")
    except TokenError as e:
        raise InvalidRefreshToken() from e

    user = user_store.by_id(db, claims["user_id"], include_deleted=True)
    if user is None:
        raise InvalidRefreshToken()
    if user.is_deleted or not user.is_active:
        raise UserDisabled()

    remember = bool(claims.get("remember"))
    session_id = claims.get("session_id")

    if session_id:
        row = session_store.by_id(db, session_id)
        if row is None:
            raise SessionRevoked()
        row = session_service.extend_session(
            db,
            row,
            user_id=user.id,
            address=address,
            fingerprint=fingerprint,
        )
        tokens = signer.issue_pair(user, row.id, row.device_class, remember=remember)
        db.commit()
        return AuthResult(user=user, tokens=tokens, session=row)

    # session-less tokens rotate: the old one dies with the version bump
    rtv = claims.get("rtv")
    if rtv != user.refresh_token_version or not user_store.bump_refresh_token_version(db, user.id, rtv):
        raise SessionRevoked()
    db.refresh(user)
    tokens = signer.issue_pair(user, remember=remember)
    db.commit()
    return AuthResult(user=user, tokens=tokens)


def logout(
    db: Session,
    *,
    user_id: int,
    refresh_token: str | None = None,
    session_id: str | None = None,
) -> None:
    rtv = None
    if refresh_token:
        try:
            claims = signer.verify(refresh_token, "refresh")
        except TokenError:
            logger.info("logout with unusable refresh token user_id=%s", user_id)
            claims = {}
        if claims.get("user_id") == user_id:
            session_id = claims.get("session_id") or session_id
            rtv = claims.get("rtv")

    if session_id:
        session_store.deactivate(db, session_id, user_id)
    elif rtv is not None:
        user_store.bump_refresh_token_version(db, user_id, rtv)
    db.commit()


def logout_session(db: Session, *, user_id: int, session_id: str) -> None:
    session_service.revoke_session(db, user_id=user_id, session_id=session_id)
    db.commit()


def logout_all_except(db: Session, *, user_id: int, keep_session_id: str | None) -> int:
    count = session_service.revoke_all_except(db, user_id=user_id, keep_session_id=keep_session_id)
    db.commit()
    return count


# password reset

def request_password_reset(db: Session, mailer: MailDispatcher, *, email: str) -> None:
    user = user_store.by_email(db, email)
    if user is None or not user.is_active:
        logger.info("password reset requested for unknown or inactive account")
        return

    token = _new_single_use_token(
        db,
        user,
        TokenPurpose.PASSWORD_RESET,
        datetime.timedelta(hours=settings.PASSWORD_RESET_EXPIRE_HOURS),
    )
    db.commit()
    _deliver(mailer.send_password_reset, user, _reset_link(token), "password_reset")


"""
Redeem a password reset token

- the token is claimed first (unused and unexpired -> used); a second
  redeemer always gets InvalidToken
- a weak password rolls the claim back so the link stays usable
- all sessions and session-less refresh tokens of the user are revoked

"""

def confirm_password_reset(db: Session, *, token: str, new_password: str) -> User:
    row = token_store.claim(db, token, TokenPurpose.PASSWORD_RESET)
    if row is None:
        raise InvalidToken()

    if not password_is_strong(new_password or ""):
        db.rollback()
        raise WeakPassword()

    user = user_store.by_id(db, row.user_id)
    if user is None:
        db.rollback()
        raise InvalidToken()

    user_store.update_password(db, user, hash_password(new_password))
    session_store.deactivate_all_for_user(db, user.id)
    db.commit()
    logger.info("password reset completed user_id=%s", user.id)
    return user


# email verification

def send_email_verification(db: Session, mailer: MailDispatcher, *, email: str) -> None:
    user = user_store.by_email(db, email)
    if user is None or user.is_verified:
        logger.info("verification mail skipped: unknown or already verified account")
        return

    token = _new_single_use_token(
        db,
        user,
        TokenPurpose.EMAIL_VERIFICATION,
        datetime.timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS),
    )
    db.commit()
    _deliver(mailer.send_verification, user, _verification_link(token), "verification")


resend_verification = send_email_verification


def verify_email(db: Session, *, token: str) -> User:
    row = token_store.claim(db, token, TokenPurpose.EMAIL_VERIFICATION)
    if row is None:
        raise InvalidToken()

    user = user_store.by_id(db, row.user_id)
    if user is None:
        db.rollback()
        raise InvalidToken()

    user_store.update_verified(db, user, True)
    if not user.trust_level.at_least(TrustLevel.BASIC):
        user.trust_level = TrustLevel.BASIC
    db.commit()
    db.refresh(user)

    hooks.emit_email_verified(user)
    return user


# account

def change_password(
    db: Session,
    user: User,
    *,
    current_password: str,
    new_password: str,
    keep_session_id: str | None = None,
) -> None:
    if not _password_matches(user, current_password):
        raise InvalidPassword()
    if current_password == new_password:
        raise InvalidRequest("New password must be different")
    if not password_is_strong(new_password):
        raise WeakPassword()

    user_store.update_password(db, user, hash_password(new_password))
    session_store.deactivate_all_except(db, user.id, keep_session_id)
    db.commit()


def update_profile(db: Session, user: User, **fields) -> User:
    changes = {k: v for k, v in fields.items() if v is not None}
    if not changes:
        raise InvalidRequest("No changes provided")
    user_store.update_user(db, user, **changes)
    db.commit()
    db.refresh(user)
    return user


def delete_account(db: Session, user: User, *, password: str) -> None:
    if not _password_matches(user, password):
        raise InvalidPassword()
    if user.role.at_least(UserRole.ADMIN):
        raise Forbidden("Admin users cannot delete their account")

    user_store.soft_delete(db, user)
    session_store.deactivate_all_for_user(db, user.id)
    db.commit()
    logger.info("account deleted user_id=%s", user.id)


# OAuth

def oauth_login_url(registry: ProviderRegistry, provider: str) -> dict:
    p = registry.get(provider)
    state = signer.issue_state(p.name)
    return {"url": p.auth_url(state), "state": state}


def _unique_username(db: Session) -> str:
    while True:
        candidate = "user" + "".join(secrets.choice(_USERNAME_ALPHABET) for _ in range(8))
        if not user_store.username_exists(db, candidate):
            return candidate


"""
OAuth callback

- a user already linked to (provider, subject) logs in
- an email owned by a password account or another provider is a Conflict
- otherwise a new password-less user is created

"""

def oauth_callback(
    db: Session,
    registry: ProviderRegistry,
    *,
    provider: str,
    code: str,
    state: str,
    fingerprint: str | None = None,
    address: str | None = None,
) -> AuthResult:
    p = registry.get(provider)
    try:
        signer.verify_state(state, p.name)
    except TokenError as e:
        raise InvalidRequest("Invalid OAuth state") from e

    identity = p.fetch_user_info(p.exchange(code))

    created = False
    user = user_store.by_external_identity(db, identity.provider, identity.subject)
    if user is None:
        existing = user_store.by_email(db, identity.email, include_deleted=True)
        if existing is not None:
            if existing.oauth_provider and existing.oauth_provider != identity.provider:
                raise Conflict("Account already exists with a different provider")
            raise Conflict("Account already exists with this email")

        user = user_store.create(
            db,
            email=identity.email,
            username=_unique_username(db),
            password_hash=None,
            full_name=identity.full_name,
            profile_image=identity.picture,
            oauth_provider=identity.provider,
            oauth_subject=identity.subject,
            role=UserRole.BASIC,
            trust_level=TrustLevel.BASIC if identity.email_verified else TrustLevel.NEW,
            is_active=True,
            is_verified=identity.email_verified,
        )
        created = True

    if not user.is_active:
        raise InvalidCredentials()

    user_store.update_last_login(db, user)
    result = _start_authenticated(db, user, fingerprint=fingerprint, address=address, remember=False)
    db.commit()
    result.created = created
    return result
