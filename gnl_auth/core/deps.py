"""
deps.py

FastAPI dependencies: database session, request identity and role gates.

Key features:
- get_db                  : request-scoped session, rolled back on error
- get_identity            : required bearer authentication
- get_optional_identity   : same, but anonymous requests pass through
- get_current_user        : live User row for the identity
- require_min_role        : role gate factory
- require_permission      : policy-table gate factory

The verified identity is also stored on ``request.state.identity`` for
middleware and logging.

Related files:
- gnl_auth.core.tokens      : token verification
- gnl_auth.core.policy      : permission table

"""

from dataclasses import dataclass
from typing import Generator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from gnl_auth.core import policy
from gnl_auth.core.errors import Forbidden, TokenError, Unauthorized
from gnl_auth.core.tokens import signer
from gnl_auth.db.session import SessionLocal
from gnl_auth.models.user import User, UserRole
from gnl_auth.services.mail import MailDispatcher, get_mail_dispatcher
from gnl_auth.services.oauth import ProviderRegistry, get_oauth_registry
from gnl_auth.store import users as user_store

# shown as "Authorize" in Swagger; missing headers are handled below
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class RequestIdentity:
    user_id: int
    username: str
    email: str
    role: UserRole
    session_id: str | None = None


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_mailer() -> MailDispatcher:
    return get_mail_dispatcher()


def get_oauth_providers() -> ProviderRegistry:
    return get_oauth_registry()


def _identity_from_token(token: str) -> RequestIdentity:
    try:
        claims = signer.verify(token, "access")
        role = UserRole(claims.get("role"))
    except TokenError as e:
        raise Unauthorized("Could not validate credentials") from e
    except ValueError as e:
        raise Unauthorized("Could not validate credentials") from e

    return RequestIdentity(
        user_id=int(claims["user_id"]),
        username=str(claims.get("username", "")),
        email=str(claims.get("email", "")),
        role=role,
        session_id=claims.get("session_id"),
    )


def get_identity(
    request: Request,
    cred: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> RequestIdentity:
    if cred is None or cred.scheme.lower() != "bearer" or not cred.credentials:
        raise Unauthorized("Authorization header is required")
    identity = _identity_from_token(cred.credentials)
    request.state.identity = identity
    return identity


def get_optional_identity(
    request: Request,
    cred: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> RequestIdentity | None:
    if cred is None or not cred.credentials:
        request.state.identity = None
        return None
    identity = _identity_from_token(cred.credentials)
    request.state.identity = identity
    return identity


def get_current_user(
    identity: RequestIdentity = Depends(get_identity),
    db: Session = Depends(get_db),
) -> User:
    user = user_store.by_id(db, identity.user_id)
    if user is None or not user.is_active:
        raise Unauthorized("User not found or inactive")
    return user


def require_min_role(min_role: UserRole):
    def _checker(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.role.at_least(min_role):
            raise Forbidden(f"Requires role >= {min_role.value}")
        return current_user
    return _checker


def require_permission(permission: str):
    def _checker(current_user: User = Depends(get_current_user)) -> User:
        if not policy.has(current_user.role, permission):
            raise Forbidden(f"Missing permission {permission}")
        return current_user
    return _checker


get_current_moderator = require_min_role(UserRole.MODERATOR)
get_current_admin = require_min_role(UserRole.ADMIN)
get_current_superadmin = require_min_role(UserRole.SUPERADMIN)
