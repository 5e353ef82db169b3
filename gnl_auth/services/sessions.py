"""
services/sessions.py

Session lifecycle: create, extend, revoke and sweep.

Key features:
- device class derived from the client-supplied fingerprint
- 24 hour sessions, 30 days with "remember me"
- extension keeps the original window: new_expires = now + (expires - created)
- revocation is soft (is_active = False); a retention task hard-deletes later

Related files:
- gnl_auth.store.sessions   : compare-and-set primitives
- gnl_auth.services.auth    : login / refresh / logout orchestration

"""

import datetime
import logging

from sqlalchemy.orm import Session

from gnl_auth.core import clock
from gnl_auth.core.config import settings
from gnl_auth.core.errors import Forbidden, NotFound, SessionRevoked
from gnl_auth.models.session import DeviceClass, UserSession
from gnl_auth.store import sessions as session_store

logger = logging.getLogger(__name__)

_MOBILE_MARKERS = ("mobile", "android", "iphone")
_TABLET_MARKERS = ("tablet", "ipad")


def device_class_for(fingerprint: str | None) -> str:
    if not fingerprint:
        return DeviceClass.UNKNOWN
    value = fingerprint.lower()
    if any(marker in value for marker in _MOBILE_MARKERS):
        return DeviceClass.MOBILE
    if any(marker in value for marker in _TABLET_MARKERS):
        return DeviceClass.TABLET
    return DeviceClass.DESKTOP


def session_ttl(remember: bool) -> datetime.timedelta:
    if remember:
        return datetime.timedelta(days=settings.SESSION_LONG_EXPIRE_DAYS)
    return datetime.timedelta(hours=settings.SESSION_EXPIRE_HOURS)


def create_session(
    db: Session,
    *,
    user_id: int,
    fingerprint: str | None,
    address: str | None,
    remember: bool = False,
    two_factor_pending: bool = False,
) -> UserSession:
    now = clock.utcnow()
    return session_store.create(
        db,
        user_id=user_id,
        device_class=device_class_for(fingerprint),
        device_info=fingerprint,
        last_ip=address,
        expires_at=now + session_ttl(remember),
        now=now,
        two_factor_pending=two_factor_pending,
    )


"""
Extend a session on refresh

- rejects inactive, pre-2FA and expired sessions with SessionRevoked
- the UPDATE only matches a row that is still active at write time,
  so a logout committed in between makes the extension fail

"""

def extend_session(
    db: Session,
    row: UserSession,
    *,
    user_id: int,
    address: str | None = None,
    fingerprint: str | None = None,
    now: datetime.datetime | None = None,
) -> UserSession:
    now = now or clock.utcnow()
    if row.user_id != user_id or not row.is_active or row.two_factor_pending or now > row.expires_at:
        raise SessionRevoked()

    new_expires_at = now + (row.expires_at - row.created_at)
    touched = session_store.touch_if_active(
        db,
        session_id=row.id,
        user_id=user_id,
        now=now,
        expires_at=new_expires_at,
        last_ip=address,
        device_info=fingerprint,
        device_class=device_class_for(fingerprint) if fingerprint else None,
    )
    if not touched:
        raise SessionRevoked()

    refreshed = session_store.by_id(db, row.id)
    if refreshed is None:
        raise SessionRevoked()
    return refreshed


def list_sessions(db: Session, user_id: int) -> list[UserSession]:
    return session_store.list_active_by_user(db, user_id)


def revoke_session(db: Session, *, user_id: int, session_id: str) -> None:
    row = session_store.by_id(db, session_id)
    if row is None:
        raise NotFound("Session not found")
    if row.user_id != user_id:
        raise Forbidden("Session belongs to another user")
    session_store.deactivate(db, session_id, user_id)


def revoke_all_except(db: Session, *, user_id: int, keep_session_id: str | None) -> int:
    return session_store.deactivate_all_except(db, user_id, keep_session_id)


def perform_maintenance(db: Session) -> int:
    count = session_store.deactivate_expired(db, clock.utcnow())
    if count:
        logger.info("session maintenance deactivated=%s", count)
    return count


def purge_stale_sessions(db: Session, retention: datetime.timedelta | None = None) -> int:
    retention = retention or datetime.timedelta(days=settings.SESSION_RETENTION_DAYS)
    cutoff = clock.utcnow() - retention
    count = session_store.purge_inactive_before(db, cutoff)
    if count:
        logger.info("session purge deleted=%s cutoff=%s", count, cutoff.isoformat())
    return count
