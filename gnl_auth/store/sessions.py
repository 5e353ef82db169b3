"""
store/sessions.py

Session persistence.

``touch_if_active`` is the compare-and-set used by token refresh: the
row is extended only while it is still active, out of the pre-2FA
state, unexpired and owned by the expected user. A logout that commits
first makes the UPDATE match zero rows, so no token pair is issued for
a revoked session.

"""

import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from gnl_auth.core import clock
from gnl_auth.models.session import UserSession


def create(
    db: Session,
    *,
    user_id: int,
    device_class: str,
    device_info: str | None,
    last_ip: str | None,
    expires_at: datetime.datetime,
    now: datetime.datetime,
    two_factor_pending: bool = False,
) -> UserSession:
    row = UserSession(
        user_id=user_id,
        device_class=device_class,
        device_info=device_info,
        last_ip=last_ip,
        last_activity=now,
        created_at=now,
        expires_at=expires_at,
        is_active=True,
        two_factor_pending=two_factor_pending,
    )
    db.add(row)
    db.flush()
    return row


def by_id(db: Session, session_id: str) -> UserSession | None:
    return db.scalar(
        select(UserSession)
        .where(UserSession.id == session_id)
        .execution_options(populate_existing=True)
    )


def list_active_by_user(db: Session, user_id: int) -> list[UserSession]:
    return list(
        db.scalars(
            select(UserSession)
            .where(
                UserSession.user_id == user_id,
                UserSession.is_active.is_(True),
                UserSession.two_factor_pending.is_(False),
                UserSession.expires_at >= clock.utcnow(),
            )
            .order_by(UserSession.last_activity.desc())
        ).all()
    )


def update_session(db: Session, row: UserSession, **fields) -> UserSession:
    for key, value in fields.items():
        setattr(row, key, value)
    db.flush()
    return row


def touch_if_active(
    db: Session,
    *,
    session_id: str,
    user_id: int,
    now: datetime.datetime,
    expires_at: datetime.datetime,
    last_ip: str | None = None,
    device_info: str | None = None,
    device_class: str | None = None,
) -> bool:
    values = {"last_activity": now, "expires_at": expires_at}
    if last_ip:
        values["last_ip"] = last_ip
    if device_info:
        values["device_info"] = device_info
        values["device_class"] = device_class
    result = db.execute(
        update(UserSession)
        .where(
            UserSession.id == session_id,
            UserSession.user_id == user_id,
            UserSession.is_active.is_(True),
            UserSession.two_factor_pending.is_(False),
            UserSession.expires_at >= now,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def complete_two_factor(db: Session, *, session_id: str, user_id: int, now: datetime.datetime) -> bool:
    result = db.execute(
        update(UserSession)
        .where(
            UserSession.id == session_id,
            UserSession.user_id == user_id,
            UserSession.is_active.is_(True),
            UserSession.two_factor_pending.is_(True),
            UserSession.expires_at >= now,
        )
        .values(two_factor_pending=False, last_activity=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def deactivate(db: Session, session_id: str, user_id: int | None = None) -> bool:
    stmt = update(UserSession).where(UserSession.id == session_id, UserSession.is_active.is_(True))
    if user_id is not None:
        stmt = stmt.where(UserSession.user_id == user_id)
    result = db.execute(stmt.values(is_active=False).execution_options(synchronize_session=False))
    return result.rowcount == 1


def deactivate_all_except(db: Session, user_id: int, keep_session_id: str | None) -> int:
    stmt = update(UserSession).where(UserSession.user_id == user_id, UserSession.is_active.is_(True))
    if keep_session_id:
        stmt = stmt.where(UserSession.id != keep_session_id)
    result = db.execute(stmt.values(is_active=False).execution_options(synchronize_session=False))
    return result.rowcount or 0


def deactivate_all_for_user(db: Session, user_id: int) -> int:
    return deactivate_all_except(db, user_id, None)


def deactivate_expired(db: Session, now: datetime.datetime | None = None) -> int:
    now = now or clock.utcnow()
    result = db.execute(
        update(UserSession)
        .where(UserSession.is_active.is_(True), UserSession.expires_at < now)
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def purge_inactive_before(db: Session, cutoff: datetime.datetime) -> int:
    result = db.execute(
        delete(UserSession)
        .where(UserSession.is_active.is_(False), UserSession.last_activity < cutoff)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
