"""
services/admin.py

User management for administrators.

- paginated user listing and listing by role
- role changes with privilege guards and an audit log entry
- session maintenance (expiry sweep, retention purge, token purge)

Guards on role changes:
- nobody changes their own role
- only a superadmin grants or revokes admin / superadmin
- the last active superadmin cannot be demoted

"""

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from gnl_auth.core.errors import Forbidden, InvalidRequest, NotFound
from gnl_auth.models.admin_log import AdminAction
from gnl_auth.models.user import User, UserRole
from gnl_auth.services import sessions as session_service
from gnl_auth.store import audit as audit_store
from gnl_auth.store import tokens as token_store
from gnl_auth.store import users as user_store

logger = logging.getLogger(__name__)

PRIVILEGED_ROLES = (UserRole.ADMIN, UserRole.SUPERADMIN)


def count_superadmins(db: Session) -> int:
    return int(
        db.scalar(
            select(func.count())
            .select_from(User)
            .where(User.role == UserRole.SUPERADMIN, User.is_deleted.is_(False))
        )
        or 0
    )


def list_users(db: Session, *, page: int = 1, page_size: int = 20) -> tuple[list[User], int]:
    if page < 1 or page_size < 1:
        raise InvalidRequest("page and page_size must be positive")
    return user_store.list_users(db, page=page, page_size=min(page_size, 100))


def list_users_by_role(db: Session, role: UserRole) -> list[User]:
    return user_store.list_by_role(db, role)


def update_user_role(db: Session, actor: User, *, user_id: int, role: UserRole, ip: str | None = None) -> User:
    target = user_store.by_id(db, user_id)
    if target is None:
        raise NotFound("User not found")
    if target.id == actor.id:
        raise Forbidden("You cannot change your own role")

    touches_privileged = role in PRIVILEGED_ROLES or target.role in PRIVILEGED_ROLES
    if touches_privileged and actor.role != UserRole.SUPERADMIN:
        raise Forbidden("Only a superadmin can grant or revoke admin roles")

    if target.role == UserRole.SUPERADMIN and role != UserRole.SUPERADMIN and count_superadmins(db) <= 1:
        raise Forbidden("Cannot demote the last superadmin")

    before = target.role
    if before == role:
        return target

    user_store.update_role(db, target, role)
    audit_store.write_admin_log(
        db,
        actor_id=actor.id,
        action=AdminAction.SET_ROLE,
        target_user_id=target.id,
        detail=f"{before.value} -> {role.value}",
        ip=ip,
    )
    db.commit()
    db.refresh(target)
    logger.info("role changed actor_id=%s target_id=%s before=%s after=%s", actor.id, target.id, before.value, role.value)
    return target


def run_session_maintenance(db: Session, actor: User | None = None, *, ip: str | None = None) -> dict:
    deactivated = session_service.perform_maintenance(db)
    purged = session_service.purge_stale_sessions(db)
    tokens_purged = token_store.purge_expired_or_used(db)
    if actor is not None:
        audit_store.write_admin_log(
            db,
            actor_id=actor.id,
            action=AdminAction.SESSION_MAINTENANCE,
            detail=f"deactivated={deactivated} purged={purged} tokens={tokens_purged}",
            ip=ip,
        )
    db.commit()
    return {
        "sessions_deactivated": deactivated,
        "sessions_purged": purged,
        "tokens_purged": tokens_purged,
    }


def list_admin_logs(db: Session, *, limit: int = 50) -> list:
    return audit_store.list_admin_logs(db, limit=max(1, min(limit, 200)))
