"""
store/audit.py

Admin action log writer and reader.

The caller commits; a log row always lands in the same transaction as
the change it describes.

"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from gnl_auth.models.admin_log import AdminAction, AdminActionLog


def write_admin_log(
    db: Session,
    *,
    actor_id: int,
    action: AdminAction,
    target_user_id: int | None = None,
    target_ref: str | None = None,
    detail: str | None = None,
    ip: str | None = None,
) -> AdminActionLog:
    log = AdminActionLog(
        actor_id=actor_id,
        action=action,
        target_user_id=target_user_id,
        target_ref=target_ref,
        detail=detail,
        ip=ip,
    )
    db.add(log)
    db.flush()
    return log


def list_admin_logs(db: Session, *, limit: int = 50, action: AdminAction | None = None) -> list[AdminActionLog]:
    stmt = select(AdminActionLog)
    if action is not None:
        stmt = stmt.where(AdminActionLog.action == action)
    stmt = stmt.order_by(AdminActionLog.id.desc()).limit(limit)
    return list(db.scalars(stmt).all())
