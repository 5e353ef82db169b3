"""
admin_log.py

Audit log of privileged actions.

Records role changes, content-gating changes, grants and session
maintenance performed through the admin and moderator APIs. Rows are
append-only.

- actor_id       : admin / moderator who performed the action
- target_user_id : affected user, when there is one
- target_ref     : affected record, e.g. "chapter:42" or "rule:7"
- detail         : short free-form description (before -> after)

"""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gnl_auth.core import clock
from gnl_auth.db.base import Base


class AdminAction(str, Enum):
    SET_ROLE = "SET_ROLE"
    SET_CONTENT_ACCESS = "SET_CONTENT_ACCESS"
    CREATE_RULE = "CREATE_RULE"
    UPDATE_RULE = "UPDATE_RULE"
    DELETE_RULE = "DELETE_RULE"
    GRANT_PERMISSION = "GRANT_PERMISSION"
    REVOKE_PERMISSION = "REVOKE_PERMISSION"
    SESSION_MAINTENANCE = "SESSION_MAINTENANCE"


class AdminActionLog(Base):
    __tablename__ = "admin_action_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    actor_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    target_user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)

    action: Mapped[AdminAction] = mapped_column(SAEnum(AdminAction, name="admin_action"), nullable=False)

    target_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    detail: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ip: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=clock.utcnow, nullable=False)
