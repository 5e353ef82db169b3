"""
session.py

Server-side login session model.

One row per device/browser that is continuously authenticated as a
user. Refresh tokens carry the session id; a session that is inactive
or past expires_at can no longer mint tokens.

- device_class        : mobile | tablet | desktop | unknown
- two_factor_pending  : password step passed, second factor still owed
- is_active           : cleared on logout / revocation (soft)

"""

import datetime
import uuid

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gnl_auth.db.base import Base


class DeviceClass:
    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"
    UNKNOWN = "unknown"


class UserSession(Base):
    __tablename__ = "sessions"
    __table_args__ = (Index("ix_sessions_user_id_expires_at", "user_id", "expires_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)

    device_class: Mapped[str] = mapped_column(String(20), nullable=False, default=DeviceClass.UNKNOWN)
    device_info: Mapped[str | None] = mapped_column(String(500), nullable=True)
    last_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)

    last_activity: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)
    expires_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    two_factor_pending: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
