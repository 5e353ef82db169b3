"""
content_access.py

Content gating records.

- ContentAccess          : visibility of one content item (type, id)
- ContentAccessRule      : type-level default applied when an item has no ContentAccess row
- UserContentPermission  : per-user override admitting access visibility would deny

Content rows themselves live in the content subsystem; only their
(type, id) keys are referenced here.

"""

import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from gnl_auth.core import clock
from gnl_auth.db.base import Base


class Visibility(str, Enum):
    PUBLIC = "public"
    REGISTERED = "registered"
    ENGAGED = "engaged"
    ACTIVE = "active"
    PREMIUM = "premium"
    MODERATORS = "moderators"
    ADMINS = "admins"


class ContentAccess(Base):
    __tablename__ = "content_access"
    __table_args__ = (UniqueConstraint("content_type", "content_id", name="uq_content_access_type_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_type: Mapped[str] = mapped_column(String(50), nullable=False)
    content_id: Mapped[int] = mapped_column(Integer, nullable=False)

    # plain string so an unrecognised value can still be read and reported
    visibility: Mapped[str] = mapped_column(String(20), nullable=False, default=Visibility.PUBLIC.value)
    min_points_required: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=clock.utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, nullable=False, default=clock.utcnow, onupdate=clock.utcnow
    )


"""
Type-level access rule

- applies_to     : "all" (or empty) or a comma separated list of content ids
- priority       : higher wins among rules that apply
- min_trust_level: lowest TrustLevel value admitted, NULL for no gate

"""

class ContentAccessRule(Base):
    __tablename__ = "content_access_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    applies_to: Mapped[str] = mapped_column(String(500), nullable=False, default="all")

    visibility: Mapped[str] = mapped_column(String(20), nullable=False, default=Visibility.PUBLIC.value)
    min_points_required: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_trust_level: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_premium_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_moderator_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_admin_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    updated_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=clock.utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, nullable=False, default=clock.utcnow, onupdate=clock.utcnow
    )


class UserContentPermission(Base):
    __tablename__ = "user_content_permissions"
    __table_args__ = (Index("ix_user_content_permissions_user_type", "user_id", "content_type"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    content_type: Mapped[str] = mapped_column(String(50), nullable=False)
    content_id: Mapped[int] = mapped_column(Integer, nullable=False)

    can_view: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    can_comment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_edit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    granted_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    expires_at: Mapped[datetime.datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=clock.utcnow)
