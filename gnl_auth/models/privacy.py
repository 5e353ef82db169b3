"""
privacy.py

Per-user privacy settings, created with defaults on first read.

"""

import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gnl_auth.core import clock
from gnl_auth.db.base import Base


class PrivacyLevel(str, Enum):
    PUBLIC = "public"
    REGISTERED = "registered"
    FRIENDS = "friends"
    PRIVATE = "private"


class UserPrivacySettings(Base):
    __tablename__ = "user_privacy_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    profile_visibility: Mapped[str] = mapped_column(String(20), nullable=False, default=PrivacyLevel.PUBLIC.value)
    activity_visibility: Mapped[str] = mapped_column(String(20), nullable=False, default=PrivacyLevel.FRIENDS.value)
    contact_info_visibility: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PrivacyLevel.PRIVATE.value
    )
    search_visibility: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, nullable=False, default=clock.utcnow, onupdate=clock.utcnow
    )
