"""
user.py

User model and the ordered enumerations attached to it.

The User row is the anchor for every other record in the kernel:
sessions, single-use tokens, the 2FA record, privacy settings and
content grants all belong to exactly one user.

"""

import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gnl_auth.core import clock
from gnl_auth.db.base import Base


class _Ordered(str, Enum):
    """String enum whose declaration order is its privilege order."""

    @classmethod
    def ordered(cls) -> list:
        return list(cls)

    def at_least(self, other) -> bool:
        members = list(type(self))
        return members.index(self) >= members.index(type(self)(other))


"""
Platform roles, lowest first

- BASIC / ENGAGED / ACTIVE : earned through participation
- PREMIUM                  : paying members
- MODERATOR / ADMIN / SUPERADMIN : staff

"""

class UserRole(_Ordered):
    BASIC = "basic"
    ENGAGED = "engaged"
    ACTIVE = "active"
    PREMIUM = "premium"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class TrustLevel(_Ordered):
    NEW = "new"
    BASIC = "basic"
    MEMBER = "member"
    REGULAR = "regular"
    TRUSTED = "trusted"
    LEADER = "leader"


class MembershipLevel(str, Enum):
    BASIC = "basic"
    PREMIUM = "premium"
    VIP = "vip"


"""
User model

- email / username are unique
- password_hash is NULL for users created through an OAuth provider
- is_deleted / deleted_at implement soft deletion
- refresh_token_version invalidates session-less refresh tokens

"""

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    full_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    profile_image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    role: Mapped[UserRole] = mapped_column(default=UserRole.BASIC, nullable=False)
    membership_level: Mapped[MembershipLevel] = mapped_column(default=MembershipLevel.BASIC, nullable=False)
    trust_level: Mapped[TrustLevel] = mapped_column(default=TrustLevel.NEW, nullable=False)
    points_balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    oauth_provider: Mapped[str | None] = mapped_column(String(50), nullable=True)
    oauth_subject: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    refresh_token_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    last_login: Mapped[datetime.datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime, nullable=False, default=clock.utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, nullable=False, default=clock.utcnow, onupdate=clock.utcnow
    )

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    deleted_at: Mapped[datetime.datetime | None] = mapped_column(DateTime, nullable=True)

    @property
    def is_premium(self) -> bool:
        return (
            self.membership_level in (MembershipLevel.PREMIUM, MembershipLevel.VIP)
            or self.role.at_least(UserRole.PREMIUM)
        )
