"""
store/content_access.py

Persistence for content gating: per-item access rows, type-level rules,
per-user grants and privacy settings.

"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from gnl_auth.core import clock
from gnl_auth.models.content_access import ContentAccess, ContentAccessRule, UserContentPermission
from gnl_auth.models.privacy import UserPrivacySettings


# content access rows

def get_access(db: Session, content_type: str, content_id: int) -> ContentAccess | None:
    return db.scalar(
        select(ContentAccess).where(
            ContentAccess.content_type == content_type,
            ContentAccess.content_id == content_id,
        )
    )


def upsert_access(
    db: Session,
    *,
    content_type: str,
    content_id: int,
    visibility: str,
    min_points_required: int = 0,
    is_premium: bool = False,
) -> ContentAccess:
    row = get_access(db, content_type, content_id)
    if row is None:
        row = ContentAccess(content_type=content_type, content_id=content_id)
        db.add(row)
    row.visibility = visibility
    row.min_points_required = min_points_required
    row.is_premium = is_premium
    db.flush()
    return row


def delete_access(db: Session, row: ContentAccess) -> None:
    db.delete(row)
    db.flush()


def list_access(db: Session, content_type: str | None = None) -> list[ContentAccess]:
    stmt = select(ContentAccess)
    if content_type:
        stmt = stmt.where(ContentAccess.content_type == content_type)
    return list(db.scalars(stmt.order_by(ContentAccess.content_type, ContentAccess.content_id)).all())


# rules

def create_rule(db: Session, **fields) -> ContentAccessRule:
    rule = ContentAccessRule(**fields)
    db.add(rule)
    db.flush()
    return rule


def get_rule(db: Session, rule_id: int) -> ContentAccessRule | None:
    return db.get(ContentAccessRule, rule_id)


def update_rule(db: Session, rule: ContentAccessRule, **fields) -> ContentAccessRule:
    for key, value in fields.items():
        setattr(rule, key, value)
    db.flush()
    return rule


def delete_rule(db: Session, rule: ContentAccessRule) -> None:
    db.delete(rule)
    db.flush()


def list_rules(db: Session, content_type: str | None = None, *, include_inactive: bool = False) -> list[ContentAccessRule]:
    stmt = select(ContentAccessRule)
    if content_type:
        stmt = stmt.where(ContentAccessRule.content_type == content_type)
    if not include_inactive:
        stmt = stmt.where(ContentAccessRule.is_active.is_(True))
    stmt = stmt.order_by(ContentAccessRule.priority.desc(), ContentAccessRule.id.asc())
    return list(db.scalars(stmt).all())


# per-user grants

def create_permission(db: Session, **fields) -> UserContentPermission:
    row = UserContentPermission(**fields)
    db.add(row)
    db.flush()
    return row


def get_permission(db: Session, permission_id: int) -> UserContentPermission | None:
    return db.get(UserContentPermission, permission_id)


def delete_permission(db: Session, row: UserContentPermission) -> None:
    db.delete(row)
    db.flush()


def list_permissions_for_user(db: Session, user_id: int, content_type: str | None = None) -> list[UserContentPermission]:
    stmt = select(UserContentPermission).where(UserContentPermission.user_id == user_id)
    if content_type:
        stmt = stmt.where(UserContentPermission.content_type == content_type)
    return list(db.scalars(stmt.order_by(UserContentPermission.id.asc())).all())


def active_grant(db: Session, user_id: int, content_type: str, content_id: int) -> UserContentPermission | None:
    now = clock.utcnow()
    for row in list_permissions_for_user(db, user_id, content_type):
        if row.content_id != content_id or not row.can_view:
            continue
        if row.expires_at is not None and row.expires_at <= now:
            continue
        return row
    return None


# privacy settings

def get_or_create_privacy(db: Session, user_id: int) -> UserPrivacySettings:
    row = db.scalar(select(UserPrivacySettings).where(UserPrivacySettings.user_id == user_id))
    if row is None:
        row = UserPrivacySettings(user_id=user_id)
        db.add(row)
        db.flush()
    return row


def update_privacy(db: Session, row: UserPrivacySettings, **fields) -> UserPrivacySettings:
    for key, value in fields.items():
        if value is not None:
            setattr(row, key, value)
    db.flush()
    return row
