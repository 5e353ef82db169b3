"""
services/access.py

Access decision engine and content-gating management.

``decide`` answers "may user U view content (type, id)?" by walking a
fixed procedure; the first definite answer wins:

    1. anonymous          -> public (or ungated) content only
    2. user lookup        -> missing / deleted / inactive users are denied
    3. admin              -> always allowed
    4. moderator          -> allowed unless the content is admin-only
    5. per-user grant     -> an unexpired can_view grant allows
    6. no effective gate  -> allowed
    7. visibility switch  -> registered / engaged / active / premium / moderators / admins

The effective gate is the item's ContentAccess row; when there is none,
the highest-priority active ContentAccessRule for the content type that
applies to the item stands in for it.

Related files:
- gnl_auth.store.content_access : records
- gnl_auth.routers.content      : /content/check-access
- gnl_auth.routers.admin        : /admin/content/*
- gnl_auth.routers.moderator    : /moderator/content/permissions

"""

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.orm import Session

from gnl_auth.core.config import settings
from gnl_auth.core.errors import InvalidRequest, NotFound
from gnl_auth.models.admin_log import AdminAction
from gnl_auth.models.content_access import ContentAccess, ContentAccessRule, UserContentPermission, Visibility
from gnl_auth.models.privacy import PrivacyLevel, UserPrivacySettings
from gnl_auth.models.user import TrustLevel, User, UserRole
from gnl_auth.store import audit as audit_store
from gnl_auth.store import content_access as access_store
from gnl_auth.store import users as user_store

logger = logging.getLogger(__name__)


class DenyReason(str, Enum):
    LOGIN_REQUIRED = "login_required"
    USER_NOT_FOUND = "user_not_found"
    INACTIVE = "inactive"
    REQUIRES_ENGAGED = "requires_engaged"
    REQUIRES_ACTIVE = "requires_active"
    REQUIRES_PREMIUM = "requires_premium"
    REQUIRES_TRUST_LEVEL = "requires_trust_level"
    REQUIRES_POINTS = "requires_points"
    MODERATOR_ONLY = "moderator_only"
    ADMIN_ONLY = "admin_only"
    UNKNOWN_VISIBILITY = "unknown_visibility"


DENY_MESSAGES = {
    DenyReason.LOGIN_REQUIRED: "You must be logged in to access this content",
    DenyReason.USER_NOT_FOUND: "User not found",
    DenyReason.INACTIVE: "Your account is inactive",
    DenyReason.REQUIRES_ENGAGED: "You need to be an Engaged user to access this content",
    DenyReason.REQUIRES_ACTIVE: "You need to be an Active user to access this content",
    DenyReason.REQUIRES_PREMIUM: "This content requires a Premium membership",
    DenyReason.REQUIRES_TRUST_LEVEL: "Your trust level is too low to access this content",
    DenyReason.REQUIRES_POINTS: "You need more points to access this content",
    DenyReason.MODERATOR_ONLY: "This content is only accessible to moderators",
    DenyReason.ADMIN_ONLY: "This content is only accessible to administrators",
    DenyReason.UNKNOWN_VISIBILITY: "This content is not available",
}


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: DenyReason | None = None
    detail: str | None = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(True)

    @classmethod
    def deny(cls, reason: DenyReason, detail: str | None = None) -> "AccessDecision":
        return cls(False, reason, detail)

    @property
    def message(self) -> str:
        if self.allowed:
            return "Access granted"
        if self.reason is DenyReason.REQUIRES_TRUST_LEVEL and self.detail:
            return f"You need trust level '{self.detail}' to access this content"
        return DENY_MESSAGES[self.reason]


@dataclass(frozen=True)
class EffectiveGate:
    visibility: str
    min_points_required: int = 0
    is_premium: bool = False
    min_trust_level: str | None = None
    moderator_only: bool = False
    admin_only: bool = False
    from_rule: bool = False


def _rule_applies(rule: ContentAccessRule, content_id: int) -> bool:
    target = (rule.applies_to or "").strip().lower()
    if target in ("", "all", "*"):
        return True
    ids = {part.strip() for part in target.split(",") if part.strip()}
    return str(content_id) in ids


def effective_gate(db: Session, content_type: str, content_id: int) -> EffectiveGate | None:
    row = access_store.get_access(db, content_type, content_id)
    if row is not None:
        return EffectiveGate(
            visibility=row.visibility,
            min_points_required=row.min_points_required,
            is_premium=row.is_premium,
        )
    # rules come back ordered by priority desc, id asc
    for rule in access_store.list_rules(db, content_type):
        if _rule_applies(rule, content_id):
            return EffectiveGate(
                visibility=rule.visibility,
                min_points_required=rule.min_points_required,
                is_premium=rule.is_premium_only,
                min_trust_level=rule.min_trust_level,
                moderator_only=rule.is_moderator_only,
                admin_only=rule.is_admin_only,
                from_rule=True,
            )
    return None


def _is_admin_only(gate: EffectiveGate | None) -> bool:
    return gate is not None and (gate.visibility == Visibility.ADMINS.value or gate.admin_only)


def _check_rule_flags(user: User, gate: EffectiveGate) -> AccessDecision | None:
    if gate.admin_only:
        return AccessDecision.deny(DenyReason.ADMIN_ONLY)
    if gate.moderator_only:
        return AccessDecision.deny(DenyReason.MODERATOR_ONLY)
    if gate.is_premium and not user.is_premium:
        return AccessDecision.deny(DenyReason.REQUIRES_PREMIUM)
    if gate.min_trust_level:
        try:
            required = TrustLevel(gate.min_trust_level)
        except ValueError:
            logger.warning("access rule has unknown trust level value=%s", gate.min_trust_level)
            required = None
        if required is not None and not user.trust_level.at_least(required):
            return AccessDecision.deny(DenyReason.REQUIRES_TRUST_LEVEL, required.value)
    return None


def _visibility_decision(user: User, gate: EffectiveGate, content_type: str, content_id: int) -> AccessDecision:
    visibility = gate.visibility
    points = user.points_balance or 0

    if visibility in (Visibility.PUBLIC.value, Visibility.REGISTERED.value):
        if gate.from_rule and gate.min_points_required and points < gate.min_points_required:
            return AccessDecision.deny(DenyReason.REQUIRES_POINTS)
        return AccessDecision.allow()
    if visibility == Visibility.ENGAGED.value:
        if user.role.at_least(UserRole.ENGAGED) or points >= gate.min_points_required:
            return AccessDecision.allow()
        return AccessDecision.deny(DenyReason.REQUIRES_ENGAGED)
    if visibility == Visibility.ACTIVE.value:
        if user.role.at_least(UserRole.ACTIVE) or points >= gate.min_points_required:
            return AccessDecision.allow()
        return AccessDecision.deny(DenyReason.REQUIRES_ACTIVE)
    if visibility == Visibility.PREMIUM.value:
        if user.is_premium:
            return AccessDecision.allow()
        return AccessDecision.deny(DenyReason.REQUIRES_PREMIUM)
    if visibility == Visibility.MODERATORS.value:
        return AccessDecision.deny(DenyReason.MODERATOR_ONLY)
    if visibility == Visibility.ADMINS.value:
        return AccessDecision.deny(DenyReason.ADMIN_ONLY)

    logger.warning(
        "unknown content visibility content_type=%s content_id=%s visibility=%s",
        content_type,
        content_id,
        visibility,
    )
    if settings.ACCESS_FAIL_CLOSED_ON_UNKNOWN_VISIBILITY:
        return AccessDecision.deny(DenyReason.UNKNOWN_VISIBILITY)
    return AccessDecision.allow()


def decide(db: Session, user_id: int | None, content_type: str, content_id: int) -> AccessDecision:
    gate = effective_gate(db, content_type, content_id)

    if user_id is None:
        if gate is None or (gate.visibility == Visibility.PUBLIC.value and not _has_flags(gate)):
            return AccessDecision.allow()
        return AccessDecision.deny(DenyReason.LOGIN_REQUIRED)

    user = user_store.by_id(db, user_id)
    if user is None:
        return AccessDecision.deny(DenyReason.USER_NOT_FOUND)
    if not user.is_active:
        return AccessDecision.deny(DenyReason.INACTIVE)

    if user.role.at_least(UserRole.ADMIN):
        return AccessDecision.allow()

    if user.role.at_least(UserRole.MODERATOR):
        if _is_admin_only(gate):
            return AccessDecision.deny(DenyReason.ADMIN_ONLY)
        return AccessDecision.allow()

    if access_store.active_grant(db, user.id, content_type, content_id) is not None:
        return AccessDecision.allow()

    if gate is None:
        return AccessDecision.allow()

    if gate.from_rule:
        flagged = _check_rule_flags(user, gate)
        if flagged is not None:
            return flagged

    return _visibility_decision(user, gate, content_type, content_id)


def _has_flags(gate: EffectiveGate) -> bool:
    return bool(
        gate.from_rule
        and (gate.admin_only or gate.moderator_only or gate.is_premium or gate.min_trust_level or gate.min_points_required)
    )


# management

def _validate_visibility(value: str) -> str:
    value = (value or "").strip().lower()
    if value not in Visibility._value2member_map_:
        raise InvalidRequest(f"Unknown visibility '{value}'")
    return value


def set_content_access(
    db: Session,
    actor: User,
    *,
    content_type: str,
    content_id: int,
    visibility: str,
    min_points_required: int = 0,
    is_premium: bool = False,
    ip: str | None = None,
) -> ContentAccess:
    row = access_store.upsert_access(
        db,
        content_type=content_type,
        content_id=content_id,
        visibility=_validate_visibility(visibility),
        min_points_required=min_points_required,
        is_premium=is_premium,
    )
    audit_store.write_admin_log(
        db,
        actor_id=actor.id,
        action=AdminAction.SET_CONTENT_ACCESS,
        target_ref=f"{content_type}:{content_id}",
        detail=f"visibility={row.visibility} min_points={row.min_points_required} premium={row.is_premium}",
        ip=ip,
    )
    db.commit()
    db.refresh(row)
    return row


def get_content_access(db: Session, content_type: str, content_id: int) -> ContentAccess:
    row = access_store.get_access(db, content_type, content_id)
    if row is None:
        raise NotFound("Content access settings not found")
    return row


def list_content_access(db: Session, content_type: str | None = None) -> list[ContentAccess]:
    return access_store.list_access(db, content_type)


_RULE_FIELDS = (
    "name",
    "description",
    "applies_to",
    "visibility",
    "min_points_required",
    "min_trust_level",
    "is_premium_only",
    "is_moderator_only",
    "is_admin_only",
    "is_active",
    "priority",
)


def _clean_rule_fields(fields: dict) -> dict:
    cleaned = {k: v for k, v in fields.items() if k in _RULE_FIELDS and v is not None}
    if "visibility" in cleaned:
        cleaned["visibility"] = _validate_visibility(cleaned["visibility"])
    if "min_trust_level" in cleaned and cleaned["min_trust_level"] not in TrustLevel._value2member_map_:
        raise InvalidRequest(f"Unknown trust level '{cleaned['min_trust_level']}'")
    return cleaned


def create_rule(db: Session, actor: User, *, content_type: str, ip: str | None = None, **fields) -> ContentAccessRule:
    rule = access_store.create_rule(
        db,
        content_type=content_type,
        created_by=actor.id,
        updated_by=actor.id,
        **_clean_rule_fields(fields),
    )
    audit_store.write_admin_log(
        db,
        actor_id=actor.id,
        action=AdminAction.CREATE_RULE,
        target_ref=f"rule:{rule.id}",
        detail=f"{content_type} {rule.visibility} priority={rule.priority}",
        ip=ip,
    )
    db.commit()
    db.refresh(rule)
    return rule


def update_rule(db: Session, actor: User, rule_id: int, *, ip: str | None = None, **fields) -> ContentAccessRule:
    rule = access_store.get_rule(db, rule_id)
    if rule is None:
        raise NotFound("Content rule not found")
    access_store.update_rule(db, rule, updated_by=actor.id, **_clean_rule_fields(fields))
    audit_store.write_admin_log(
        db,
        actor_id=actor.id,
        action=AdminAction.UPDATE_RULE,
        target_ref=f"rule:{rule.id}",
        ip=ip,
    )
    db.commit()
    db.refresh(rule)
    return rule


def delete_rule(db: Session, actor: User, rule_id: int, *, ip: str | None = None) -> None:
    rule = access_store.get_rule(db, rule_id)
    if rule is None:
        raise NotFound("Content rule not found")
    access_store.delete_rule(db, rule)
    audit_store.write_admin_log(
        db,
        actor_id=actor.id,
        action=AdminAction.DELETE_RULE,
        target_ref=f"rule:{rule_id}",
        ip=ip,
    )
    db.commit()


def list_rules(db: Session, content_type: str | None = None, *, include_inactive: bool = False) -> list[ContentAccessRule]:
    return access_store.list_rules(db, content_type, include_inactive=include_inactive)


def grant_permission(
    db: Session,
    actor: User,
    *,
    user_id: int,
    content_type: str,
    content_id: int,
    can_view: bool = True,
    can_comment: bool = False,
    can_edit: bool = False,
    expires_at=None,
    ip: str | None = None,
) -> UserContentPermission:
    if user_store.by_id(db, user_id) is None:
        raise NotFound("User not found")
    row = access_store.create_permission(
        db,
        user_id=user_id,
        content_type=content_type,
        content_id=content_id,
        can_view=can_view,
        can_comment=can_comment,
        can_edit=can_edit,
        granted_by=actor.id,
        expires_at=expires_at,
    )
    audit_store.write_admin_log(
        db,
        actor_id=actor.id,
        action=AdminAction.GRANT_PERMISSION,
        target_user_id=user_id,
        target_ref=f"{content_type}:{content_id}",
        ip=ip,
    )
    db.commit()
    db.refresh(row)
    return row


def revoke_permission(db: Session, actor: User, permission_id: int, *, ip: str | None = None) -> None:
    row = access_store.get_permission(db, permission_id)
    if row is None:
        raise NotFound("Permission not found")
    target_user_id = row.user_id
    target_ref = f"{row.content_type}:{row.content_id}"
    access_store.delete_permission(db, row)
    audit_store.write_admin_log(
        db,
        actor_id=actor.id,
        action=AdminAction.REVOKE_PERMISSION,
        target_user_id=target_user_id,
        target_ref=target_ref,
        ip=ip,
    )
    db.commit()


def list_permissions(db: Session, user_id: int, content_type: str | None = None) -> list[UserContentPermission]:
    return access_store.list_permissions_for_user(db, user_id, content_type)


# privacy

_PRIVACY_LEVELS = {level.value for level in PrivacyLevel}


def get_privacy(db: Session, user_id: int) -> UserPrivacySettings:
    row = access_store.get_or_create_privacy(db, user_id)
    db.commit()
    return row


def update_privacy(db: Session, user_id: int, **fields) -> UserPrivacySettings:
    for key in ("profile_visibility", "activity_visibility", "contact_info_visibility"):
        value = fields.get(key)
        if value is not None and value not in _PRIVACY_LEVELS:
            raise InvalidRequest(f"Unknown privacy level '{value}'")
    row = access_store.get_or_create_privacy(db, user_id)
    access_store.update_privacy(db, row, **fields)
    db.commit()
    db.refresh(row)
    return row


def can_view_profile(db: Session, viewer: User | None, owner: User) -> bool:
    if viewer is not None and (viewer.id == owner.id or viewer.role.at_least(UserRole.MODERATOR)):
        return True
    level = access_store.get_or_create_privacy(db, owner.id).profile_visibility
    if level == PrivacyLevel.PUBLIC.value:
        return True
    if level in (PrivacyLevel.REGISTERED.value, PrivacyLevel.FRIENDS.value):
        # friendship lives outside this service; any signed-in user qualifies
        return viewer is not None
    return False
