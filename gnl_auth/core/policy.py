"""
policy.py

Static role -> permission table and the ownership rule.

Roles in ascending privilege: guest < user < moderator < admin < superadmin.
Each role holds every permission of the roles below it plus its own
additions; the table is computed once at import and never mutated.

Platform roles (basic .. superadmin on the User model) are folded onto
these policy roles by ``policy_role_for``.

Related files:
- gnl_auth.core.deps        : require_permission dependency
- gnl_auth.models.user      : UserRole

"""

from enum import Enum
from typing import Iterable

from gnl_auth.core.errors import Validation
from gnl_auth.models.user import UserRole


class PolicyRole(str, Enum):
    GUEST = "guest"
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


POLICY_ROLE_ORDER = [
    PolicyRole.GUEST,
    PolicyRole.USER,
    PolicyRole.MODERATOR,
    PolicyRole.ADMIN,
    PolicyRole.SUPERADMIN,
]

# permissions each role adds on top of the role below it
_ROLE_ADDITIONS: dict[PolicyRole, set[str]] = {
    PolicyRole.GUEST: {
        "content:read",
        "discussion:read",
        "group:read",
    },
    PolicyRole.USER: {
        "user:read_profile",
        "user:update_profile",
        "content:create",
        "content:update",
        "discussion:create",
        "discussion:update",
        "group:create",
        "group:update",
    },
    PolicyRole.MODERATOR: {
        "content:delete",
        "discussion:delete",
        "discussion:moderate",
        "group:manage",
    },
    PolicyRole.ADMIN: {
        "content:publish",
        "group:delete",
        "admin:manage_users",
        "admin:manage_content",
        "admin:view_analytics",
        "admin:manage_settings",
    },
    PolicyRole.SUPERADMIN: {
        "user:delete_profile",
        "admin:manage_system",
    },
}


def _closure() -> dict[PolicyRole, frozenset[str]]:
    table: dict[PolicyRole, frozenset[str]] = {}
    inherited: set[str] = set()
    for role in POLICY_ROLE_ORDER:
        inherited = inherited | _ROLE_ADDITIONS[role]
        table[role] = frozenset(inherited)
    return table


PERMISSIONS_BY_ROLE = _closure()

ALL_PERMISSIONS = PERMISSIONS_BY_ROLE[PolicyRole.SUPERADMIN]

OWNER_ACTIONS = {"update", "delete"}


def policy_role_for(role: UserRole | None) -> PolicyRole:
    if role is None:
        return PolicyRole.GUEST
    if role == UserRole.SUPERADMIN:
        return PolicyRole.SUPERADMIN
    if role == UserRole.ADMIN:
        return PolicyRole.ADMIN
    if role == UserRole.MODERATOR:
        return PolicyRole.MODERATOR
    return PolicyRole.USER


def _normalize(role) -> PolicyRole:
    if isinstance(role, PolicyRole):
        return role
    if isinstance(role, UserRole) or role is None:
        return policy_role_for(role)
    value = str(role).strip().lower()
    if value in PolicyRole._value2member_map_:
        return PolicyRole(value)
    if value in UserRole._value2member_map_:
        return policy_role_for(UserRole(value))
    return PolicyRole.GUEST


def permissions_for(role) -> frozenset[str]:
    return PERMISSIONS_BY_ROLE[_normalize(role)]


def has(role, permission: str) -> bool:
    return permission in permissions_for(role)


def has_any(role, permissions: Iterable[str]) -> bool:
    granted = permissions_for(role)
    return any(p in granted for p in permissions)


def has_all(role, permissions: Iterable[str]) -> bool:
    granted = permissions_for(role)
    return all(p in granted for p in permissions)


"""
Resource-level check with the ownership override

- the general permission "<resource>:<action>" admits the action outright
- for update/delete on a resource the actor owns, holding
  "<resource>:read" is enough

"""

def can_access(role, user_id: int | None, resource: str, action: str, owner_id: int | None) -> bool:
    if has(role, f"{resource}:{action}"):
        return True
    if action in OWNER_ACTIONS and user_id is not None and user_id == owner_id:
        return has(role, f"{resource}:read")
    return False


def validate_permissions(permissions: Iterable[str]) -> list[str]:
    permissions = list(permissions)
    invalid = [p for p in permissions if p not in ALL_PERMISSIONS]
    if invalid:
        raise Validation(f"Invalid permissions: {', '.join(invalid)}")
    return permissions
