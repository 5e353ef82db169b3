"""
admin.py

Administrator API.

Key features:
- content access settings per item, and rule-based defaults per content type
- user listing and role management
- session maintenance
- admin action log

Every change is recorded in the admin action log by the service layer.

Related files:
- gnl_auth.services.access  : content access / rules
- gnl_auth.services.admin   : users / maintenance / logs

"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from gnl_auth.core.api_response import success_payload
from gnl_auth.core.deps import get_current_admin, get_db, require_permission
from gnl_auth.core.observability import client_ip, log_business_event
from gnl_auth.models.user import User, UserRole
from gnl_auth.schemas.admin import AdminLogOut, SetRoleRequest
from gnl_auth.schemas.auth import UserOut
from gnl_auth.schemas.content import ContentAccessIn, ContentAccessOut, RuleCreate, RuleOut, RuleUpdate
from gnl_auth.services import access as access_service
from gnl_auth.services import admin as admin_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

content_manager = require_permission("admin:manage_content")
user_manager = require_permission("admin:manage_users")


def _users(rows) -> list[dict]:
    return [UserOut.model_validate(u).model_dump(mode="json") for u in rows]


# content access settings

@router.get("/content/access")
def get_content_access(
    content_type: str | None = None,
    content_id: int | None = None,
    db: Session = Depends(get_db),
    current_admin: User = Depends(content_manager),
):
    if content_type and content_id is not None:
        row = access_service.get_content_access(db, content_type, content_id)
        return success_payload("Content access retrieved", ContentAccessOut.model_validate(row).model_dump())

    rows = access_service.list_content_access(db, content_type)
    items = [ContentAccessOut.model_validate(r).model_dump() for r in rows]
    return success_payload("Content access retrieved", {"items": items, "count": len(items)})


@router.post("/content/access")
def set_content_access(
    data: ContentAccessIn,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(content_manager),
):
    row = access_service.set_content_access(db, current_admin, ip=client_ip(request), **data.model_dump())
    log_business_event(
        logger,
        request,
        event="admin.content_access_set",
        actor_id=current_admin.id,
        content=f"{row.content_type}:{row.content_id}",
        visibility=row.visibility,
    )
    return success_payload("Content access updated", ContentAccessOut.model_validate(row).model_dump())


# content rules

@router.get("/content/rules")
def list_rules(
    content_type: str | None = None,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    current_admin: User = Depends(content_manager),
):
    rows = access_service.list_rules(db, content_type, include_inactive=include_inactive)
    items = [RuleOut.model_validate(r).model_dump() for r in rows]
    return success_payload("Content rules retrieved", {"items": items, "count": len(items)})


@router.post("/content/rules", status_code=201)
def create_rule(
    data: RuleCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(content_manager),
):
    rule = access_service.create_rule(db, current_admin, ip=client_ip(request), **data.model_dump())
    log_business_event(logger, request, event="admin.rule_created", actor_id=current_admin.id, rule_id=rule.id)
    return success_payload("Content rule created", RuleOut.model_validate(rule).model_dump())


@router.put("/content/rules/{rule_id}")
def update_rule(
    rule_id: int,
    data: RuleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(content_manager),
):
    rule = access_service.update_rule(
        db, current_admin, rule_id, ip=client_ip(request), **data.model_dump(exclude_none=True)
    )
    log_business_event(logger, request, event="admin.rule_updated", actor_id=current_admin.id, rule_id=rule.id)
    return success_payload("Content rule updated", RuleOut.model_validate(rule).model_dump())


@router.delete("/content/rules/{rule_id}")
def delete_rule(
    rule_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(content_manager),
):
    access_service.delete_rule(db, current_admin, rule_id, ip=client_ip(request))
    log_business_event(logger, request, event="admin.rule_deleted", actor_id=current_admin.id, rule_id=rule_id)
    return success_payload("Content rule deleted")


# users

@router.get("/users")
def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_admin: User = Depends(user_manager),
):
    rows, total = admin_service.list_users(db, page=page, page_size=page_size)
    return success_payload(
        "Users retrieved",
        {"items": _users(rows), "page": page, "page_size": page_size, "total": total},
    )


@router.get("/users/role/{role}")
def list_users_by_role(
    role: UserRole,
    db: Session = Depends(get_db),
    current_admin: User = Depends(user_manager),
):
    rows = admin_service.list_users_by_role(db, role)
    return success_payload("Users retrieved", {"items": _users(rows), "count": len(rows)})


# role change: guards live in services.admin.update_user_role
@router.put("/users/{user_id}/role")
def set_role(
    user_id: int,
    data: SetRoleRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(user_manager),
):
    user = admin_service.update_user_role(db, current_admin, user_id=user_id, role=data.role, ip=client_ip(request))
    log_business_event(
        logger,
        request,
        event="admin.role_changed",
        actor_id=current_admin.id,
        target_id=user.id,
        role=user.role.value,
    )
    return success_payload("Role updated", UserOut.model_validate(user).model_dump(mode="json"))


# maintenance / logs

@router.post("/sessions/maintenance")
def session_maintenance(
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    result = admin_service.run_session_maintenance(db, current_admin, ip=client_ip(request))
    log_business_event(logger, request, event="admin.session_maintenance", actor_id=current_admin.id, **result)
    return success_payload("Session maintenance completed", result)


@router.get("/logs")
def list_logs(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    rows = admin_service.list_admin_logs(db, limit=limit)
    items = [AdminLogOut.model_validate(r).model_dump(mode="json") for r in rows]
    return success_payload("Admin logs retrieved", {"items": items, "count": len(items)})
