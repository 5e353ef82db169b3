"""
moderator.py

Per-user content permission grants, managed by moderators and above.

A grant with can_view lets one user read one item regardless of its
visibility, until the optional expiry passes.

"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from gnl_auth.core.api_response import success_payload
from gnl_auth.core.deps import get_current_moderator, get_db
from gnl_auth.core.observability import client_ip, log_business_event
from gnl_auth.models.user import User
from gnl_auth.schemas.content import PermissionGrantIn, PermissionOut
from gnl_auth.services import access as access_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/moderator", tags=["moderator"])


@router.post("/content/permissions", status_code=201)
def grant_permission(
    data: PermissionGrantIn,
    request: Request,
    db: Session = Depends(get_db),
    current_moderator: User = Depends(get_current_moderator),
):
    row = access_service.grant_permission(db, current_moderator, ip=client_ip(request), **data.model_dump())
    log_business_event(
        logger,
        request,
        event="moderator.permission_granted",
        actor_id=current_moderator.id,
        user_id=row.user_id,
        content=f"{row.content_type}:{row.content_id}",
    )
    return success_payload("Permission granted", PermissionOut.model_validate(row).model_dump(mode="json"))


@router.delete("/content/permissions/{permission_id}")
def revoke_permission(
    permission_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_moderator: User = Depends(get_current_moderator),
):
    access_service.revoke_permission(db, current_moderator, permission_id, ip=client_ip(request))
    log_business_event(
        logger,
        request,
        event="moderator.permission_revoked",
        actor_id=current_moderator.id,
        permission_id=permission_id,
    )
    return success_payload("Permission revoked")


@router.get("/content/permissions/{user_id}")
def list_permissions(
    user_id: int,
    content_type: str | None = None,
    db: Session = Depends(get_db),
    current_moderator: User = Depends(get_current_moderator),
):
    rows = access_service.list_permissions(db, user_id, content_type)
    items = [PermissionOut.model_validate(r).model_dump(mode="json") for r in rows]
    return success_payload("Permissions retrieved", {"items": items, "count": len(items)})
