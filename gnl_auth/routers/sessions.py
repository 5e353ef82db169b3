"""
sessions.py

Device session management for the signed-in user.

- list active sessions (the current one is flagged)
- revoke one other session
- revoke every session except the current one

The current session is ended through /auth/logout, not here.

"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from gnl_auth.core.api_response import success_payload
from gnl_auth.core.deps import RequestIdentity, get_current_user, get_db, get_identity
from gnl_auth.core.errors import InvalidRequest
from gnl_auth.core.observability import log_business_event
from gnl_auth.models.user import User
from gnl_auth.schemas.account import RevokeSessionRequest, SessionOut
from gnl_auth.services import auth as auth_service
from gnl_auth.services import sessions as session_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/account/sessions", tags=["sessions"])


@router.get("")
def list_sessions(
    identity: RequestIdentity = Depends(get_identity),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rows = session_service.list_sessions(db, current_user.id)
    items = []
    for row in rows:
        item = SessionOut.model_validate(row).model_dump(mode="json")
        item["is_current"] = row.id == identity.session_id
        items.append(item)
    return success_payload("Sessions retrieved", {"items": items, "count": len(items)})


@router.post("/revoke")
def revoke_session(
    data: RevokeSessionRequest,
    request: Request,
    identity: RequestIdentity = Depends(get_identity),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if data.session_id == identity.session_id:
        raise InvalidRequest("Cannot revoke current session. Use logout instead.")
    auth_service.logout_session(db, user_id=current_user.id, session_id=data.session_id)
    log_business_event(logger, request, event="session.revoked", user_id=current_user.id)
    return success_payload("Session revoked successfully")


@router.post("/revoke-all")
def revoke_all_sessions(
    request: Request,
    identity: RequestIdentity = Depends(get_identity),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    count = auth_service.logout_all_except(db, user_id=current_user.id, keep_session_id=identity.session_id)
    log_business_event(logger, request, event="session.revoked_all", user_id=current_user.id, count=count)
    return success_payload("All other sessions revoked", {"revoked": count})
