"""
content.py

Content access check for readers.

Anonymous callers are allowed (public content); a bearer token, when
present, must be valid. The answer always comes back as a success
envelope carrying ``has_access``; a denial is not an HTTP error.

Related files:
- gnl_auth.services.access : decision engine

"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from gnl_auth.core.api_response import success_payload
from gnl_auth.core.deps import RequestIdentity, get_db, get_optional_identity
from gnl_auth.core.observability import log_business_event
from gnl_auth.schemas.content import CheckAccessRequest
from gnl_auth.services import access as access_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/content", tags=["content"])


@router.post("/check-access")
def check_access(
    data: CheckAccessRequest,
    request: Request,
    identity: RequestIdentity | None = Depends(get_optional_identity),
    db: Session = Depends(get_db),
):
    user_id = identity.user_id if identity else None
    decision = access_service.decide(db, user_id, data.content_type, data.content_id)
    log_business_event(
        logger,
        request,
        event="content.check_access",
        user_id=user_id,
        content=f"{data.content_type}:{data.content_id}",
        allowed=decision.allowed,
        reason=decision.reason.value if decision.reason else None,
    )
    return success_payload(
        decision.message,
        {
            "has_access": decision.allowed,
            "message": decision.message,
            "reason": decision.reason.value if decision.reason else None,
        },
    )
