"""
users.py

Public profile lookup.

The owner's privacy settings decide who may see the profile:
- public      : anyone, signed in or not
- registered  : any signed-in user
- private     : the owner and moderators+

"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from gnl_auth.core.api_response import success_payload
from gnl_auth.core.deps import RequestIdentity, get_db, get_optional_identity
from gnl_auth.core.errors import Forbidden, NotFound
from gnl_auth.schemas.account import PublicProfileOut
from gnl_auth.services import access as access_service
from gnl_auth.store import users as user_store

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}/profile")
def public_profile(
    user_id: int,
    identity: RequestIdentity | None = Depends(get_optional_identity),
    db: Session = Depends(get_db),
):
    owner = user_store.by_id(db, user_id)
    if owner is None or not owner.is_active:
        raise NotFound("User not found")

    viewer = user_store.by_id(db, identity.user_id) if identity else None
    if not access_service.can_view_profile(db, viewer, owner):
        raise Forbidden("This profile is private")
    return success_payload("Profile retrieved", PublicProfileOut.model_validate(owner).model_dump(mode="json"))
