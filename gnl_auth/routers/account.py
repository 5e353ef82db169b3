"""
account.py

Self-service account API for signed-in users.

Key features:
- profile read / partial update
- password change (other sessions are signed out)
- privacy settings
- account deletion (soft delete)

Related files:
- gnl_auth.services.auth    : password / profile / deletion
- gnl_auth.services.access  : privacy settings

"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from gnl_auth.core.api_response import success_payload
from gnl_auth.core.deps import RequestIdentity, get_current_user, get_db, get_identity
from gnl_auth.core.errors import Validation
from gnl_auth.core.observability import log_business_event
from gnl_auth.models.user import User
from gnl_auth.schemas.account import (
    ChangePasswordRequest,
    DeleteAccountRequest,
    EditProfileRequest,
    PrivacySettingsIn,
    PrivacySettingsOut,
)
from gnl_auth.schemas.auth import UserOut
from gnl_auth.services import access as access_service
from gnl_auth.services import auth as auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/account", tags=["account"])


@router.get("/profile")
def get_profile(current_user: User = Depends(get_current_user)):
    return success_payload("Profile retrieved", UserOut.model_validate(current_user).model_dump(mode="json"))


@router.patch("/profile")
def edit_profile(
    data: EditProfileRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = auth_service.update_profile(db, current_user, **data.model_dump())
    log_business_event(logger, request, event="account.profile_updated", user_id=user.id)
    return success_payload("Profile updated", UserOut.model_validate(user).model_dump(mode="json"))


"""
Password change API

- the current password is required
- the new password must differ and pass the strength policy
- every other session of the user is signed out

"""

@router.patch("/password")
def change_password(
    data: ChangePasswordRequest,
    request: Request,
    identity: RequestIdentity = Depends(get_identity),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if data.new_password != data.confirm_password:
        raise Validation("Passwords do not match")

    auth_service.change_password(
        db,
        current_user,
        current_password=data.current_password,
        new_password=data.new_password,
        keep_session_id=identity.session_id,
    )
    log_business_event(logger, request, event="account.password_changed", user_id=current_user.id)
    return success_payload("Password changed successfully")


@router.get("/privacy")
def get_privacy(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    row = access_service.get_privacy(db, current_user.id)
    return success_payload("Privacy settings retrieved", PrivacySettingsOut.model_validate(row).model_dump())


@router.put("/privacy")
def update_privacy(
    data: PrivacySettingsIn,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    row = access_service.update_privacy(db, current_user.id, **data.model_dump(exclude_none=True))
    log_business_event(logger, request, event="account.privacy_updated", user_id=current_user.id)
    return success_payload("Privacy settings updated", PrivacySettingsOut.model_validate(row).model_dump())


"""
Account deletion API

- the password is re-checked
- the row is kept (soft delete) and every session is revoked
- administrators cannot delete themselves

"""

@router.delete("/delete")
def delete_account(
    data: DeleteAccountRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    auth_service.delete_account(db, current_user, password=data.password)
    log_business_event(logger, request, event="account.deleted", user_id=current_user.id)
    return success_payload("Account deleted successfully")
