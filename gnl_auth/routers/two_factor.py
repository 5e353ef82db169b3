"""
two_factor.py

TOTP two-factor management for the signed-in user.

Flow:
1. POST /account/2fa/setup   -> secret + otpauth URI (QR code)
2. POST /account/2fa/verify  -> proves the authenticator app works
3. POST /account/2fa/enable  -> turns 2FA on, returns 8 backup codes (shown once)

Backup codes are single-use; the remaining count is exposed, never the codes.

Related files:
- gnl_auth.services.two_factor : engine

"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from gnl_auth.core.api_response import success_payload
from gnl_auth.core.deps import get_current_user, get_db
from gnl_auth.core.observability import log_business_event
from gnl_auth.models.user import User
from gnl_auth.schemas.account import BackupCodeRequest, TwoFactorCodeRequest, TwoFactorDisableRequest
from gnl_auth.services import two_factor as two_factor_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/account/2fa", tags=["two-factor"])


@router.get("/status")
def status(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return success_payload("Two-factor status retrieved", two_factor_service.status(db, current_user))


@router.post("/setup")
def setup(request: Request, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    data = two_factor_service.setup(db, current_user)
    log_business_event(logger, request, event="2fa.setup", user_id=current_user.id)
    return success_payload("Scan the QR code with your authenticator app", data)


@router.post("/verify")
def verify(
    data: TwoFactorCodeRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    two_factor_service.verify(db, current_user, data.code)
    log_business_event(logger, request, event="2fa.verified", user_id=current_user.id)
    return success_payload("Code verified", {"verified": True})


@router.post("/enable")
def enable(
    data: TwoFactorCodeRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    codes = two_factor_service.enable(db, current_user, data.code)
    log_business_event(logger, request, event="2fa.enabled", user_id=current_user.id)
    return success_payload("Two-factor authentication enabled", {"backup_codes": codes})


@router.post("/disable")
def disable(
    data: TwoFactorDisableRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    two_factor_service.disable(db, current_user, data.code, data.password)
    log_business_event(logger, request, event="2fa.disabled", user_id=current_user.id)
    return success_payload("Two-factor authentication disabled")


@router.post("/validate-backup")
def validate_backup(
    data: BackupCodeRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    remaining = two_factor_service.consume_backup_code(db, current_user, data.code)
    log_business_event(logger, request, event="2fa.backup_code_used", user_id=current_user.id, remaining=remaining)
    return success_payload("Backup code accepted", {"backup_codes_remaining": remaining})


@router.get("/backup-codes")
def backup_codes_remaining(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    remaining = two_factor_service.status(db, current_user)["backup_codes_remaining"]
    return success_payload("Backup codes retrieved", {"backup_codes_remaining": remaining})


@router.post("/backup-codes")
def regenerate_backup_codes(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    codes = two_factor_service.regenerate_backup_codes(db, current_user)
    log_business_event(logger, request, event="2fa.backup_codes_regenerated", user_id=current_user.id)
    return success_payload("Backup codes regenerated", {"backup_codes": codes})
