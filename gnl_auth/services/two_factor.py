"""
services/two_factor.py

TOTP two-factor authentication.

Key features:
- enrollment: fresh secret + otpauth URI (issuer "Great Nigeria Platform", account = email)
- verification with a 30 s step and one step of clock skew
- enable: verified code, then flags and 8 backup codes in one commit
- disable: current code and the account password
- single-use backup codes, format XXXX-XXXX-XX

Related files:
- gnl_auth.core.totp        : RFC 6238 primitives
- gnl_auth.store.two_factor : record persistence / backup-code compare-and-set
- gnl_auth.services.auth    : second login step

"""

import logging
import secrets

from sqlalchemy.orm import Session

from gnl_auth.core import totp
from gnl_auth.core.errors import InvalidCode, InvalidPassword, InvalidRequest, TwoFANotEnrolled
from gnl_auth.core.security import verify_password
from gnl_auth.models.two_factor import TwoFactorAuth
from gnl_auth.models.user import User
from gnl_auth.store import two_factor as two_factor_store

logger = logging.getLogger(__name__)

BACKUP_CODE_COUNT = 8
BACKUP_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
BACKUP_CODE_GROUPS = (4, 4, 2)


def generate_backup_code() -> str:
    groups = [
        "".join(secrets.choice(BACKUP_CODE_ALPHABET) for _ in range(size))
        for size in BACKUP_CODE_GROUPS
    ]
    return "-".join(groups)


def generate_backup_codes(count: int = BACKUP_CODE_COUNT) -> list[str]:
    codes: list[str] = []
    while len(codes) < count:
        code = generate_backup_code()
        if code not in codes:
            codes.append(code)
    return codes


def _require_record(db: Session, user: User) -> TwoFactorAuth:
    record = two_factor_store.get(db, user.id)
    if record is None:
        raise TwoFANotEnrolled()
    return record


def _password_matches(user: User, password: str) -> bool:
    if not user.password_hash or not password:
        return False
    return verify_password(password, user.password_hash)


def setup(db: Session, user: User) -> dict:
    # an enabled record is only reset through disable (code + password)
    if is_enabled(db, user.id):
        raise InvalidRequest("Two-factor authentication is already enabled")
    secret = totp.generate_secret()
    two_factor_store.upsert_secret(db, user.id, secret)
    db.commit()
    logger.info("2fa setup user_id=%s", user.id)
    return {
        "secret": secret,
        "qr_code_url": totp.provisioning_uri(secret, user.email),
    }


def verify(db: Session, user: User, code: str) -> TwoFactorAuth:
    record = _require_record(db, user)
    if not totp.verify_code(record.secret, code):
        raise InvalidCode()
    if not record.verified:
        two_factor_store.set_flags(db, record, enabled=record.enabled, verified=True)
        db.commit()
    return record


"""
Enable 2FA

- the code must verify against the pending secret
- enabled flag and the fresh backup codes are written in one commit
- returns the plaintext backup codes; they are never shown again

"""

def enable(db: Session, user: User, code: str) -> list[str]:
    record = _require_record(db, user)
    if record.enabled:
        raise InvalidRequest("Two-factor authentication is already enabled")
    if not totp.verify_code(record.secret, code):
        raise InvalidCode()

    codes = generate_backup_codes()
    two_factor_store.enable_with_backup_codes(db, record, codes)
    db.commit()
    logger.info("2fa enabled user_id=%s", user.id)
    return codes


def disable(db: Session, user: User, code: str, password: str) -> None:
    record = _require_record(db, user)
    if not record.enabled:
        raise TwoFANotEnrolled("Two-factor authentication is not enabled")
    if not _password_matches(user, password):
        raise InvalidPassword()
    if not totp.verify_code(record.secret, code):
        raise InvalidCode()

    two_factor_store.disable(db, record)
    db.commit()
    logger.info("2fa disabled user_id=%s", user.id)


def is_enabled(db: Session, user_id: int) -> bool:
    record = two_factor_store.get(db, user_id)
    return bool(record and record.enabled)


def validate_code(db: Session, user: User, code: str) -> None:
    record = _require_record(db, user)
    if not record.enabled:
        raise TwoFANotEnrolled("Two-factor authentication is not enabled")
    if not totp.verify_code(record.secret, code):
        raise InvalidCode()
    two_factor_store.touch(db, record)


def consume_backup_code(db: Session, user: User, code: str) -> int:
    record = _require_record(db, user)
    if not record.enabled:
        raise TwoFANotEnrolled("Two-factor authentication is not enabled")
    if not two_factor_store.decode_codes(record.backup_codes):
        raise InvalidCode("No backup codes remaining")
    if not two_factor_store.consume_backup_code(db, user.id, code or ""):
        raise InvalidCode("Invalid backup code")
    db.commit()

    remaining = len(two_factor_store.decode_codes(_require_record(db, user).backup_codes))
    logger.info("2fa backup code used user_id=%s remaining=%s", user.id, remaining)
    return remaining


def regenerate_backup_codes(db: Session, user: User) -> list[str]:
    record = _require_record(db, user)
    if not record.enabled:
        raise TwoFANotEnrolled("Two-factor authentication is not enabled")
    codes = generate_backup_codes()
    two_factor_store.replace_backup_codes(db, record, codes)
    db.commit()
    return codes


def status(db: Session, user: User) -> dict:
    record = two_factor_store.get(db, user.id)
    if record is None:
        return {"enabled": False, "verified": False, "method": "none", "backup_codes_remaining": 0}
    return {
        "enabled": record.enabled,
        "verified": record.verified,
        "method": "app" if record.enabled else "none",
        "backup_codes_remaining": len(two_factor_store.decode_codes(record.backup_codes)),
    }
