"""
store/two_factor.py

TOTP record persistence.

Backup codes are stored as a JSON array in a text column. Consumption
is a compare-and-set against the exact text that was read; a lost race
re-reads the list and checks again, so one code is spent at most once.

"""

import json

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from gnl_auth.core import clock
from gnl_auth.models.two_factor import TwoFactorAuth

CONSUME_ATTEMPTS = 3


def encode_codes(codes: list[str]) -> str:
    return json.dumps(list(codes))


def decode_codes(raw: str | None) -> list[str]:
    if not raw:
        return []
    return list(json.loads(raw))


def get(db: Session, user_id: int) -> TwoFactorAuth | None:
    return db.scalar(
        select(TwoFactorAuth)
        .where(TwoFactorAuth.user_id == user_id)
        .execution_options(populate_existing=True)
    )


def upsert_secret(db: Session, user_id: int, secret: str) -> TwoFactorAuth:
    record = get(db, user_id)
    if record is None:
        record = TwoFactorAuth(user_id=user_id, secret=secret)
        db.add(record)
    record.secret = secret
    record.enabled = False
    record.verified = False
    record.backup_codes = encode_codes([])
    db.flush()
    return record


def set_flags(db: Session, record: TwoFactorAuth, *, enabled: bool, verified: bool) -> None:
    record.enabled = enabled
    record.verified = verified
    db.flush()


def replace_backup_codes(db: Session, record: TwoFactorAuth, codes: list[str]) -> None:
    record.backup_codes = encode_codes(codes)
    db.flush()


def enable_with_backup_codes(db: Session, record: TwoFactorAuth, codes: list[str]) -> None:
    record.enabled = True
    record.verified = True
    record.backup_codes = encode_codes(codes)
    record.last_used_at = clock.utcnow()
    db.flush()


def consume_backup_code(db: Session, user_id: int, code: str) -> bool:
    code = code.strip().upper()
    for _ in range(CONSUME_ATTEMPTS):
        record = get(db, user_id)
        if record is None:
            return False
        current = record.backup_codes
        codes = decode_codes(current)
        if code not in codes:
            return False
        remaining = [c for c in codes if c != code]
        result = db.execute(
            update(TwoFactorAuth)
            .where(TwoFactorAuth.user_id == user_id, TwoFactorAuth.backup_codes == current)
            .values(backup_codes=encode_codes(remaining), last_used_at=clock.utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return True
    return False


def touch(db: Session, record: TwoFactorAuth) -> None:
    record.last_used_at = clock.utcnow()
    db.flush()


def disable(db: Session, record: TwoFactorAuth) -> None:
    record.enabled = False
    record.verified = False
    record.backup_codes = encode_codes([])
    db.flush()
