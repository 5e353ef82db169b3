"""
store/tokens.py

Single-use token persistence (password reset, email verification).

``claim`` is the redemption primitive: a conditional UPDATE that flips
``used`` only while the token is still unused and unexpired. Exactly
one of several concurrent redeemers sees rowcount == 1.

"""

import datetime

from sqlalchemy import delete, or_, select, update
from sqlalchemy.orm import Session

from gnl_auth.core import clock
from gnl_auth.models.token import SingleUseToken, TokenPurpose


def create(
    db: Session,
    *,
    user_id: int,
    purpose: TokenPurpose,
    token: str,
    expires_at: datetime.datetime,
) -> SingleUseToken:
    row = SingleUseToken(
        user_id=user_id,
        purpose=purpose,
        token=token,
        expires_at=expires_at,
        used=False,
        created_at=clock.utcnow(),
    )
    db.add(row)
    db.flush()
    return row


def get_if_unused_and_unexpired(db: Session, token: str, purpose: TokenPurpose) -> SingleUseToken | None:
    return db.scalar(
        select(SingleUseToken).where(
            SingleUseToken.token == token,
            SingleUseToken.purpose == purpose,
            SingleUseToken.used.is_(False),
            SingleUseToken.expires_at > clock.utcnow(),
        )
    )


def mark_used(db: Session, row: SingleUseToken) -> None:
    row.used = True
    db.flush()


def claim(db: Session, token: str, purpose: TokenPurpose) -> SingleUseToken | None:
    now = clock.utcnow()
    result = db.execute(
        update(SingleUseToken)
        .where(
            SingleUseToken.token == token,
            SingleUseToken.purpose == purpose,
            SingleUseToken.used.is_(False),
            SingleUseToken.expires_at > now,
        )
        .values(used=True)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return None
    return db.scalar(
        select(SingleUseToken)
        .where(SingleUseToken.token == token)
        .execution_options(populate_existing=True)
    )


def purge_for_user(db: Session, user_id: int, purpose: TokenPurpose) -> int:
    result = db.execute(
        delete(SingleUseToken).where(
            SingleUseToken.user_id == user_id,
            SingleUseToken.purpose == purpose,
            SingleUseToken.used.is_(False),
        )
    )
    return result.rowcount or 0


def purge_expired_or_used(db: Session) -> int:
    result = db.execute(
        delete(SingleUseToken).where(
            or_(SingleUseToken.used.is_(True), SingleUseToken.expires_at <= clock.utcnow())
        )
    )
    return result.rowcount or 0
