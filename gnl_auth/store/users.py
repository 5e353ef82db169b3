"""
store/users.py

User persistence.

Reads return None when nothing matches. Writes flush but never commit;
the calling service owns the transaction. Unique-constraint violations
surface as DuplicateEmail / DuplicateUsername.

"""

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gnl_auth.core import clock
from gnl_auth.core.errors import Duplicate, DuplicateEmail, DuplicateUsername
from gnl_auth.models.user import User, UserRole


def _flush_or_duplicate(db: Session, user: User) -> None:
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        text = str(e.orig).lower()
        if "email" in text:
            raise DuplicateEmail() from e
        if "username" in text:
            raise DuplicateUsername() from e
        raise Duplicate() from e


def create(db: Session, **fields) -> User:
    user = User(**fields)
    db.add(user)
    _flush_or_duplicate(db, user)
    return user


def by_id(db: Session, user_id: int, *, include_deleted: bool = False) -> User | None:
    stmt = select(User).where(User.id == user_id)
    if not include_deleted:
        stmt = stmt.where(User.is_deleted.is_(False))
    return db.scalar(stmt)


def by_email(db: Session, email: str, *, include_deleted: bool = False) -> User | None:
    stmt = select(User).where(func.lower(User.email) == email.strip().lower())
    if not include_deleted:
        stmt = stmt.where(User.is_deleted.is_(False))
    return db.scalar(stmt)


def by_username(db: Session, username: str, *, include_deleted: bool = False) -> User | None:
    stmt = select(User).where(User.username == username)
    if not include_deleted:
        stmt = stmt.where(User.is_deleted.is_(False))
    return db.scalar(stmt)


def by_external_identity(db: Session, provider: str, subject: str) -> User | None:
    return db.scalar(
        select(User).where(
            User.oauth_provider == provider,
            User.oauth_subject == subject,
            User.is_deleted.is_(False),
        )
    )


# uniqueness is checked against deleted rows as well, since the constraint is table-wide

def email_exists(db: Session, email: str) -> bool:
    return by_email(db, email, include_deleted=True) is not None


def username_exists(db: Session, username: str) -> bool:
    return by_username(db, username, include_deleted=True) is not None


def update_user(db: Session, user: User, **fields) -> User:
    for key, value in fields.items():
        setattr(user, key, value)
    _flush_or_duplicate(db, user)
    return user


def update_password(db: Session, user: User, password_hash: str) -> User:
    user.password_hash = password_hash
    user.refresh_token_version += 1
    db.flush()
    return user


def update_last_login(db: Session, user: User) -> None:
    user.last_login = clock.utcnow()
    db.flush()


def update_verified(db: Session, user: User, verified: bool = True) -> None:
    user.is_verified = verified
    db.flush()


def update_role(db: Session, user: User, role: UserRole) -> None:
    user.role = role
    db.flush()


def bump_refresh_token_version(db: Session, user_id: int, expected: int) -> bool:
    result = db.execute(
        update(User)
        .where(User.id == user_id, User.refresh_token_version == expected)
        .values(refresh_token_version=expected + 1)
    )
    return result.rowcount == 1


def soft_delete(db: Session, user: User) -> None:
    user.is_deleted = True
    user.is_active = False
    user.deleted_at = clock.utcnow()
    user.refresh_token_version += 1
    db.flush()


def list_users(db: Session, *, page: int = 1, page_size: int = 20) -> tuple[list[User], int]:
    base = select(User).where(User.is_deleted.is_(False))
    total = db.scalar(select(func.count()).select_from(base.subquery())) or 0
    rows = db.scalars(
        base.order_by(User.id.asc()).offset((page - 1) * page_size).limit(page_size)
    ).all()
    return list(rows), int(total)


def list_by_role(db: Session, role: UserRole) -> list[User]:
    return list(
        db.scalars(
            select(User)
            .where(User.role == role, User.is_deleted.is_(False))
            .order_by(User.id.asc())
        ).all()
    )
