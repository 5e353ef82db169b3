"""
security.py

Password hashing and password-strength policy.

Provides only low-level primitives used by the credential service;
no routing or business flow lives here.

Key features:
- bcrypt hashing via passlib with a configurable cost
- constant-time verification
- malformed input reported as HashingFailed instead of leaking library errors
- password strength check shared by registration, reset and change-password

Related files:
- gnl_auth.core.config      : BCRYPT_ROUNDS
- gnl_auth.services.auth    : registration / login / reset flows

"""

import re

from passlib.context import CryptContext

from gnl_auth.core.config import settings
from gnl_auth.core.errors import HashingFailed


# deprecated="auto" lets hashes with an outdated cost be rehashed on login
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=max(settings.BCRYPT_ROUNDS, 10),
)

MIN_PASSWORD_LENGTH = 8

_LETTER = re.compile(r"[A-Za-z]")
_DIGIT = re.compile(r"\d")


"""
Hash a plaintext password

- returns the bcrypt hash string stored in users.password_hash
- empty or non-string input raises HashingFailed

"""

def hash_password(password: str) -> str:
    if not isinstance(password, str) or not password:
        raise HashingFailed("Password must be a non-empty string")
    try:
        return pwd_context.hash(password)
    except (TypeError, ValueError) as e:
        raise HashingFailed() from e


"""
Verify a plaintext password against a stored hash

- comparison is constant-time inside passlib
- an unidentifiable or empty hash raises HashingFailed

"""

def verify_password(password: str, hashed: str | None) -> bool:
    if not isinstance(password, str) or not isinstance(hashed, str) or not hashed:
        raise HashingFailed("Malformed password or hash")
    try:
        return pwd_context.verify(password, hashed)
    except (TypeError, ValueError) as e:
        raise HashingFailed("Malformed password hash") from e


def password_is_strong(password: str) -> bool:
    return (
        len(password) >= MIN_PASSWORD_LENGTH
        and bool(_LETTER.search(password))
        and bool(_DIGIT.search(password))
    )
