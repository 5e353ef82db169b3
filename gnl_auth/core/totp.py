"""
totp.py

RFC 6238 time-based one-time passwords.

HMAC-SHA1, 6 digits, 30 second step. Verification accepts the current
step and one step on either side. Secrets are 160-bit base32 strings
without padding, the form authenticator apps expect.

Related files:
- gnl_auth.services.two_factor : enrollment / enable / disable flows

"""

import base64
import hashlib
import hmac
import secrets
import struct
import time
from typing import Optional
from urllib.parse import quote, urlencode

ISSUER = "Great Nigeria Platform"
DIGITS = 6
STEP_SECONDS = 30
SKEW_STEPS = 1
SECRET_BYTES = 20


def generate_secret() -> str:
    return base64.b32encode(secrets.token_bytes(SECRET_BYTES)).decode("ascii").rstrip("=")


def _decode_secret(secret: str) -> bytes:
    padded = secret.upper() + "=" * ((8 - len(secret) % 8) % 8)
    return base64.b32decode(padded)


def _hotp(key: bytes, counter: int) -> str:
    digest = hmac.new(key, struct.pack(">Q", counter), hashlib.sha1).digest()
    offset = digest[-1] & 0x0F
    code = struct.unpack(">I", digest[offset:offset + 4])[0] & 0x7FFFFFFF
    return str(code % 10 ** DIGITS).zfill(DIGITS)


def _counter(timestamp: Optional[float]) -> int:
    if timestamp is None:
        timestamp = time.time()
    return int(timestamp // STEP_SECONDS)


def generate_code(secret: str, timestamp: Optional[float] = None) -> str:
    return _hotp(_decode_secret(secret), _counter(timestamp))


def verify_code(secret: str, code: str, timestamp: Optional[float] = None) -> bool:
    if not code or len(code) != DIGITS or not code.isdigit():
        return False
    try:
        key = _decode_secret(secret)
    except (ValueError, TypeError):
        return False

    counter = _counter(timestamp)
    matched = False
    # every window is checked so timing does not reveal which step matched
    for offset in range(-SKEW_STEPS, SKEW_STEPS + 1):
        if hmac.compare_digest(_hotp(key, counter + offset), code):
            matched = True
    return matched


def provisioning_uri(secret: str, account_name: str, issuer: str = ISSUER) -> str:
    label = quote(f"{issuer}:{account_name}", safe=":@")
    query = urlencode(
        {
            "secret": secret,
            "issuer": issuer,
            "algorithm": "SHA1",
            "digits": str(DIGITS),
            "period": str(STEP_SECONDS),
        },
        quote_via=quote,
    )
    return f"otpauth://totp/{label}?{query}"
