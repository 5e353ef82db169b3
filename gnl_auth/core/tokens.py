"""
tokens.py

JWT token signer.

Issues and verifies the signed bearer tokens used by the platform. Every
token is HS256-signed and carries the claim keys existing clients rely on:
``user_id, username, email, role, session_id`` plus ``iat, nbf, exp, iss, sub``.

Token classes:
- access        : short-lived, presented on every request
- refresh       : long-lived, bound to a server-side session when one exists
- 2fa_challenge : short-lived proof that the password step of a login passed
- oauth_state   : signed state parameter for the OAuth redirect dance

Design principles:
- the algorithm header is checked before any signature work
- tokens are signed with the newest key; any configured key verifies
- failures surface as InvalidSignature / Expired / Malformed / UnexpectedAlgorithm

Related files:
- gnl_auth.core.config      : SECRET_KEY, PREVIOUS_SECRET_KEYS, lifetimes
- gnl_auth.core.deps        : bearer verification for incoming requests
- gnl_auth.services.auth    : token pairs for login / refresh

"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional

from jose import jwt, JWTError, ExpiredSignatureError
from jose.exceptions import JWTClaimsError

from gnl_auth.core.config import settings
from gnl_auth.core.errors import Expired, InvalidSignature, Malformed, UnexpectedAlgorithm

TokenType = Literal["access", "refresh", "2fa_challenge", "oauth_state"]


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime
    token_type: str = "bearer"

    @property
    def expires_in(self) -> int:
        return int((self.access_expires_at - datetime.now(timezone.utc)).total_seconds())


class TokenSigner:
    def __init__(
        self,
        signing_keys: list[str],
        *,
        algorithm: str = "HS256",
        issuer: str = "great-nigeria-library",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        long_refresh_ttl: timedelta = timedelta(days=30),
        challenge_ttl: timedelta = timedelta(minutes=5),
        state_ttl: timedelta = timedelta(minutes=10),
    ):
        keys = [k for k in signing_keys if k]
        if not keys:
            raise ValueError("At least one signing key is required")
        self._keys = keys
        self.algorithm = algorithm
        self.issuer = issuer
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.long_refresh_ttl = long_refresh_ttl
        self.challenge_ttl = challenge_ttl
        self.state_ttl = state_ttl

    def _encode(self, claims: dict, token_type: TokenType, ttl: timedelta) -> tuple[str, datetime]:
        now = datetime.now(timezone.utc)
        expires_at = now + ttl
        payload = dict(claims)
        payload.update(
            {
                "type": token_type,
                "iat": int(now.timestamp()),
                "nbf": int(now.timestamp()),
                "exp": int(expires_at.timestamp()),
                "iss": self.issuer,
                # unique per token so two tokens minted in the same second differ
                "jti": secrets.token_hex(8),
            }
        )
        return jwt.encode(payload, self._keys[0], algorithm=self.algorithm), expires_at

    """
    Issue an access/refresh pair for a user

    - session_id binds the refresh token to a server-side session
    - without a session the refresh token carries rtv (refresh_token_version)
      so that password changes and logouts can invalidate it
    - remember=True selects the long refresh lifetime

    """

    def issue_pair(
        self,
        user,
        session_id: Optional[str] = None,
        device_class: Optional[str] = None,
        *,
        remember: bool = False,
    ) -> TokenPair:
        base = {
            "user_id": user.id,
            "username": user.username,
            "email": user.email,
            "role": user.role.value,
            "sub": user.username,
        }
        if session_id:
            base["session_id"] = session_id

        access, access_exp = self._encode(base, "access", self.access_ttl)

        refresh_claims = dict(base)
        refresh_claims["remember"] = bool(remember)
        if device_class:
            refresh_claims["device_class"] = device_class
        if not session_id:
            refresh_claims["rtv"] = user.refresh_token_version
        refresh, refresh_exp = self._encode(
            refresh_claims,
            "refresh",
            self.long_refresh_ttl if remember else self.refresh_ttl,
        )
        return TokenPair(
            access_token=access,
            refresh_token=refresh,
            access_expires_at=access_exp,
            refresh_expires_at=refresh_exp,
        )

    """
    Verify a token and return its claims

    - rejects a header algorithm other than the configured one
    - tries every configured key, newest first
    - expected_type, when given, must match the ``type`` claim

    """

    def verify(self, token: str, expected_type: Optional[TokenType] = None) -> dict:
        if not isinstance(token, str) or not token:
            raise Malformed()
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise Malformed() from e

        if header.get("alg") != self.algorithm:
            raise UnexpectedAlgorithm()

        claims = None
        for key in self._keys:
            try:
                claims = jwt.decode(
                    token,
                    key,
                    algorithms=[self.algorithm],
                    issuer=self.issuer,
                    options={"verify_aud": False},
                )
                break
            except ExpiredSignatureError as e:
                raise Expired() from e
            except JWTClaimsError as e:
                raise Malformed("Token claims are invalid") from e
            except JWTError:
                continue

        if claims is None:
            raise InvalidSignature()

        if expected_type is not None and claims.get("type") != expected_type:
            raise Malformed(f"Expected a {expected_type} token")
        if expected_type in ("access", "refresh") and not isinstance(claims.get("user_id"), int):
            raise Malformed("Token is missing user_id")
        return claims

    def extract_session_id(self, refresh_token: str) -> Optional[str]:
        claims = self.verify(refresh_token, "refresh")
        return claims.get("session_id")

    def issue_challenge(self, user_id: int, session_id: str, *, remember: bool = False) -> str:
        token, _ = self._encode(
            {"user_id": user_id, "session_id": session_id, "remember": bool(remember)},
            "2fa_challenge",
            self.challenge_ttl,
        )
        return token

    def verify_challenge(self, token: str) -> dict:
        return self.verify(token, "2fa_challenge")

    def issue_state(self, provider: str) -> str:
        token, _ = self._encode({"provider": provider}, "oauth_state", self.state_ttl)
        return token

    def verify_state(self, token: str, provider: str) -> dict:
        claims = self.verify(token, "oauth_state")
        if claims.get("provider") != provider:
            raise Malformed("OAuth state does not match provider")
        return claims


def build_signer() -> TokenSigner:
    return TokenSigner(
        [settings.SECRET_KEY, *settings.PREVIOUS_SECRET_KEYS],
        algorithm=settings.ALGORITHM,
        issuer=settings.JWT_ISSUER,
        access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        long_refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_LONG_EXPIRE_DAYS),
        challenge_ttl=timedelta(minutes=settings.TWO_FACTOR_CHALLENGE_EXPIRE_MINUTES),
        state_ttl=timedelta(minutes=settings.OAUTH_STATE_EXPIRE_MINUTES),
    )


signer = build_signer()
