"""
services/oauth.py

OAuth provider registry.

Each provider satisfies a three-method contract:
- auth_url(state)              : where to send the browser
- exchange(code)               : authorization code -> provider access token
- fetch_user_info(token)       : provider access token -> OAuthIdentity

The credential service only looks providers up by name; no provider
specific logic lives outside this module. Providers without configured
credentials are not registered.

"""

import logging
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urlencode

import httpx

from gnl_auth.core.config import settings
from gnl_auth.core.errors import InvalidRequest, NotFound, Unauthorized

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OAuthIdentity:
    provider: str
    subject: str
    email: str
    full_name: str = ""
    picture: str | None = None
    email_verified: bool = False


class OAuthProvider(Protocol):
    name: str

    def auth_url(self, state: str) -> str: ...

    def exchange(self, code: str) -> str: ...

    def fetch_user_info(self, access_token: str) -> OAuthIdentity: ...


class GoogleProvider:
    name = "google"
    AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

    def __init__(self, client_id: str, client_secret: str, redirect_url: str, *, timeout: float = 10.0):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_url = redirect_url
        self.timeout = timeout

    def auth_url(self, state: str) -> str:
        query = urlencode(
            {
                "client_id": self.client_id,
                "redirect_uri": self.redirect_url,
                "response_type": "code",
                "scope": "openid email profile",
                "state": state,
                "access_type": "online",
            }
        )
        return f"{self.AUTH_URL}?{query}"

    def exchange(self, code: str) -> str:
        try:
            with httpx.Client(timeout=self.timeout, follow_redirects=False) as client:
                response = client.post(
                    self.TOKEN_URL,
                    data={
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "code": code,
                        "redirect_uri": self.redirect_url,
                        "grant_type": "authorization_code",
                    },
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("oauth exchange failed provider=%s error=%s", self.name, type(e).__name__)
            raise Unauthorized("OAuth code exchange failed") from e

        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise Unauthorized("OAuth provider returned no access token")
        return token

    def fetch_user_info(self, access_token: str) -> OAuthIdentity:
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.get(
                    self.USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                response.raise_for_status()
                info = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("oauth userinfo failed provider=%s error=%s", self.name, type(e).__name__)
            raise Unauthorized("Failed to fetch OAuth user info") from e

        if not isinstance(info, dict) or not info.get("id") or not info.get("email"):
            raise Unauthorized("OAuth provider returned an incomplete profile")
        return OAuthIdentity(
            provider=self.name,
            subject=str(info["id"]),
            email=str(info["email"]).lower(),
            full_name=info.get("name") or "",
            picture=info.get("picture"),
            email_verified=bool(info.get("verified_email")),
        )


class ProviderRegistry:
    def __init__(self, providers: list[OAuthProvider] | None = None):
        self._providers: dict[str, OAuthProvider] = {}
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: OAuthProvider) -> None:
        self._providers[provider.name] = provider

    def get(self, name: str) -> OAuthProvider:
        provider = self._providers.get((name or "").lower())
        if provider is None:
            raise NotFound(f"OAuth provider '{name}' is not supported")
        return provider

    def names(self) -> list[str]:
        return sorted(self._providers)


def build_registry() -> ProviderRegistry:
    registry = ProviderRegistry()
    if settings.GOOGLE_CLIENT_ID and settings.GOOGLE_CLIENT_SECRET:
        if not settings.GOOGLE_REDIRECT_URL:
            raise InvalidRequest("GOOGLE_REDIRECT_URL is required when Google OAuth is configured")
        registry.register(
            GoogleProvider(
                settings.GOOGLE_CLIENT_ID,
                settings.GOOGLE_CLIENT_SECRET,
                settings.GOOGLE_REDIRECT_URL,
            )
        )
    return registry


_registry: ProviderRegistry | None = None


def get_oauth_registry() -> ProviderRegistry:
    global _registry
    if _registry is None:
        _registry = build_registry()
    return _registry
