"""
config.py

Application-wide configuration.

Loads environment variables (and an optional .env file) through
pydantic-settings and exposes a single immutable ``settings`` object
that every other module reads from.

Key settings:
- Database connection and statement timeout
- JWT signing keys, issuer and token lifetimes
- Session lifetimes and retention window
- Single-use token lifetimes (password reset, email verification)
- SMTP credentials for the mail dispatcher
- OAuth provider credentials
- Access-decision behaviour on corrupt visibility values

Design principles:
- Every environment variable is read through this file only
- Missing required values (DATABASE_URL, SECRET_KEY) abort startup
- Settings are treated as read-only once the process has started

Related files:
- gnl_auth.main             : CORS and logging setup
- gnl_auth.core.tokens      : signing keys and token lifetimes
- gnl_auth.db.session       : DATABASE_URL

"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DATABASE_URL: str
    TEST_DATABASE_URL: str | None = None
    DB_STATEMENT_TIMEOUT_MS: int | None = None

    SECRET_KEY: str
    # older keys stay valid for verification after a rotation
    PREVIOUS_SECRET_KEYS: List[str] = []
    ALGORITHM: str = "HS256"
    JWT_ISSUER: str = "great-nigeria-library"

    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    REFRESH_TOKEN_LONG_EXPIRE_DAYS: int = 30
    TWO_FACTOR_CHALLENGE_EXPIRE_MINUTES: int = 5
    OAUTH_STATE_EXPIRE_MINUTES: int = 10

    SESSION_EXPIRE_HOURS: int = 24
    SESSION_LONG_EXPIRE_DAYS: int = 30
    SESSION_RETENTION_DAYS: int = 30

    PASSWORD_RESET_EXPIRE_HOURS: int = 24
    EMAIL_VERIFICATION_EXPIRE_HOURS: int = 48

    BCRYPT_ROUNDS: int = 12

    FRONTEND_URL: str = "http://localhost:3000"

    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM: str = "no-reply@greatnigeria.net"
    SMTP_USE_TLS: bool = True

    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    GOOGLE_REDIRECT_URL: str | None = None

    ACCESS_FAIL_CLOSED_ON_UNKNOWN_VISIBILITY: bool = False

    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]


settings = Settings()
