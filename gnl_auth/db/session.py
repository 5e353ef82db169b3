"""
session.py

Database engine and session factory.

Requests obtain a session through gnl_auth.core.deps.get_db; scripts
open one directly from SessionLocal.

Design principles:
- connection settings live in one place
- pool_pre_ping=True detects connections dropped while idle
- DB_STATEMENT_TIMEOUT_MS bounds every PostgreSQL statement so a stuck
  query aborts its transaction instead of holding locks

Related files:
- gnl_auth.core.config      : DATABASE_URL, DB_STATEMENT_TIMEOUT_MS
- gnl_auth.core.deps        : get_db dependency

"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from gnl_auth.core.config import settings


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    if url.startswith("postgresql") and settings.DB_STATEMENT_TIMEOUT_MS:
        return {"options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)
