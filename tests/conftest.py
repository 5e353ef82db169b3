import os

# settings are read at import time; seed them before the app is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-the-suite"
os.environ["BCRYPT_ROUNDS"] = "10"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from gnl_auth.main import app as fastapi_app
from gnl_auth.core.deps import get_db, get_mailer
from gnl_auth.db.base import Base
from gnl_auth.services import hooks

# model imports register every table on Base.metadata
import gnl_auth.models.admin_log  # noqa: F401
import gnl_auth.models.content_access  # noqa: F401
import gnl_auth.models.privacy  # noqa: F401
import gnl_auth.models.session  # noqa: F401
import gnl_auth.models.token  # noqa: F401
import gnl_auth.models.two_factor  # noqa: F401
import gnl_auth.models.user  # noqa: F401


class CapturingMailer:
    """Records every outgoing link instead of sending it."""

    def __init__(self):
        self.sent = []

    def send_verification(self, user, link):
        self.sent.append(("verification", user.email, link))

    def send_password_reset(self, user, link):
        self.sent.append(("password_reset", user.email, link))

    def last_token(self, kind, email=None):
        for sent_kind, sent_email, link in reversed(self.sent):
            if sent_kind == kind and (email is None or sent_email == email):
                return link.split("token=", 1)[1]
        return None


@pytest.fixture()
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    """Session for direct DB setup / assertions inside a test."""
    session = session_factory()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def mailer():
    return CapturingMailer()


@pytest.fixture()
def client(session_factory, mailer):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_hooks():
    hooks.clear_handlers()
    yield
    hooks.clear_handlers()
