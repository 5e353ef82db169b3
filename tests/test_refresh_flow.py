# tests/test_refresh_flow.py
import uuid

import pytest

from gnl_auth.core.errors import SessionRevoked
from gnl_auth.services import auth as auth_service
from tests.helpers import DESKTOP_UA, IPHONE_UA, auth_header, create_user_in_db, login


def test_revoke_all_keeps_only_the_calling_session(client, db_session):
    email = f"user_{uuid.uuid4().hex[:6]}@test.com"
    create_user_in_db(db_session, email=email, password="UserPassw0rd!")

    session_a = login(client, email, "UserPassw0rd!", device=DESKTOP_UA)
    session_b = login(client, email, "UserPassw0rd!", device=IPHONE_UA)
    assert session_a["session_id"] != session_b["session_id"]

    listed = client.get("/account/sessions", headers=auth_header(session_a["access_token"]))
    assert listed.status_code == 200, listed.text
    items = listed.json()["data"]["items"]
    assert len(items) == 2
    current = [item for item in items if item["is_current"]]
    assert [item["id"] for item in current] == [session_a["session_id"]]

    r = client.post("/account/sessions/revoke-all", headers=auth_header(session_a["access_token"]))
    assert r.status_code == 200, r.text
    assert r.json()["data"]["revoked"] == 1

    b_refresh = client.post("/auth/refresh-token", json={"refresh_token": session_b["refresh_token"]})
    assert b_refresh.status_code == 401

    a_refresh = client.post("/auth/refresh-token", json={"refresh_token": session_a["refresh_token"]})
    assert a_refresh.status_code == 200, a_refresh.text
    assert a_refresh.json()["data"]["session_id"] == session_a["session_id"]


def test_revoke_single_session(client, db_session):
    email = f"user_{uuid.uuid4().hex[:6]}@test.com"
    create_user_in_db(db_session, email=email, password="UserPassw0rd!")
    session_a = login(client, email, "UserPassw0rd!")
    session_b = login(client, email, "UserPassw0rd!", device=IPHONE_UA)

    own = client.post(
        "/account/sessions/revoke",
        json={"session_id": session_a["session_id"]},
        headers=auth_header(session_a["access_token"]),
    )
    assert own.status_code == 400
    assert own.json()["message"] == "Cannot revoke current session. Use logout instead."

    other = client.post(
        "/account/sessions/revoke",
        json={"session_id": session_b["session_id"]},
        headers=auth_header(session_a["access_token"]),
    )
    assert other.status_code == 200, other.text

    missing = client.post(
        "/account/sessions/revoke",
        json={"session_id": "does-not-exist"},
        headers=auth_header(session_a["access_token"]),
    )
    assert missing.status_code == 404


def test_cannot_revoke_someone_elses_session(client, db_session):
    create_user_in_db(db_session, email="one@test.com", password="UserPassw0rd!")
    create_user_in_db(db_session, email="two@test.com", password="UserPassw0rd!")
    one = login(client, "one@test.com", "UserPassw0rd!")
    two = login(client, "two@test.com", "UserPassw0rd!")

    r = client.post(
        "/account/sessions/revoke",
        json={"session_id": two["session_id"]},
        headers=auth_header(one["access_token"]),
    )
    assert r.status_code == 403


def test_refresh_rejects_access_tokens_and_garbage(client, db_session):
    create_user_in_db(db_session, email="mix@test.com", password="UserPassw0rd!")
    data = login(client, "mix@test.com", "UserPassw0rd!")

    for token in (data["access_token"], "garbage", ""):
        r = client.post("/auth/refresh-token", json={"refresh_token": token})
        assert r.status_code == 401
        assert r.json()["message"] == "Invalid or expired refresh token"


def test_refresh_refused_for_disabled_user(client, db_session):
    user = create_user_in_db(db_session, email="off@test.com", password="UserPassw0rd!")
    data = login(client, "off@test.com", "UserPassw0rd!")

    user.is_active = False
    db_session.commit()

    r = client.post("/auth/refresh-token", json={"refresh_token": data["refresh_token"]})
    assert r.status_code == 401


def test_sessionless_refresh_rotates(db_session):
    user = create_user_in_db(db_session, email="cli@test.com", password="UserPassw0rd!")
    result = auth_service.login(db_session, email="cli@test.com", password="UserPassw0rd!")
    assert result.session is None
    first = result.tokens.refresh_token

    rotated = auth_service.refresh_with_session(db_session, refresh_token=first)
    assert rotated.session is None
    assert rotated.user.id == user.id

    with pytest.raises(SessionRevoked):
        auth_service.refresh_with_session(db_session, refresh_token=first)

    auth_service.refresh_with_session(db_session, refresh_token=rotated.tokens.refresh_token)


def test_sessionless_logout_kills_refresh_token(db_session):
    user = create_user_in_db(db_session, email="cli2@test.com", password="UserPassw0rd!")
    result = auth_service.login(db_session, email="cli2@test.com", password="UserPassw0rd!")

    auth_service.logout(db_session, user_id=user.id, refresh_token=result.tokens.refresh_token)

    with pytest.raises(SessionRevoked):
        auth_service.refresh_with_session(db_session, refresh_token=result.tokens.refresh_token)
