"""
Credential flow integration tests.

- sign-up -> email verification -> login on a phone with "remember me"
  -> refresh -> logout -> the old refresh token is refused
- duplicate sign-ups, terms and weak passwords
- password reset links are single use
- account deletion

"""

import datetime
import uuid

from gnl_auth.models.user import TrustLevel, UserRole
from gnl_auth.services import hooks
from gnl_auth.store import sessions as session_store
from gnl_auth.store import users as user_store
from tests.helpers import IPHONE_UA, auth_header, create_admin_in_db, create_user_in_db, login, register


def test_register_verify_login_refresh_logout(client, db_session, mailer):
    verified = []
    hooks.on_email_verified(lambda user: verified.append(user.id))

    reg = register(client, email="alice@example.com", username="alice", password="Passw0rd!")
    assert reg.status_code == 201, reg.text
    body = reg.json()
    assert body["success"] is True
    assert body["message"] == "Registration successful"
    user = body["data"]["user"]
    assert user["role"] == "basic"
    assert user["trust_level"] == "new"
    assert user["is_verified"] is False

    token = mailer.last_token("verification", "alice@example.com")
    assert token

    confirm = client.post("/auth/email/verify/confirm", json={"token": token})
    assert confirm.status_code == 200, confirm.text
    assert confirm.json()["data"]["is_verified"] is True
    assert confirm.json()["data"]["trust_level"] == "basic"
    assert verified == [user["id"]]

    # the link is single use
    again = client.post("/auth/email/verify/confirm", json={"token": token})
    assert again.status_code == 400
    assert again.json()["code"] == "INVALID_TOKEN"

    data = login(client, "alice@example.com", "Passw0rd!", device=IPHONE_UA, remember=True)
    assert data["two_factor_required"] is False
    assert data["token_type"] == "bearer"
    session_id = data["session_id"]
    assert session_id

    row = session_store.by_id(db_session, session_id)
    assert row.device_class == "mobile"
    assert row.expires_at - row.created_at == datetime.timedelta(days=30)

    me = client.get("/auth/me", headers=auth_header(data["access_token"]))
    assert me.status_code == 200, me.text
    assert me.json()["data"]["username"] == "alice"

    refreshed = client.post("/auth/refresh-token", json={"refresh_token": data["refresh_token"]})
    assert refreshed.status_code == 200, refreshed.text
    new_pair = refreshed.json()["data"]
    assert new_pair["session_id"] == session_id
    assert new_pair["access_token"]

    logout = client.post(
        "/auth/logout",
        json={"refresh_token": new_pair["refresh_token"]},
        headers=auth_header(new_pair["access_token"]),
    )
    assert logout.status_code == 200, logout.text

    stale = client.post("/auth/refresh-token", json={"refresh_token": data["refresh_token"]})
    assert stale.status_code == 401
    assert stale.json()["message"] == "Invalid or expired refresh token"


def test_logout_without_body_ends_current_session(client, db_session):
    create_user_in_db(db_session, email="bob@test.com", password="BobPassw0rd!")
    data = login(client, "bob@test.com", "BobPassw0rd!")

    r = client.post("/auth/logout", headers=auth_header(data["access_token"]))
    assert r.status_code == 200, r.text
    assert session_store.by_id(db_session, data["session_id"]).is_active is False

    r = client.post("/auth/refresh-token", json={"refresh_token": data["refresh_token"]})
    assert r.status_code == 401


def test_duplicate_registration(client):
    first = register(client, email="alice@example.com", username="alice")
    assert first.status_code == 201, first.text

    dup_email = register(client, email="alice@example.com", username="alice2")
    assert dup_email.status_code == 409
    assert dup_email.json()["message"] == "Email already exists"
    assert dup_email.json()["code"] == "DUPLICATE_EMAIL"

    dup_username = register(client, email="alice2@example.com", username="alice")
    assert dup_username.status_code == 409
    assert dup_username.json()["message"] == "Username already exists"


def test_registration_requires_terms_and_strong_password(client):
    no_terms = register(client, email="t@example.com", username="terms", accept_terms=False)
    assert no_terms.status_code == 422
    assert no_terms.json()["code"] == "TERMS_NOT_ACCEPTED"

    weak = register(client, email="w@example.com", username="weak", password="short")
    assert weak.status_code == 422
    assert weak.json()["code"] == "WEAK_PASSWORD"

    bad_email = register(client, email="not-an-email", username="bademail")
    assert bad_email.status_code == 422
    assert bad_email.json()["code"] == "VALIDATION_ERROR"


def test_login_failures_look_alike(client, db_session):
    create_user_in_db(db_session, email="carol@test.com", password="CarolPassw0rd!")
    disabled = create_user_in_db(db_session, email="dave@test.com", password="DavePassw0rd!")
    disabled.is_active = False
    db_session.commit()

    attempts = [
        {"email": "carol@test.com", "password": "wrong-password1"},
        {"email": "nobody@test.com", "password": "CarolPassw0rd!"},
        {"email": "dave@test.com", "password": "DavePassw0rd!"},
    ]
    for body in attempts:
        r = client.post("/auth/login", json=body)
        assert r.status_code == 401
        assert r.json()["message"] == "Invalid email or password"


def test_password_reset_is_single_use(client, db_session, mailer):
    email = f"reset_{uuid.uuid4().hex[:6]}@test.com"
    create_user_in_db(db_session, email=email, password="OldPassw0rd!")
    before = login(client, email, "OldPassw0rd!")

    r = client.post("/auth/password/reset", json={"email": email})
    assert r.status_code == 200, r.text
    assert r.json()["message"] == "If the email exists, a password reset link has been sent"

    unknown = client.post("/auth/password/reset", json={"email": "ghost@test.com"})
    assert unknown.status_code == 200
    assert unknown.json()["message"] == r.json()["message"]

    token = mailer.last_token("password_reset", email)
    assert token

    first = client.post("/auth/password/reset/confirm", json={"token": token, "new_password": "NewPass123!"})
    assert first.status_code == 200, first.text

    second = client.post("/auth/password/reset/confirm", json={"token": token, "new_password": "Other1!"})
    assert second.status_code == 400
    assert second.json()["code"] == "INVALID_TOKEN"

    old = client.post("/auth/login", json={"email": email, "password": "OldPassw0rd!"})
    assert old.status_code == 401
    login(client, email, "NewPass123!")

    # sessions from before the reset are gone
    assert session_store.by_id(db_session, before["session_id"]).is_active is False


def test_weak_reset_password_keeps_link_usable(client, db_session, mailer):
    email = f"reset_{uuid.uuid4().hex[:6]}@test.com"
    create_user_in_db(db_session, email=email, password="OldPassw0rd!")
    client.post("/auth/password/reset", json={"email": email})
    token = mailer.last_token("password_reset", email)

    weak = client.post("/auth/password/reset/confirm", json={"token": token, "new_password": "short"})
    assert weak.status_code == 422
    assert weak.json()["code"] == "WEAK_PASSWORD"

    ok = client.post("/auth/password/reset/confirm", json={"token": token, "new_password": "NewPass123!"})
    assert ok.status_code == 200, ok.text


def test_verification_resend(client, db_session, mailer):
    reg = register(client, email="erin@example.com", username="erin")
    assert reg.status_code == 201, reg.text
    first = mailer.last_token("verification", "erin@example.com")

    r = client.post("/auth/email/verify/resend", json={"email": "erin@example.com"})
    assert r.status_code == 200, r.text
    second = mailer.last_token("verification", "erin@example.com")
    assert second != first

    # issuing a new link retires the previous one
    stale = client.post("/auth/email/verify/confirm", json={"token": first})
    assert stale.status_code == 400

    ok = client.post("/auth/email/verify/confirm", json={"token": second})
    assert ok.status_code == 200, ok.text

    sent = len(mailer.sent)
    client.post("/auth/email/verify/send", json={"email": "erin@example.com"})
    assert len(mailer.sent) == sent


def test_me_requires_bearer_token(client):
    r = client.get("/auth/me")
    assert r.status_code == 401
    assert r.json()["code"] == "UNAUTHORIZED"

    r = client.get("/auth/me", headers=auth_header("garbage"))
    assert r.status_code == 401


def test_delete_account(client, db_session):
    create_user_in_db(db_session, email="frank@test.com", password="FrankPassw0rd!")
    data = login(client, "frank@test.com", "FrankPassw0rd!")

    wrong = client.request(
        "DELETE", "/account/delete", json={"password": "nope"}, headers=auth_header(data["access_token"])
    )
    assert wrong.status_code == 401

    r = client.request(
        "DELETE", "/account/delete", json={"password": "FrankPassw0rd!"}, headers=auth_header(data["access_token"])
    )
    assert r.status_code == 200, r.text

    gone = client.post("/auth/login", json={"email": "frank@test.com", "password": "FrankPassw0rd!"})
    assert gone.status_code == 401

    # the email stays taken
    again = register(client, email="frank@test.com", username="frank2")
    assert again.status_code == 409

    deleted = user_store.by_email(db_session, "frank@test.com", include_deleted=True)
    assert deleted.is_deleted is True


def test_admin_cannot_delete_account(client, db_session):
    create_admin_in_db(db_session, email="root@test.com", password="AdminPassw0rd!")
    data = login(client, "root@test.com", "AdminPassw0rd!")

    r = client.request(
        "DELETE", "/account/delete", json={"password": "AdminPassw0rd!"}, headers=auth_header(data["access_token"])
    )
    assert r.status_code == 403
    assert user_store.by_email(db_session, "root@test.com").role == UserRole.ADMIN
    assert user_store.by_email(db_session, "root@test.com").trust_level == TrustLevel.LEADER
