"""
Two-factor authentication flow.

- setup -> verify -> enable hands out eight backup codes
- login becomes two-step: password, then TOTP or a backup code
- backup codes are single use; disabling needs the password and a code

"""

import re

from gnl_auth.core import totp
from tests.helpers import auth_header, create_user_in_db, login

BACKUP_CODE = re.compile(r"^[A-HJ-NP-Z2-9]{4}-[A-HJ-NP-Z2-9]{4}-[A-HJ-NP-Z2-9]{2}$")


def _enable_two_factor(client, headers) -> tuple[str, list[str]]:
    setup = client.post("/account/2fa/setup", headers=headers)
    assert setup.status_code == 200, setup.text
    secret = setup.json()["data"]["secret"]
    assert setup.json()["data"]["qr_code_url"].startswith("otpauth://totp/")

    verify = client.post("/account/2fa/verify", json={"code": totp.generate_code(secret)}, headers=headers)
    assert verify.status_code == 200, verify.text
    assert verify.json()["data"]["verified"] is True

    enable = client.post("/account/2fa/enable", json={"code": totp.generate_code(secret)}, headers=headers)
    assert enable.status_code == 200, enable.text
    return secret, enable.json()["data"]["backup_codes"]


def test_enable_use_backup_codes_and_disable(client, db_session):
    create_user_in_db(db_session, email="tfa@test.com", password="UserPassw0rd!")
    tokens = login(client, "tfa@test.com", "UserPassw0rd!")
    headers = auth_header(tokens["access_token"])

    status = client.get("/account/2fa/status", headers=headers)
    assert status.json()["data"]["enabled"] is False

    secret, codes = _enable_two_factor(client, headers)
    assert len(codes) == 8
    assert len(set(codes)) == 8
    assert all(BACKUP_CODE.match(code) for code in codes)

    status = client.get("/account/2fa/status", headers=headers).json()["data"]
    assert status["enabled"] is True
    assert status["method"] == "app"
    assert status["backup_codes_remaining"] == 8

    used = client.post("/account/2fa/validate-backup", json={"code": codes[0]}, headers=headers)
    assert used.status_code == 200, used.text
    assert used.json()["data"]["backup_codes_remaining"] == 7

    reused = client.post("/account/2fa/validate-backup", json={"code": codes[0]}, headers=headers)
    assert reused.status_code == 400
    assert reused.json()["code"] == "INVALID_CODE"

    remaining = client.get("/account/2fa/backup-codes", headers=headers)
    assert remaining.json()["data"]["backup_codes_remaining"] == 7

    wrong_password = client.post(
        "/account/2fa/disable",
        json={"code": totp.generate_code(secret), "password": "not-my-password"},
        headers=headers,
    )
    assert wrong_password.status_code == 401

    disable = client.post(
        "/account/2fa/disable",
        json={"code": totp.generate_code(secret), "password": "UserPassw0rd!"},
        headers=headers,
    )
    assert disable.status_code == 200, disable.text

    status = client.get("/account/2fa/status", headers=headers).json()["data"]
    assert status["enabled"] is False
    assert status["backup_codes_remaining"] == 0


def test_wrong_codes_are_rejected(client, db_session):
    create_user_in_db(db_session, email="tfa2@test.com", password="UserPassw0rd!")
    headers = auth_header(login(client, "tfa2@test.com", "UserPassw0rd!")["access_token"])

    not_enrolled = client.post("/account/2fa/verify", json={"code": "123456"}, headers=headers)
    assert not_enrolled.status_code == 400
    assert not_enrolled.json()["code"] == "TWO_FACTOR_NOT_ENROLLED"

    secret = client.post("/account/2fa/setup", headers=headers).json()["data"]["secret"]
    bad = next(c for c in ("000000", "111111", "222222") if not totp.verify_code(secret, c))
    r = client.post("/account/2fa/enable", json={"code": bad}, headers=headers)
    assert r.status_code == 400
    assert r.json()["code"] == "INVALID_CODE"

    short = client.post("/account/2fa/enable", json={"code": "123"}, headers=headers)
    assert short.status_code == 422


def test_login_with_second_factor(client, db_session):
    create_user_in_db(db_session, email="tfa3@test.com", password="UserPassw0rd!")
    headers = auth_header(login(client, "tfa3@test.com", "UserPassw0rd!")["access_token"])
    secret, codes = _enable_two_factor(client, headers)

    first_step = client.post("/auth/login", json={"email": "tfa3@test.com", "password": "UserPassw0rd!"})
    assert first_step.status_code == 200, first_step.text
    assert first_step.json()["message"] == "Two-factor authentication required"
    data = first_step.json()["data"]
    assert data["two_factor_required"] is True
    assert "access_token" not in data
    challenge = data["challenge_token"]

    # a challenge is not a bearer token
    assert client.get("/auth/me", headers=auth_header(challenge)).status_code == 401

    done = client.post("/auth/login/2fa", json={"challenge_token": challenge, "code": totp.generate_code(secret)})
    assert done.status_code == 200, done.text
    pair = done.json()["data"]
    assert pair["access_token"]
    assert client.get("/auth/me", headers=auth_header(pair["access_token"])).status_code == 200

    # the pending session was consumed
    replay = client.post("/auth/login/2fa", json={"challenge_token": challenge, "code": totp.generate_code(secret)})
    assert replay.status_code == 401


def test_login_with_backup_code(client, db_session):
    create_user_in_db(db_session, email="tfa4@test.com", password="UserPassw0rd!")
    headers = auth_header(login(client, "tfa4@test.com", "UserPassw0rd!")["access_token"])
    _, codes = _enable_two_factor(client, headers)

    challenge = client.post(
        "/auth/login", json={"email": "tfa4@test.com", "password": "UserPassw0rd!"}
    ).json()["data"]["challenge_token"]

    done = client.post("/auth/login/2fa", json={"challenge_token": challenge, "backup_code": codes[3]})
    assert done.status_code == 200, done.text

    missing = client.post("/auth/login/2fa", json={"challenge_token": challenge})
    assert missing.status_code == 400

    bogus = client.post("/auth/login/2fa", json={"challenge_token": "nope", "code": "123456"})
    assert bogus.status_code == 401


def test_regenerate_backup_codes(client, db_session):
    create_user_in_db(db_session, email="tfa5@test.com", password="UserPassw0rd!")
    headers = auth_header(login(client, "tfa5@test.com", "UserPassw0rd!")["access_token"])
    _, codes = _enable_two_factor(client, headers)

    r = client.post("/account/2fa/backup-codes", headers=headers)
    assert r.status_code == 200, r.text
    fresh = r.json()["data"]["backup_codes"]
    assert len(fresh) == 8

    old = client.post("/account/2fa/validate-backup", json={"code": codes[0]}, headers=headers)
    assert old.status_code == 400


def test_setup_does_not_reset_enabled_two_factor(client, db_session):
    create_user_in_db(db_session, email="tfa6@test.com", password="UserPassw0rd!")
    headers = auth_header(login(client, "tfa6@test.com", "UserPassw0rd!")["access_token"])
    secret, _ = _enable_two_factor(client, headers)

    again = client.post("/account/2fa/setup", headers=headers)
    assert again.status_code == 400
    assert again.json()["message"] == "Two-factor authentication is already enabled"

    status = client.get("/account/2fa/status", headers=headers).json()["data"]
    assert status["enabled"] is True
    assert status["backup_codes_remaining"] == 8

    first_step = client.post("/auth/login", json={"email": "tfa6@test.com", "password": "UserPassw0rd!"})
    assert first_step.json()["data"]["two_factor_required"] is True
    challenge = first_step.json()["data"]["challenge_token"]
    done = client.post("/auth/login/2fa", json={"challenge_token": challenge, "code": totp.generate_code(secret)})
    assert done.status_code == 200, done.text


def test_backup_codes_run_out(client, db_session):
    create_user_in_db(db_session, email="tfa7@test.com", password="UserPassw0rd!")
    headers = auth_header(login(client, "tfa7@test.com", "UserPassw0rd!")["access_token"])
    _, codes = _enable_two_factor(client, headers)

    for left, code in reversed(list(enumerate(codes))):
        r = client.post("/account/2fa/validate-backup", json={"code": code}, headers=headers)
        assert r.status_code == 200, r.text
        assert r.json()["data"]["backup_codes_remaining"] == left

    empty = client.post("/account/2fa/validate-backup", json={"code": codes[0]}, headers=headers)
    assert empty.status_code == 400
    assert empty.json()["code"] == "INVALID_CODE"
    assert empty.json()["message"] == "No backup codes remaining"


def test_pending_login_is_not_listed_as_a_session(client, db_session):
    create_user_in_db(db_session, email="tfa8@test.com", password="UserPassw0rd!")
    headers = auth_header(login(client, "tfa8@test.com", "UserPassw0rd!")["access_token"])
    _enable_two_factor(client, headers)

    before = client.get("/account/sessions", headers=headers).json()["data"]["count"]
    first_step = client.post("/auth/login", json={"email": "tfa8@test.com", "password": "UserPassw0rd!"})
    assert first_step.json()["data"]["two_factor_required"] is True

    after = client.get("/account/sessions", headers=headers).json()["data"]["count"]
    assert after == before
