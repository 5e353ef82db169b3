import datetime

import pytest

from gnl_auth.core import clock
from gnl_auth.core.errors import Forbidden, NotFound, SessionRevoked
from gnl_auth.models.session import DeviceClass
from gnl_auth.services import sessions as session_service
from gnl_auth.store import sessions as session_store
from tests.helpers import IPHONE_UA, create_user_in_db


@pytest.mark.parametrize(
    "fingerprint, expected",
    [
        (None, DeviceClass.UNKNOWN),
        ("", DeviceClass.UNKNOWN),
        (IPHONE_UA, DeviceClass.MOBILE),
        ("Mozilla/5.0 (Linux; Android 14)", DeviceClass.MOBILE),
        ("Mozilla/5.0 (iPad; CPU OS 17_0)", DeviceClass.TABLET),
        ("Mozilla/5.0 (Windows NT 10.0)", DeviceClass.DESKTOP),
    ],
)
def test_device_class(fingerprint, expected):
    assert session_service.device_class_for(fingerprint) == expected


def test_create_and_read_back(db_session):
    user = create_user_in_db(db_session)
    row = session_service.create_session(
        db_session, user_id=user.id, fingerprint=IPHONE_UA, address="10.0.0.1", remember=True
    )
    db_session.commit()

    again = session_store.by_id(db_session, row.id)
    assert again.user_id == user.id
    assert again.device_class == DeviceClass.MOBILE
    assert again.last_ip == "10.0.0.1"
    assert again.is_active is True
    assert again.expires_at - again.created_at == datetime.timedelta(days=30)


def test_default_lifetime_is_24_hours(db_session):
    user = create_user_in_db(db_session)
    row = session_service.create_session(
        db_session, user_id=user.id, fingerprint=None, address=None, remember=False
    )
    assert row.expires_at - row.created_at == datetime.timedelta(hours=24)


def test_extend_just_before_expiry_slides_window(db_session):
    user = create_user_in_db(db_session)
    row = session_service.create_session(db_session, user_id=user.id, fingerprint=None, address=None)
    db_session.commit()

    lifetime = row.expires_at - row.created_at
    now = row.expires_at - datetime.timedelta(seconds=1)
    extended = session_service.extend_session(db_session, row, user_id=user.id, address="10.0.0.2", now=now)
    db_session.commit()

    assert extended.expires_at == now + lifetime
    assert extended.last_ip == "10.0.0.2"


def test_extend_after_expiry_fails(db_session):
    user = create_user_in_db(db_session)
    row = session_service.create_session(db_session, user_id=user.id, fingerprint=None, address=None)
    db_session.commit()

    with pytest.raises(SessionRevoked):
        session_service.extend_session(
            db_session, row, user_id=user.id, now=row.expires_at + datetime.timedelta(seconds=1)
        )


def test_extend_fails_for_inactive_or_pending(db_session):
    user = create_user_in_db(db_session)
    pending = session_service.create_session(
        db_session, user_id=user.id, fingerprint=None, address=None, two_factor_pending=True
    )
    revoked = session_service.create_session(db_session, user_id=user.id, fingerprint=None, address=None)
    session_store.deactivate(db_session, revoked.id)
    db_session.commit()

    with pytest.raises(SessionRevoked):
        session_service.extend_session(db_session, pending, user_id=user.id)
    with pytest.raises(SessionRevoked):
        session_service.extend_session(db_session, session_store.by_id(db_session, revoked.id), user_id=user.id)


def test_extend_loses_race_against_logout(db_session):
    user = create_user_in_db(db_session)
    row = session_service.create_session(db_session, user_id=user.id, fingerprint=None, address=None)
    db_session.commit()

    # the caller read an active row, then a logout landed before the write
    session_store.deactivate(db_session, row.id, user.id)
    with pytest.raises(SessionRevoked):
        session_service.extend_session(db_session, row, user_id=user.id)


def test_revoke_session_checks_owner(db_session):
    alice = create_user_in_db(db_session)
    bob = create_user_in_db(db_session)
    row = session_service.create_session(db_session, user_id=alice.id, fingerprint=None, address=None)
    db_session.commit()

    with pytest.raises(NotFound):
        session_service.revoke_session(db_session, user_id=alice.id, session_id="missing")
    with pytest.raises(Forbidden):
        session_service.revoke_session(db_session, user_id=bob.id, session_id=row.id)

    session_service.revoke_session(db_session, user_id=alice.id, session_id=row.id)
    assert session_store.by_id(db_session, row.id).is_active is False


def test_revoke_all_except_keeps_one(db_session):
    user = create_user_in_db(db_session)
    keep = session_service.create_session(db_session, user_id=user.id, fingerprint=None, address=None)
    for _ in range(2):
        session_service.create_session(db_session, user_id=user.id, fingerprint=None, address=None)
    db_session.commit()

    assert session_service.revoke_all_except(db_session, user_id=user.id, keep_session_id=keep.id) == 2
    active = session_service.list_sessions(db_session, user.id)
    assert [s.id for s in active] == [keep.id]


def test_maintenance_and_purge(db_session):
    user = create_user_in_db(db_session)
    now = clock.utcnow()
    expired = session_store.create(
        db_session,
        user_id=user.id,
        device_class=DeviceClass.UNKNOWN,
        device_info=None,
        last_ip=None,
        expires_at=now - datetime.timedelta(hours=1),
        now=now - datetime.timedelta(days=40),
    )
    live = session_service.create_session(db_session, user_id=user.id, fingerprint=None, address=None)
    db_session.commit()

    assert session_service.perform_maintenance(db_session) == 1
    assert session_service.purge_stale_sessions(db_session) == 1
    db_session.commit()

    assert session_store.by_id(db_session, expired.id) is None
    assert session_store.by_id(db_session, live.id).is_active is True


def test_pending_sessions_are_not_listed(db_session):
    user = create_user_in_db(db_session)
    live = session_service.create_session(db_session, user_id=user.id, fingerprint=None, address=None)
    session_service.create_session(
        db_session, user_id=user.id, fingerprint=None, address=None, two_factor_pending=True
    )
    db_session.commit()

    assert [s.id for s in session_service.list_sessions(db_session, user.id)] == [live.id]
