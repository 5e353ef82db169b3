import datetime

import pytest

from gnl_auth.core import clock
from gnl_auth.core.config import settings
from gnl_auth.core.errors import InvalidRequest, NotFound
from gnl_auth.models.content_access import ContentAccess
from gnl_auth.models.user import MembershipLevel, TrustLevel, UserRole
from gnl_auth.services import access as access_service
from gnl_auth.services.access import DenyReason
from tests.helpers import auth_header, create_admin_in_db, create_user_in_db, login


@pytest.fixture
def admin(db_session):
    return create_admin_in_db(db_session, email="gate-admin@test.com", password="AdminPassw0rd!")


def test_premium_chapter_denied_then_granted(db_session, admin):
    access_service.set_content_access(
        db_session, admin, content_type="book_chapter", content_id=42, visibility="premium"
    )
    reader = create_user_in_db(db_session, role=UserRole.ACTIVE, points=10)

    decision = access_service.decide(db_session, reader.id, "book_chapter", 42)
    assert decision.allowed is False
    assert decision.reason is DenyReason.REQUIRES_PREMIUM
    assert decision.message == "This content requires a Premium membership"

    access_service.grant_permission(
        db_session, admin, user_id=reader.id, content_type="book_chapter", content_id=42
    )
    assert access_service.decide(db_session, reader.id, "book_chapter", 42).allowed is True


def test_premium_membership_is_enough(db_session, admin):
    access_service.set_content_access(
        db_session, admin, content_type="book_chapter", content_id=7, visibility="premium"
    )
    member = create_user_in_db(db_session, membership=MembershipLevel.VIP)
    assert access_service.decide(db_session, member.id, "book_chapter", 7).allowed is True


def test_expired_grant_does_not_count(db_session, admin):
    access_service.set_content_access(
        db_session, admin, content_type="book_chapter", content_id=43, visibility="premium"
    )
    reader = create_user_in_db(db_session)
    access_service.grant_permission(
        db_session,
        admin,
        user_id=reader.id,
        content_type="book_chapter",
        content_id=43,
        expires_at=clock.utcnow() - datetime.timedelta(minutes=1),
    )
    assert access_service.decide(db_session, reader.id, "book_chapter", 43).allowed is False


def test_anonymous_access(db_session, admin):
    # no gate at all
    assert access_service.decide(db_session, None, "book_section", 1).allowed is True

    access_service.set_content_access(
        db_session, admin, content_type="book_section", content_id=2, visibility="public"
    )
    assert access_service.decide(db_session, None, "book_section", 2).allowed is True

    access_service.set_content_access(
        db_session, admin, content_type="book_section", content_id=3, visibility="registered"
    )
    decision = access_service.decide(db_session, None, "book_section", 3)
    assert decision.allowed is False
    assert decision.reason is DenyReason.LOGIN_REQUIRED


def test_missing_and_inactive_users(db_session):
    assert access_service.decide(db_session, 999_999, "book", 1).reason is DenyReason.USER_NOT_FOUND

    user = create_user_in_db(db_session)
    user.is_active = False
    db_session.commit()
    assert access_service.decide(db_session, user.id, "book", 1).reason is DenyReason.INACTIVE


def test_staff_shortcuts(db_session, admin):
    access_service.set_content_access(
        db_session, admin, content_type="book", content_id=1, visibility="admins"
    )
    access_service.set_content_access(
        db_session, admin, content_type="book", content_id=2, visibility="moderators"
    )
    moderator = create_user_in_db(db_session, role=UserRole.MODERATOR)

    assert access_service.decide(db_session, admin.id, "book", 1).allowed is True
    assert access_service.decide(db_session, moderator.id, "book", 1).reason is DenyReason.ADMIN_ONLY
    assert access_service.decide(db_session, moderator.id, "book", 2).allowed is True

    basic = create_user_in_db(db_session)
    assert access_service.decide(db_session, basic.id, "book", 2).reason is DenyReason.MODERATOR_ONLY


@pytest.mark.parametrize(
    "role, points, allowed",
    [
        (UserRole.BASIC, 0, False),
        (UserRole.BASIC, 100, True),
        (UserRole.ENGAGED, 0, True),
        (UserRole.ACTIVE, 0, True),
    ],
)
def test_engaged_visibility(db_session, admin, role, points, allowed):
    access_service.set_content_access(
        db_session, admin, content_type="book", content_id=5, visibility="engaged", min_points_required=100
    )
    user = create_user_in_db(db_session, role=role, points=points)
    assert access_service.decide(db_session, user.id, "book", 5).allowed is allowed


def test_active_visibility_requires_role_or_points(db_session, admin):
    access_service.set_content_access(
        db_session, admin, content_type="book", content_id=6, visibility="active", min_points_required=500
    )
    engaged = create_user_in_db(db_session, role=UserRole.ENGAGED, points=10)
    decision = access_service.decide(db_session, engaged.id, "book", 6)
    assert decision.reason is DenyReason.REQUIRES_ACTIVE
    assert decision.message == "You need to be an Active user to access this content"


def test_rules_apply_by_priority(db_session, admin):
    access_service.create_rule(
        db_session, admin, content_type="forum_topic", name="open", visibility="public", priority=1
    )
    access_service.create_rule(
        db_session,
        admin,
        content_type="forum_topic",
        name="trusted only",
        applies_to="10, 11",
        visibility="registered",
        min_trust_level="trusted",
        priority=5,
    )
    newcomer = create_user_in_db(db_session, trust=TrustLevel.BASIC)
    veteran = create_user_in_db(db_session, trust=TrustLevel.LEADER)

    denied = access_service.decide(db_session, newcomer.id, "forum_topic", 10)
    assert denied.reason is DenyReason.REQUIRES_TRUST_LEVEL
    assert denied.message == "You need trust level 'trusted' to access this content"
    assert access_service.decide(db_session, veteran.id, "forum_topic", 10).allowed is True

    # topic 12 is only covered by the low-priority open rule
    assert access_service.decide(db_session, newcomer.id, "forum_topic", 12).allowed is True
    # anonymous users are stopped by the flagged rule
    assert access_service.decide(db_session, None, "forum_topic", 11).allowed is False


def test_item_row_wins_over_rules(db_session, admin):
    access_service.create_rule(
        db_session, admin, content_type="lesson", name="premium lessons", is_premium_only=True, priority=9
    )
    access_service.set_content_access(
        db_session, admin, content_type="lesson", content_id=1, visibility="public"
    )
    user = create_user_in_db(db_session)
    assert access_service.decide(db_session, user.id, "lesson", 1).allowed is True
    assert access_service.decide(db_session, user.id, "lesson", 2).reason is DenyReason.REQUIRES_PREMIUM


def test_inactive_rules_are_ignored(db_session, admin):
    rule = access_service.create_rule(
        db_session, admin, content_type="quiz", name="mods", is_moderator_only=True
    )
    user = create_user_in_db(db_session)
    assert access_service.decide(db_session, user.id, "quiz", 1).reason is DenyReason.MODERATOR_ONLY

    access_service.update_rule(db_session, admin, rule.id, is_active=False)
    assert access_service.decide(db_session, user.id, "quiz", 1).allowed is True
    assert access_service.list_rules(db_session, "quiz") == []
    assert len(access_service.list_rules(db_session, "quiz", include_inactive=True)) == 1


def _store_unknown_visibility(db_session):
    db_session.add(ContentAccess(content_type="book", content_id=77, visibility="secret"))
    db_session.commit()


def test_unknown_visibility_fails_open_by_default(db_session):
    _store_unknown_visibility(db_session)
    user = create_user_in_db(db_session)
    assert access_service.decide(db_session, user.id, "book", 77).allowed is True


def test_unknown_visibility_fails_closed_when_configured(db_session, monkeypatch):
    monkeypatch.setattr(settings, "ACCESS_FAIL_CLOSED_ON_UNKNOWN_VISIBILITY", True)
    _store_unknown_visibility(db_session)
    user = create_user_in_db(db_session)
    decision = access_service.decide(db_session, user.id, "book", 77)
    assert decision.allowed is False
    assert decision.reason is DenyReason.UNKNOWN_VISIBILITY


def test_management_validation(db_session, admin):
    with pytest.raises(InvalidRequest):
        access_service.set_content_access(
            db_session, admin, content_type="book", content_id=1, visibility="everyone"
        )
    with pytest.raises(InvalidRequest):
        access_service.create_rule(db_session, admin, content_type="book", name="x", min_trust_level="guru")
    with pytest.raises(NotFound):
        access_service.update_rule(db_session, admin, 12345, priority=1)
    with pytest.raises(NotFound):
        access_service.grant_permission(db_session, admin, user_id=999_999, content_type="book", content_id=1)
    with pytest.raises(NotFound):
        access_service.get_content_access(db_session, "book", 404)


def test_check_access_endpoint(client, db_session, admin):
    access_service.set_content_access(
        db_session, admin, content_type="book_chapter", content_id=42, visibility="premium"
    )
    create_user_in_db(db_session, email="reader@test.com", password="ReaderPassw0rd!", role=UserRole.ACTIVE, points=10)
    tokens = login(client, "reader@test.com", "ReaderPassw0rd!")

    r = client.post(
        "/content/check-access",
        json={"content_type": "book_chapter", "content_id": 42},
        headers=auth_header(tokens["access_token"]),
    )
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["has_access"] is False
    assert data["reason"] == "requires_premium"
    assert data["message"] == "This content requires a Premium membership"

    r = client.post("/content/check-access", json={"content_type": "book_chapter", "content_id": 42})
    assert r.status_code == 200, r.text
    assert r.json()["data"]["reason"] == "login_required"

    r = client.post(
        "/content/check-access",
        json={"content_type": "book_chapter", "content_id": 42},
        headers=auth_header("not-a-token"),
    )
    assert r.status_code == 401


ROLE_LADDER = [UserRole.BASIC, UserRole.ENGAGED, UserRole.ACTIVE, UserRole.PREMIUM]


@pytest.mark.parametrize("visibility", ["public", "registered", "engaged", "active", "premium", "moderators"])
@pytest.mark.parametrize("points", [0, 150])
@pytest.mark.parametrize("membership", [MembershipLevel.BASIC, MembershipLevel.PREMIUM])
def test_higher_roles_never_lose_access(db_session, admin, visibility, points, membership):
    access_service.set_content_access(
        db_session, admin, content_type="book", content_id=8, visibility=visibility, min_points_required=100
    )
    allowed = [
        access_service.decide(
            db_session, create_user_in_db(db_session, role=role, points=points, membership=membership).id, "book", 8
        ).allowed
        for role in ROLE_LADDER
    ]
    first = allowed.index(True) if True in allowed else len(allowed)
    assert all(allowed[first:]), dict(zip(ROLE_LADDER, allowed))
