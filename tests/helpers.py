# tests/helpers.py
import uuid

from sqlalchemy.orm import Session

from gnl_auth.core.security import hash_password
from gnl_auth.models.user import MembershipLevel, TrustLevel, User, UserRole

IPHONE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)"
DESKTOP_UA = "Mozilla/5.0 (X11; Linux x86_64)"


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def create_user_in_db(
    db: Session,
    *,
    email: str | None = None,
    username: str | None = None,
    password: str = "UserPassw0rd!",
    role: UserRole = UserRole.BASIC,
    points: int = 0,
    membership: MembershipLevel = MembershipLevel.BASIC,
    trust: TrustLevel = TrustLevel.BASIC,
    verified: bool = True,
) -> User:
    suffix = uuid.uuid4().hex[:6]
    user = User(
        email=email or f"user_{suffix}@test.com",
        username=username or f"user_{suffix}",
        password_hash=hash_password(password),
        full_name="Test User",
        role=role,
        points_balance=points,
        membership_level=membership,
        trust_level=trust,
        is_active=True,
        is_verified=verified,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_admin_in_db(db: Session, *, email: str, password: str, role: UserRole = UserRole.ADMIN) -> User:
    return create_user_in_db(db, email=email, password=password, role=role, trust=TrustLevel.LEADER)


def login(client, email: str, password: str, *, device: str = DESKTOP_UA, remember: bool = False) -> dict:
    r = client.post(
        "/auth/login",
        json={"email": email, "password": password, "device_info": device, "remember_me": remember},
    )
    assert r.status_code == 200, r.text
    return r.json()["data"]


def register(client, *, email: str, username: str, password: str = "Passw0rd!", **extra):
    body = {
        "email": email,
        "username": username,
        "password": password,
        "full_name": "Test User",
        "accept_terms": True,
    }
    body.update(extra)
    return client.post("/auth/register", json=body)
