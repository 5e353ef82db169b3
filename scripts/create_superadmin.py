"""

Bootstrap script for the first SUPERADMIN account.

- meant to run once, when a server is first set up
- reads SUPERADMIN_* variables from the environment (or .env)
  and creates a superadmin account
- does nothing when a superadmin already exists

Why:
- the role management API needs an account at the top of the
  hierarchy before anyone can be promoted

Usage
- activate the virtualenv
- (.venv) $ python -m scripts.create_superadmin

"""

import os
from dotenv import load_dotenv
load_dotenv()

from sqlalchemy import select

from gnl_auth.core.security import hash_password, password_is_strong
from gnl_auth.db.session import SessionLocal
from gnl_auth.models.user import TrustLevel, User, UserRole
from gnl_auth.store import users as user_store


def main():
    db = SessionLocal()
    try:
        exists = db.scalar(
            select(User).where(User.role == UserRole.SUPERADMIN, User.is_deleted.is_(False))
        )
        if exists:
            print("SUPERADMIN already exists. Skip creation.")
            return

        email = os.environ["SUPERADMIN_EMAIL"].strip().lower()
        password = os.environ["SUPERADMIN_PASSWORD"]
        username = os.environ.get("SUPERADMIN_USERNAME", "superadmin")
        full_name = os.environ.get("SUPERADMIN_NAME", "Super Admin")

        if not password_is_strong(password):
            raise RuntimeError("SUPERADMIN_PASSWORD needs 8+ characters with a letter and a digit")
        if user_store.email_exists(db, email):
            raise RuntimeError("Email already exists but is not SUPERADMIN")

        user_store.create(
            db,
            email=email,
            username=username,
            password_hash=hash_password(password),
            full_name=full_name,
            role=UserRole.SUPERADMIN,
            trust_level=TrustLevel.LEADER,
            is_active=True,
            is_verified=True,
        )
        db.commit()

        print(f"SUPERADMIN created: {email}")

    finally:
        db.close()


if __name__ == "__main__":
    main()
