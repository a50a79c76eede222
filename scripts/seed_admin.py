"""Seed an administrator user from DEFAULT_ADMIN_EMAIL / DEFAULT_ADMIN_PASSWORD."""

from __future__ import annotations

from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app
from models import db
from models.user import ROLE_ADMIN, User
from services.claims import find_user_by_email

ADMIN_USERNAME = "admin"
ADMIN_NAME = "Administrator"


def seed_admin(email: str, password: str) -> str:
    """Create the admin account, or promote an existing user with that email.

    Returns ``"created"``, ``"promoted"`` or ``"unchanged"``. An existing
    user's password is left alone.
    """

    admin = find_user_by_email(email)
    if admin is None:
        username = ADMIN_USERNAME
        if User.query.filter_by(username=username).first() is not None:
            username = email.split("@", 1)[0]
        admin = User(
            email=email,
            username=username,
            name=ADMIN_NAME,
            role=ROLE_ADMIN,
            is_verified=True,
            is_active=True,
        )
        admin.set_password(password)
        db.session.add(admin)
        action = "created"
    elif admin.role != ROLE_ADMIN:
        admin.role = ROLE_ADMIN
        action = "promoted"
    else:
        action = "unchanged"
    db.session.commit()
    return action


def main() -> None:
    app = create_app()
    with app.app_context():
        email = app.config["DEFAULT_ADMIN_EMAIL"].strip().lower()
        action = seed_admin(email, app.config["DEFAULT_ADMIN_PASSWORD"])
        print(f"Admin user {action}: {email}")


if __name__ == "__main__":
    main()
