"""Tests for the User model helpers."""

from datetime import timedelta

from models import db, utcnow
from models.user import ROLE_ADMIN, ROLE_USER, User


def test_user_defaults_and_password_helpers(app):
    with app.app_context():
        user = User(email="helper@example.com", username="helper")
        user.set_password("password123")
        db.session.add(user)
        db.session.commit()

        assert user.role == ROLE_USER
        assert user.is_active is True
        assert user.is_verified is False
        assert user.password_hash != "password123"
        assert user.check_password("password123") is True
        assert user.check_password("wrong-password") is False

        user.mark_verified()
        db.session.commit()
        db.session.refresh(user)

        assert user.is_verified is True


def test_oauth_only_user_never_matches_a_password(app):
    with app.app_context():
        user = User(email="oauth@example.com", username="oauth")
        assert user.password_hash is None
        assert user.check_password("") is False
        assert user.check_password("anything") is False


def test_activation_window():
    now = utcnow()
    user = User(email="window@example.com", username="window", is_active=True)

    assert user.is_currently_active(now) is True

    user.active_until = now + timedelta(days=1)
    assert user.is_currently_active(now) is True

    user.active_until = now - timedelta(seconds=1)
    assert user.is_currently_active(now) is False

    user.active_until = None
    user.is_active = False
    assert user.is_currently_active(now) is False


def test_display_name_and_admin_flag():
    user = User(email="name@example.com", username="named", role=ROLE_ADMIN)

    assert user.display_name == "named"
    assert user.is_admin is True

    user.name = "Named Person"
    assert user.display_name == "Named Person"


def test_admin_dict_has_no_password_hash(app):
    with app.app_context():
        user = User(email="dict@example.com", username="dict")
        user.set_password("password123")
        db.session.add(user)
        db.session.commit()

        payload = user.to_admin_dict()

    assert "password_hash" not in payload
    assert payload["email"] == "dict@example.com"
    assert payload["role"] == ROLE_USER
    assert payload["isActive"] is True
    assert payload["activeUntil"] is None
    assert payload["createdAt"]
