"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402
from models.user import ROLE_USER, User  # noqa: E402

DEFAULT_PASSWORD = "Password123"


class _BaseTestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = "test-secret-key"
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    RATE_LIMIT = "1000 per minute"
    RESEND_COOLDOWN_SECONDS = 0
    MAIL_SUPPRESS_SEND = True
    RESEND_API_KEY = None
    GOOGLE_CLIENT_ID = "google-client-id"
    GOOGLE_CLIENT_SECRET = "google-client-secret"
    GOOGLE_REDIRECT_URI = "http://localhost/api/auth/oauth/google/callback"


@pytest.fixture()
def make_app(tmp_path):
    """Return a factory building a test app with optional config overrides."""

    created: list[Flask] = []

    def _make(**overrides) -> Flask:
        class TestConfig(_BaseTestConfig):
            UPLOAD_DIR = str(tmp_path / "uploads")

        for key, value in overrides.items():
            setattr(TestConfig, key, value)

        application = create_app(TestConfig)
        with application.app_context():
            db.create_all()
        created.append(application)
        return application

    yield _make

    for application in created:
        with application.app_context():
            db.session.remove()
            db.drop_all()


@pytest.fixture()
def app(make_app) -> Flask:
    """Create a Flask application instance for tests."""

    return make_app()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


@pytest.fixture()
def outbox(app: Flask) -> list[dict]:
    """Messages captured while MAIL_SUPPRESS_SEND is on."""

    return app.extensions["mail_outbox"]


@pytest.fixture()
def create_user(app: Flask):
    """Persist a user and return its id."""

    def _create(
        email: str,
        password: str | None = DEFAULT_PASSWORD,
        *,
        username: str | None = None,
        role: str = ROLE_USER,
        verified: bool = True,
        **fields,
    ) -> int:
        with app.app_context():
            user = User(
                email=email,
                username=username or email.split("@", 1)[0],
                role=role,
                is_verified=verified,
                **fields,
            )
            if password is not None:
                user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _create


@pytest.fixture()
def login(client: FlaskClient):
    """Log in through the API and return an Authorization header."""

    def _login(email: str, password: str = DEFAULT_PASSWORD) -> dict:
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.get_json()
        return {"Authorization": f"Bearer {response.get_json()['access_token']}"}

    return _login
