"""Tests for the Flask application factory."""
from __future__ import annotations


def test_health_endpoint_returns_ok(client, tmp_path):
    """The health endpoint should respond with an OK payload and create uploads dir."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}
    # uploads dir is configured via TestConfig in conftest and created on app init
    assert (tmp_path / "uploads").is_dir()


def test_blueprints_registered(app):
    """Application factory should register expected blueprints."""
    bps = set(app.blueprints.keys())
    assert {"auth", "me", "oauth", "profile", "admin", "pages"}.issubset(bps)


def test_me_route_is_mounted_outside_auth_prefix(app):
    rules = {rule.rule for rule in app.url_map.iter_rules()}
    assert "/api/me" in rules
    assert "/api/auth/register" in rules
    assert "/api/user/profile-image" in rules


def test_uploaded_files_are_served(client, tmp_path):
    (tmp_path / "uploads" / "avatar.png").write_bytes(b"\x89PNG")

    response = client.get("/uploads/avatar.png")

    assert response.status_code == 200
    assert response.data == b"\x89PNG"


def test_unknown_route_returns_json_404(client):
    response = client.get("/does-not-exist")

    assert response.status_code == 404
    payload = response.get_json()
    assert payload["error"] == "Not Found"
    assert payload["request_id"]
