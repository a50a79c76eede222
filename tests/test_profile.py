"""Tests for the signed-in user's profile endpoints."""

from __future__ import annotations

from io import BytesIO

from models import db
from models.activity import Activity
from models.user import User

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _upload(client, headers, data: bytes = PNG_BYTES, filename="avatar.png", mimetype="image/png"):
    return client.post(
        "/api/user/profile-image",
        data={"profileImage": (BytesIO(data), filename, mimetype)},
        headers=headers,
        content_type="multipart/form-data",
    )


def test_profile_requires_session(app):
    response = app.test_client().get("/api/user/profile")

    assert response.status_code == 401


def test_get_profile(client, create_user, login):
    create_user("me@example.com", username="myself", name="Me Myself")
    headers = login("me@example.com")

    response = client.get("/api/user/profile", headers=headers)

    assert response.status_code == 200
    user = response.get_json()["user"]
    assert user["username"] == "myself"
    assert user["name"] == "Me Myself"
    assert user["profileImage"] is None


def test_update_profile(app, client, create_user, login):
    user_id = create_user("me@example.com", username="myself")
    headers = login("me@example.com")

    response = client.patch(
        "/api/user/profile",
        json={"username": "renamed", "name": "  New Name ", "email": "New@Example.com"},
        headers=headers,
    )

    assert response.status_code == 200
    user = response.get_json()["user"]
    assert user == {
        "id": user_id,
        "email": "new@example.com",
        "username": "renamed",
        "name": "New Name",
        "profileImage": None,
        "isVerified": True,
    }
    with app.app_context():
        actions = [a.action for a in Activity.query.filter_by(user_id=user_id)]
    assert "profile_update" in actions


def test_update_profile_keeps_identifiers_unique(client, create_user, login):
    create_user("other@example.com", username="other")
    create_user("me@example.com", username="myself")
    headers = login("me@example.com")

    response = client.patch(
        "/api/user/profile", json={"email": "OTHER@example.com"}, headers=headers
    )
    assert response.status_code == 400
    assert response.get_json()["detail"] == "Email already in use."

    response = client.patch("/api/user/profile", json={"username": "Other"}, headers=headers)
    assert response.status_code == 400
    assert response.get_json()["detail"] == "Username already in use."

    response = client.patch(
        "/api/user/profile",
        json={"email": "me@example.com", "username": "myself"},
        headers=headers,
    )
    assert response.status_code == 200


def test_update_profile_validation(client, create_user, login):
    create_user("me@example.com", username="myself")
    headers = login("me@example.com")

    for payload in ({"name": "x"}, {"username": "a"}, {"email": "broken"}):
        response = client.patch("/api/user/profile", json=payload, headers=headers)
        assert response.status_code == 400, payload


def test_upload_profile_image(app, client, create_user, login, tmp_path):
    user_id = create_user("me@example.com")
    headers = login("me@example.com")

    response = _upload(client, headers)

    assert response.status_code == 200
    url = response.get_json()["profileImage"]
    assert url.startswith("/uploads/") and url.endswith(".png")
    assert (tmp_path / "uploads" / url.rsplit("/", 1)[1]).is_file()
    assert client.get(url).data == PNG_BYTES
    with app.app_context():
        assert db.session.get(User, user_id).profile_image == url


def test_new_profile_image_replaces_old_file(client, create_user, login, tmp_path):
    create_user("me@example.com")
    headers = login("me@example.com")

    first = _upload(client, headers).get_json()["profileImage"]
    second = _upload(client, headers, filename="next.webp", mimetype="image/webp").get_json()[
        "profileImage"
    ]

    assert second.endswith(".webp")
    assert not (tmp_path / "uploads" / first.rsplit("/", 1)[1]).exists()
    assert (tmp_path / "uploads" / second.rsplit("/", 1)[1]).exists()


def test_profile_image_validation(app, client, create_user, login):
    create_user("me@example.com")
    headers = login("me@example.com")

    response = _upload(client, headers, data=b"hello", filename="notes.txt", mimetype="text/plain")
    assert response.status_code == 400
    assert "Invalid file type" in response.get_json()["detail"]

    app.config["MAX_PROFILE_IMAGE_SIZE"] = 16
    response = _upload(client, headers)
    assert response.status_code == 400
    assert "File size exceeds" in response.get_json()["detail"]

    response = client.post(
        "/api/user/profile-image",
        data={},
        headers=headers,
        content_type="multipart/form-data",
    )
    assert response.status_code == 400


def test_own_activity_feed(client, create_user, login):
    create_user("other@example.com")
    create_user("me@example.com", username="myself")
    login("other@example.com")
    headers = login("me@example.com")
    client.patch("/api/user/profile", json={"name": "Changed"}, headers=headers)

    response = client.get("/api/user/activity", headers=headers)

    activities = response.get_json()["activities"]
    assert [a["action"] for a in activities] == ["profile_update", "login"]
    assert {a["email"] for a in activities} == {"me@example.com"}
