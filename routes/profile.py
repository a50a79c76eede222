"""Profile blueprint for the signed-in user's own account."""

from __future__ import annotations

import os
import uuid

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_current_user, jwt_required
from sqlalchemy import func
from werkzeug.datastructures import FileStorage
from werkzeug.exceptions import BadRequest

from models import db
from models.user import User
from services.activity import get_recent_activities, log_user_activity
from storage.local_storage import LocalStorage
from utils.request_validation import (
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
    is_valid_email,
    normalize_email,
    parse_json_request,
    parse_positive_int,
    validate_username,
)

profile_bp = Blueprint("profile", __name__)

MAX_PROFILE_IMAGE_SIZE_DEFAULT = 5 * 1024 * 1024  # 5 MB
ALLOWED_IMAGE_TYPES_DEFAULT = ("image/jpeg", "image/png", "image/webp")
IMAGE_EXTENSIONS = {"image/jpeg": ".jpg", "image/png": ".png", "image/webp": ".webp"}


def _storage() -> LocalStorage:
    return LocalStorage(current_app.config["UPLOAD_DIR"])


def _validate_profile_update(data: dict) -> list[str]:
    errors = []

    if "username" in data:
        errors.extend(validate_username(data["username"]))

    if "name" in data:
        name = data["name"]
        if not isinstance(name, str) or not NAME_MIN_LENGTH <= len(name.strip()) <= NAME_MAX_LENGTH:
            errors.append(
                f"name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
            )

    if "email" in data and not is_valid_email(normalize_email(data["email"])):
        errors.append("email must be a valid email address")

    return errors


def _validate_image(file: FileStorage) -> None:
    if not file.filename:
        raise BadRequest("No file uploaded.")

    allowed = current_app.config.get("ALLOWED_IMAGE_TYPES") or ALLOWED_IMAGE_TYPES_DEFAULT
    if file.mimetype not in allowed:
        raise BadRequest("Invalid file type. Only JPEG, PNG, and WebP are allowed.")

    max_size = int(
        current_app.config.get("MAX_PROFILE_IMAGE_SIZE", MAX_PROFILE_IMAGE_SIZE_DEFAULT)
    )
    file.stream.seek(0, os.SEEK_END)
    size = file.stream.tell()
    file.stream.seek(0)
    if size > max_size:
        raise BadRequest(f"File size exceeds {max_size // (1024 * 1024)}MB limit.")


def _build_image_filename(file: FileStorage) -> str:
    return f"{uuid.uuid4().hex}{IMAGE_EXTENSIONS.get(file.mimetype, '')}"


@profile_bp.route("/profile", methods=["GET"])
@jwt_required()
def get_profile():
    return jsonify({"user": get_current_user().to_profile_dict()})


@profile_bp.route("/profile", methods=["PATCH"])
@jwt_required()
def update_profile():
    """Update username, display name or email, keeping both identifiers unique."""

    user = get_current_user()
    data = parse_json_request(request)
    errors = _validate_profile_update(data)
    if errors:
        raise BadRequest("; ".join(errors))

    email = normalize_email(data.get("email")) if data.get("email") else None
    username = data["username"].strip() if data.get("username") else None
    name = data["name"].strip() if data.get("name") else None

    if email and email != user.email:
        owner = User.query.filter(func.lower(User.email) == email).first()
        if owner is not None and owner.id != user.id:
            raise BadRequest("Email already in use.")

    if username:
        owner = User.query.filter(func.lower(User.username) == username.lower()).first()
        if owner is not None and owner.id != user.id:
            raise BadRequest("Username already in use.")

    changed = []
    for field, value in (("username", username), ("name", name), ("email", email)):
        if value is not None and getattr(user, field) != value:
            setattr(user, field, value)
            changed.append(field)

    if changed:
        log_user_activity(user.id, "profile_update", details=", ".join(changed))
    db.session.commit()

    return jsonify({"message": "Profile updated successfully.", "user": user.to_profile_dict()})


@profile_bp.route("/profile-image", methods=["POST"])
@jwt_required()
def upload_profile_image():
    """Store a new profile image and point the account at it."""

    user = get_current_user()
    file = request.files.get("profileImage")
    if not isinstance(file, FileStorage):
        raise BadRequest("No file uploaded.")

    _validate_image(file)

    storage = _storage()
    stored_name = storage.save(file, _build_image_filename(file))
    previous = LocalStorage.name_from_url(user.profile_image)

    user.profile_image = storage.public_url(stored_name)
    log_user_activity(user.id, "profile_image_update")
    db.session.commit()

    if previous and previous != stored_name:
        storage.delete(previous)

    return jsonify(
        {"message": "Profile image updated successfully.", "profileImage": user.profile_image}
    )


@profile_bp.route("/activity", methods=["GET"])
@jwt_required()
def my_activity():
    user = get_current_user()
    limit = parse_positive_int(request.args.get("limit"), field="limit", default=10, maximum=100)
    activities = get_recent_activities(limit, user_id=user.id)
    return jsonify({"activities": [activity.to_dict() for activity in activities]})
