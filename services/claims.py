"""Credential authentication and session claims.

Sessions are JWTs issued by Flask-JWT-Extended. The claims describing the
user's authorization state are embedded at issuance, and the user record is
reloaded on every authenticated request so role, verification and
activation changes are visible without logging in again.
"""

from __future__ import annotations

from flask_jwt_extended import JWTManager
from sqlalchemy import func
from werkzeug.exceptions import Unauthorized

from models import db
from models.user import User
from utils.errors import UnverifiedUser, json_error

CLAIM_KEYS = ("id", "email", "name", "image", "role", "isVerified", "isActive")


def build_claims(user: User) -> dict:
    """Map persisted user attributes onto session claims."""

    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.display_name,
        "image": user.profile_image,
        "role": user.role,
        "isVerified": bool(user.is_verified),
        "isActive": user.is_currently_active(),
    }


def find_user_by_email(email: str) -> User | None:
    return User.query.filter(func.lower(User.email) == email.lower()).first()


def load_user(identity: object) -> User | None:
    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


def authenticate(email: str, password: str) -> User:
    """Return the user owning the credentials.

    Raises ``Unauthorized`` for unknown emails, password-less (OAuth only)
    accounts and wrong passwords, and ``UnverifiedUser`` when the
    credentials are right but the email address is not verified yet.
    """

    user = find_user_by_email(email)
    if user is None or not user.check_password(password):
        raise Unauthorized("Invalid email or password.")
    if not user.is_verified:
        raise UnverifiedUser()
    return user


def _jwt_error(message: str):
    return json_error(401, "Unauthorized", message)


def register_jwt_callbacks(jwt: JWTManager) -> None:
    """Wire user identity, claims and JSON error responses into the JWT manager."""

    @jwt.user_identity_loader
    def _user_identity(identity):
        if isinstance(identity, User):
            return str(identity.id)
        return str(identity)

    @jwt.additional_claims_loader
    def _additional_claims(identity):
        user = identity if isinstance(identity, User) else load_user(identity)
        if user is None:
            return {}
        return build_claims(user)

    @jwt.user_lookup_loader
    def _lookup_user(_jwt_header, jwt_data):
        return load_user(jwt_data.get("sub"))

    @jwt.unauthorized_loader
    def _missing_token(reason: str):
        return _jwt_error(reason)

    @jwt.invalid_token_loader
    def _invalid_token(reason: str):
        return _jwt_error(reason)

    @jwt.expired_token_loader
    def _expired_token(_jwt_header, _jwt_data):
        return _jwt_error("Session has expired.")

    @jwt.user_lookup_error_loader
    def _unknown_user(_jwt_header, _jwt_data):
        return _jwt_error("Session user no longer exists.")
