"""Authentication blueprint: registration, verification, login and password reset."""

from __future__ import annotations
from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import (
    create_access_token,
    current_user,
    get_current_user,
    jwt_required,
    set_access_cookies,
    unset_jwt_cookies,
)
from sqlalchemy import func
from werkzeug.exceptions import BadRequest, NotFound

from models import db
from models.user import User
from models.verification_code import PURPOSE_RESET_PASSWORD, PURPOSE_VERIFY_EMAIL
from services.activity import log_user_activity
from services.claims import authenticate, build_claims, find_user_by_email
from services.mail import (
    send_forgot_password_email,
    send_password_changed_email,
    send_quietly,
    send_verification_email,
    send_welcome_email,
)
from services.verification import consume_code, issue_code
from utils.errors import InvalidOrExpiredCode, ResendTooSoon
from utils.request_validation import (
    is_valid_email,
    normalize_email,
    parse_json_request,
    validate_password,
    validate_username,
)

auth_bp = Blueprint("auth", __name__)
me_bp = Blueprint("me", __name__)

FORGOT_PASSWORD_MESSAGE = (
    "If an account with that email exists, we've sent a password reset code"
)


def _require_email(payload: dict) -> str:
    email = normalize_email(payload.get("email"))
    if not email:
        raise BadRequest("Email is required.")
    return email


def _require_user(email: str) -> User:
    user = find_user_by_email(email)
    if user is None:
        raise NotFound("User not found.")
    return user


def _session_response(user: User, status: int = HTTPStatus.OK):
    token = create_access_token(identity=user)
    response = jsonify({"access_token": token, "user": build_claims(user)})
    response.status_code = status
    set_access_cookies(response, token)
    return response


@auth_bp.route("/register", methods=["POST"])
def register():
    """Create an unverified account and email it a verification code."""

    payload = parse_json_request(request)
    username = payload.get("username") or ""
    if isinstance(username, str):
        username = username.strip()
    email = normalize_email(payload.get("email"))
    password = payload.get("password") or ""

    errors = validate_username(username)
    if not is_valid_email(email):
        errors.append("email must be a valid email address")
    errors.extend(validate_password(password))
    if errors:
        raise BadRequest("; ".join(errors))

    if find_user_by_email(email) is not None:
        raise BadRequest("User already exists.")
    if User.query.filter(func.lower(User.username) == username.lower()).first():
        raise BadRequest("Username already exists.")

    user = User(username=username, email=email, is_verified=False)
    user.set_password(password)
    db.session.add(user)
    db.session.flush()
    log_user_activity(user.id, "register")
    db.session.commit()

    code = issue_code(user, PURPOSE_VERIFY_EMAIL)
    email_sent = send_quietly(send_verification_email, user.email, user.username, code)
    if not email_sent:
        current_app.logger.warning("Verification email for user %s was not sent", user.id)

    return (
        jsonify(
            {
                "message": "User registered successfully.",
                "user": user.to_profile_dict(),
                "isVerificationEmailSent": email_sent,
            }
        ),
        HTTPStatus.CREATED,
    )


@auth_bp.route("/login", methods=["POST"])
def login():
    """Authenticate with email and password and start a session."""

    payload = parse_json_request(request)
    email = normalize_email(payload.get("email"))
    password = str(payload.get("password") or "")
    if not email or not password:
        raise BadRequest("Email and password are required.")

    user = authenticate(email, password)
    log_user_activity(user.id, "login")
    db.session.commit()
    return _session_response(user)


@auth_bp.route("/logout", methods=["POST"])
def logout():
    response = jsonify({"message": "Signed out."})
    unset_jwt_cookies(response)
    return response


@auth_bp.route("/session", methods=["GET"])
@jwt_required()
def refresh_session():
    """Re-derive claims from the stored user and issue a token carrying them."""

    return _session_response(get_current_user())


@me_bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    """Return the claims of the current session."""

    return jsonify({"user": build_claims(current_user)})


@auth_bp.route("/resend-code", methods=["POST"])
def resend_code():
    """Issue a fresh email verification code, invalidating the previous one."""

    payload = parse_json_request(request)
    user = _require_user(_require_email(payload))
    if user.is_verified:
        raise BadRequest("Email already verified.")

    code = issue_code(user, PURPOSE_VERIFY_EMAIL)
    send_verification_email(user.email, user.username, code)
    return jsonify({"message": "Verification code sent successfully."})


@auth_bp.route("/verify", methods=["POST"])
def verify_email():
    """Consume an email verification code and mark the account verified."""

    payload = parse_json_request(request)
    email = normalize_email(payload.get("email"))
    code = str(payload.get("code") or "").strip()
    if not email or not code:
        raise BadRequest("Email and verification code are required.")

    user = _require_user(email)
    if user.is_verified:
        # Codes are deleted on verification, so nothing can match.
        raise InvalidOrExpiredCode()

    consume_code(user, PURPOSE_VERIFY_EMAIL, code)
    user.mark_verified()
    log_user_activity(user.id, "verify_email")
    db.session.commit()

    send_quietly(send_welcome_email, user.email, user.username)
    return jsonify({"message": "Email verified successfully."})


@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password():
    """Email a password reset code without revealing whether the account exists."""

    payload = parse_json_request(request)
    email = _require_email(payload)
    user = find_user_by_email(email)

    if payload.get("checkUserExists") is True:
        return jsonify(
            {
                "success": True,
                "userExists": user is not None,
                "message": "User found" if user else "User not found",
            }
        )

    if user is None:
        current_app.logger.info("Password reset requested for unknown email")
        return jsonify({"success": True, "message": FORGOT_PASSWORD_MESSAGE})

    try:
        code = issue_code(user, PURPOSE_RESET_PASSWORD)
    except ResendTooSoon:
        current_app.logger.info("Password reset for user %s throttled", user.id)
        return jsonify({"success": True, "message": FORGOT_PASSWORD_MESSAGE})

    send_forgot_password_email(user.email, user.username, code)
    return jsonify({"success": True, "message": FORGOT_PASSWORD_MESSAGE})


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password():
    """Consume a reset code and replace the account password."""

    payload = parse_json_request(request)
    email = normalize_email(payload.get("email"))
    code = str(payload.get("code") or "").strip()
    password = payload.get("password") or ""
    if not email or not code or not password:
        raise BadRequest("Email, code, and password are required.")

    errors = validate_password(password)
    if errors:
        raise BadRequest("; ".join(errors))

    user = _require_user(email)
    consume_code(user, PURPOSE_RESET_PASSWORD, code)
    user.set_password(password)
    user.mark_verified()
    log_user_activity(user.id, "reset_password")
    db.session.commit()

    send_quietly(send_password_changed_email, user.email, user.username)
    return jsonify({"message": "Password reset successfully."})
