"""Admin blueprint for user management and maintenance."""

from __future__ import annotations

import math
from datetime import timedelta

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import get_current_user, jwt_required
from sqlalchemy import or_
from werkzeug.exceptions import BadRequest, Forbidden, NotFound

from models import db, utcnow
from models.user import ROLE_ADMIN, ROLES, User
from services.activity import get_recent_activities, log_user_activity
from services.verification import purge_expired_codes
from utils.request_validation import parse_iso_datetime, parse_json_request, parse_positive_int

admin_bp = Blueprint("admin", __name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
SETTING_MESSAGES = {
    "allowRegistration": "Registration {}",
    "requireVerification": "Email verification requirement {}",
}
MAINTENANCE_OPERATIONS = ("backupDatabase", "cleanSessions", "purgeExpiredCodes")


def _require_admin() -> User:
    user = get_current_user()
    if user is None or user.role != ROLE_ADMIN:
        raise Forbidden("Unauthorized. Must be an admin to perform this action.")
    return user


def _get_user_or_404(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found.")
    return user


def user_stats() -> dict:
    """Return headline user counts for the admin dashboard."""

    now = utcnow()
    active = User.query.filter(
        User.is_active.is_(True),
        or_(User.active_until.is_(None), User.active_until > now),
    ).count()
    return {
        "totalUsers": User.query.count(),
        "activeUsers": active,
        "verifiedUsers": User.query.filter(User.is_verified.is_(True)).count(),
        "adminUsers": User.query.filter_by(role=ROLE_ADMIN).count(),
    }


@admin_bp.route("/users", methods=["GET"])
@jwt_required()
def list_users():
    """Return one page of users, newest first."""

    _require_admin()
    page = parse_positive_int(request.args.get("page"), field="page", default=1)
    limit = parse_positive_int(
        request.args.get("limit"), field="limit", default=DEFAULT_PAGE_SIZE, maximum=MAX_PAGE_SIZE
    )

    pagination = User.query.order_by(User.created_at.desc(), User.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )
    total = pagination.total or 0

    return jsonify(
        {
            "users": [user.to_admin_dict() for user in pagination.items],
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "pages": math.ceil(total / limit),
            },
        }
    )


@admin_bp.route("/users/<int:user_id>/role", methods=["PUT"])
@jwt_required()
def update_role(user_id: int):
    """Change a user's role, refusing to demote the last remaining admin."""

    admin = _require_admin()
    data = parse_json_request(request)
    role = data.get("role")
    if role not in ROLES:
        raise BadRequest("Invalid role. Role must be either USER or ADMIN.")

    user = _get_user_or_404(user_id)
    if role != ROLE_ADMIN and user.role == ROLE_ADMIN:
        admin_count = User.query.filter_by(role=ROLE_ADMIN).count()
        if admin_count <= 1:
            raise BadRequest("Cannot demote the last admin user.")

    previous = user.role
    user.role = role
    log_user_activity(user.id, "role_change", details=f"{previous} -> {role} by {admin.id}")
    db.session.commit()
    current_app.logger.info("Admin %s set role of user %s to %s", admin.id, user.id, role)

    return jsonify(
        {
            "message": f"User role updated successfully to {role}",
            "user": {"id": user.id, "email": user.email, "role": user.role},
        }
    )


@admin_bp.route("/users/<int:user_id>/activation", methods=["PUT"])
@jwt_required()
def update_activation(user_id: int):
    """Activate or deactivate an account, with an optional expiry when activating."""

    admin = _require_admin()
    data = parse_json_request(request)

    is_active = data.get("isActive")
    if not isinstance(is_active, bool):
        raise BadRequest("isActive must be a boolean.")

    raw_until = data.get("activeUntil")
    active_until = None
    if raw_until is not None:
        if not isinstance(raw_until, str):
            raise BadRequest("activeUntil must be an ISO 8601 datetime or null.")
        try:
            active_until = parse_iso_datetime(raw_until)
        except ValueError:
            raise BadRequest("activeUntil must be an ISO 8601 datetime or null.")

    user = _get_user_or_404(user_id)
    user.is_active = is_active
    user.active_until = active_until if is_active else None
    log_user_activity(
        user.id, "activation_change", details=f"active={is_active} by {admin.id}"
    )
    db.session.commit()

    return jsonify(
        {
            "message": f"User account is now {'active' if is_active else 'inactive'}",
            "user": {
                "id": user.id,
                "email": user.email,
                "isActive": user.is_active,
                "activeUntil": user.active_until.isoformat() if user.active_until else None,
            },
        }
    )


@admin_bp.route("/settings", methods=["POST"])
@jwt_required()
def update_setting():
    """Acknowledge a settings change. Settings are not persisted yet."""

    _require_admin()
    data = parse_json_request(request)
    setting_name = data.get("settingName")
    value = data.get("value")
    if not isinstance(setting_name, str) or not isinstance(value, bool):
        raise BadRequest("settingName must be a string and value a boolean.")

    template = SETTING_MESSAGES.get(setting_name)
    if template is None:
        raise BadRequest("Unknown setting.")

    return jsonify(
        {"success": True, "message": template.format("enabled" if value else "disabled")}
    )


@admin_bp.route("/maintenance", methods=["POST"])
@jwt_required()
def run_maintenance():
    """Run a maintenance operation.

    ``backupDatabase`` and ``cleanSessions`` only report what they would do;
    sessions are stateless tokens and backups are left to the database host.
    """

    admin = _require_admin()
    data = parse_json_request(request)
    operation = data.get("operation")
    if operation not in MAINTENANCE_OPERATIONS:
        raise BadRequest(
            "operation must be one of: {}.".format(", ".join(MAINTENANCE_OPERATIONS))
        )

    now = utcnow()
    if operation == "backupDatabase":
        result = {
            "message": "Database backup completed successfully",
            "details": {
                "backupLocation": f"/backups/db-backup-{now.date().isoformat()}.sql",
                "recordsCaptured": User.query.count(),
            },
        }
    elif operation == "cleanSessions":
        result = {
            "message": "Expired sessions cleaned successfully",
            "details": {
                "cleanedCount": 0,
                "dateThreshold": (now - timedelta(days=7)).isoformat(),
            },
        }
    else:
        removed = purge_expired_codes()
        result = {
            "message": "Expired verification codes removed",
            "details": {"removedCount": removed},
        }

    current_app.logger.info("Admin %s ran maintenance operation %s", admin.id, operation)
    return jsonify({"success": True, "timestamp": now.isoformat(), **result})


@admin_bp.route("/stats", methods=["GET"])
@jwt_required()
def stats():
    _require_admin()
    return jsonify(user_stats())


@admin_bp.route("/activity", methods=["GET"])
@jwt_required()
def recent_activity():
    _require_admin()
    limit = parse_positive_int(request.args.get("limit"), field="limit", default=10, maximum=100)
    return jsonify(
        {"activities": [activity.to_dict() for activity in get_recent_activities(limit)]}
    )
