"""Page endpoints behind the route guard.

The frontend renders these screens; the server only decides who may open
them and returns the data each one starts from.
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_current_user

from routes.admin import user_stats
from services.activity import get_recent_activities
from services.claims import build_claims

pages_bp = Blueprint("pages", __name__)


def _page(name: str, **extra):
    return jsonify({"page": name, "user": build_claims(get_current_user()), **extra})


@pages_bp.route("/auth/login", methods=["GET"])
def login_page():
    return jsonify({"page": "login"})


@pages_bp.route("/verify", methods=["GET"])
def verify_page():
    return jsonify({"page": "verify", "email": request.args.get("email")})


@pages_bp.route("/dashboard", methods=["GET"])
def dashboard_page():
    return _page("dashboard")


@pages_bp.route("/profile", methods=["GET"])
def profile_page():
    return _page("profile", profile=get_current_user().to_profile_dict())


@pages_bp.route("/settings", methods=["GET"])
def settings_page():
    return _page("settings")


@pages_bp.route("/admin", methods=["GET"])
def admin_home_page():
    return _page("admin", stats=user_stats())


@pages_bp.route("/admin/users", methods=["GET"])
def admin_users_page():
    return _page("admin_users")


@pages_bp.route("/admin/settings", methods=["GET"])
def admin_settings_page():
    return _page("admin_settings")


@pages_bp.route("/admin/analytics", methods=["GET"])
def admin_analytics_page():
    activities = get_recent_activities()
    return _page(
        "admin_analytics",
        stats=user_stats(),
        activities=[activity.to_dict() for activity in activities],
    )
