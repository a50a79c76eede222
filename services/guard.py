"""Per-request access control for the protected page paths."""

from __future__ import annotations

from urllib.parse import quote

from flask import Flask, redirect, request
from flask_jwt_extended import get_current_user, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from models.user import ROLE_ADMIN
from services.claims import build_claims

LOGIN_PATH = "/auth/login"
USER_HOME_PATH = "/dashboard"
ADMIN_HOME_PATH = "/admin"
VERIFY_PATH = "/verify"
PROTECTED_PATHS = ("/dashboard", "/profile", "/settings", "/admin")


def _matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


def is_protected(path: str) -> bool:
    return any(_matches(path, prefix) for prefix in PROTECTED_PATHS)


def decide(path: str, claims: dict | None) -> str | None:
    """Return the redirect target for ``path``, or ``None`` to allow the request.

    ``claims`` is ``None`` when the request carries no usable session.
    """

    if claims is None:
        return LOGIN_PATH

    is_admin = claims.get("role") == ROLE_ADMIN
    admin_path = _matches(path, ADMIN_HOME_PATH)

    if admin_path and not is_admin:
        return USER_HOME_PATH
    if _matches(path, USER_HOME_PATH) and is_admin:
        return ADMIN_HOME_PATH
    if not admin_path and claims.get("isVerified") is False:
        email = claims.get("email") or ""
        return f"{VERIFY_PATH}?email={quote(email, safe='')}"
    return None


def _current_claims() -> dict | None:
    try:
        verify_jwt_in_request(optional=True)
    except (JWTExtendedException, PyJWTError):
        return None
    user = get_current_user()
    if user is None:
        return None
    return build_claims(user)


def register_route_guard(app: Flask) -> None:
    """Install the guard as a ``before_request`` hook on ``app``."""

    @app.before_request
    def _guard_protected_paths():
        if request.method == "OPTIONS" or not is_protected(request.path):
            return None
        target = decide(request.path, _current_claims())
        if target is None:
            return None
        app.logger.debug("Route guard redirecting %s to %s", request.path, target)
        return redirect(target)
