"""OAuth sign-in blueprint."""

from __future__ import annotations

import secrets

from flask import Blueprint, current_app, redirect, request, session
from flask_jwt_extended import create_access_token, set_access_cookies

from models import db
from services.activity import log_user_activity
from services.guard import ADMIN_HOME_PATH, USER_HOME_PATH
from services.oauth import build_google_authorize_url, fetch_google_profile, sign_in_with_oauth
from utils.errors import OAuthError

oauth_bp = Blueprint("oauth", __name__)

STATE_SESSION_KEY = "oauth_state"


@oauth_bp.route("/google", methods=["GET"])
def google_login():
    """Redirect the browser to Google's consent screen."""

    state = secrets.token_urlsafe(32)
    url = build_google_authorize_url(state)
    session[STATE_SESSION_KEY] = state
    return redirect(url)


@oauth_bp.route("/google/callback", methods=["GET"])
def google_callback():
    """Finish Google sign-in and start a session for the local user."""

    expected_state = session.pop(STATE_SESSION_KEY, None)
    state = request.args.get("state")
    if not expected_state or not state or not secrets.compare_digest(state, expected_state):
        raise OAuthError("OAuth state mismatch.")

    if request.args.get("error"):
        raise OAuthError(f"Google sign-in was cancelled: {request.args['error']}.")

    code = request.args.get("code")
    if not code:
        raise OAuthError("Missing authorization code.")

    profile = fetch_google_profile(code)
    user = sign_in_with_oauth(profile)
    log_user_activity(user.id, "login", details=f"oauth:{profile.provider}")
    db.session.commit()
    current_app.logger.info("User %s signed in with %s", user.id, profile.provider)

    response = redirect(ADMIN_HOME_PATH if user.is_admin else USER_HOME_PATH)
    set_access_cookies(response, create_access_token(identity=user))
    return response
