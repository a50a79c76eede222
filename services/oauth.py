"""Google OAuth sign-in."""

from __future__ import annotations

import logging
import re
import secrets
from dataclasses import dataclass, field
from datetime import timedelta
from urllib.parse import urlencode

import httpx
from flask import current_app
from sqlalchemy import func
from werkzeug.exceptions import ServiceUnavailable

from models import db, utcnow
from models.account import Account
from models.user import ROLE_USER, User
from utils.errors import OAuthError
from utils.request_validation import USERNAME_MAX_LENGTH, USERNAME_MIN_LENGTH

logger = logging.getLogger(__name__)

GOOGLE_PROVIDER = "google"
GOOGLE_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_SCOPE = "openid email profile"


@dataclass
class OAuthProfile:
    """Identity returned by a provider after a successful code exchange."""

    provider: str
    provider_account_id: str
    email: str
    name: str | None = None
    image: str | None = None
    email_verified: bool = False
    tokens: dict = field(default_factory=dict)


def _google_settings() -> tuple[str, str, str]:
    config = current_app.config
    client_id = config.get("GOOGLE_CLIENT_ID")
    client_secret = config.get("GOOGLE_CLIENT_SECRET")
    redirect_uri = config.get("GOOGLE_REDIRECT_URI")
    if not client_id or not client_secret or not redirect_uri:
        raise ServiceUnavailable("Google sign-in is not configured.")
    return client_id, client_secret, redirect_uri


def build_google_authorize_url(state: str) -> str:
    client_id, _, redirect_uri = _google_settings()
    query = urlencode(
        {
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": GOOGLE_SCOPE,
            "state": state,
            "access_type": "offline",
            "prompt": "select_account",
        }
    )
    return f"{GOOGLE_AUTHORIZE_URL}?{query}"


def fetch_google_profile(code: str) -> OAuthProfile:
    """Exchange an authorization code for tokens and the Google user profile."""

    client_id, client_secret, redirect_uri = _google_settings()
    timeout = httpx.Timeout(10.0, connect=5.0)

    with httpx.Client(timeout=timeout) as client:
        try:
            token_response = client.post(
                GOOGLE_TOKEN_URL,
                data={
                    "code": code,
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "redirect_uri": redirect_uri,
                    "grant_type": "authorization_code",
                },
            )
        except httpx.HTTPError as exc:
            logger.error("Google token exchange failed: %s", exc)
            raise OAuthError("Failed to reach Google.") from exc

        if token_response.status_code != 200:
            logger.error("Google token exchange failed: %s", token_response.text)
            raise OAuthError("Failed to exchange Google code for token.")

        tokens = token_response.json()
        access_token = tokens.get("access_token")
        if not access_token:
            logger.error("Google token response had no access_token")
            raise OAuthError("Failed to exchange Google code for token.")
        try:
            user_response = client.get(
                GOOGLE_USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as exc:
            logger.error("Google user info request failed: %s", exc)
            raise OAuthError("Failed to reach Google.") from exc

    if user_response.status_code != 200:
        logger.error("Google user info failed: %s", user_response.text)
        raise OAuthError("Failed to get Google user info.")

    data = user_response.json()
    if not data.get("email"):
        raise OAuthError("Google account has no email address.")
    if not data.get("id"):
        raise OAuthError("Google account has no id.")

    return OAuthProfile(
        provider=GOOGLE_PROVIDER,
        provider_account_id=str(data["id"]),
        email=data["email"].strip().lower(),
        name=data.get("name"),
        image=data.get("picture"),
        email_verified=data.get("verified_email") is True,
        tokens=tokens,
    )


def _unique_username(email: str) -> str:
    base = re.sub(r"[^A-Za-z0-9_.-]", "", email.split("@", 1)[0])[:20]
    if len(base) < USERNAME_MIN_LENGTH:
        base = "user"
    candidate = base
    while User.query.filter(func.lower(User.username) == candidate.lower()).first():
        candidate = f"{base}{secrets.randbelow(10**6):06d}"[:USERNAME_MAX_LENGTH]
    return candidate


def _store_tokens(account: Account, tokens: dict) -> None:
    account.access_token = tokens.get("access_token")
    account.refresh_token = tokens.get("refresh_token") or account.refresh_token
    account.id_token = tokens.get("id_token")
    account.token_type = tokens.get("token_type")
    account.scope = tokens.get("scope")
    expires_in = tokens.get("expires_in")
    account.expires_at = (
        utcnow() + timedelta(seconds=int(expires_in)) if expires_in else None
    )


def sign_in_with_oauth(profile: OAuthProfile) -> User:
    """Return the local user for a provider identity, creating or linking it.

    New users are created verified with role USER and no password. Existing
    users without a profile image get the provider's picture. A provider
    identity seen for the first time must carry a verified email.
    """

    account = Account.query.filter_by(
        provider=profile.provider, provider_account_id=profile.provider_account_id
    ).first()

    if account is not None:
        user = account.user
    elif not profile.email_verified:
        logger.warning(
            "Refusing %s sign-in for unverified email on account %s",
            profile.provider,
            profile.provider_account_id,
        )
        raise OAuthError("Provider email address is not verified.")
    else:
        user = User.query.filter(func.lower(User.email) == profile.email).first()
        if user is None:
            user = User(
                email=profile.email,
                username=_unique_username(profile.email),
                name=profile.name,
                profile_image=profile.image,
                is_verified=True,
                role=ROLE_USER,
            )
            db.session.add(user)
            db.session.flush()
            logger.info("Created user %s from %s sign-in", user.id, profile.provider)
        account = Account(
            user_id=user.id,
            provider=profile.provider,
            provider_account_id=profile.provider_account_id,
        )
        db.session.add(account)

    if not user.profile_image and profile.image:
        user.profile_image = profile.image

    _store_tokens(account, profile.tokens)
    db.session.commit()
    return user
