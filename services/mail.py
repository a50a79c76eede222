"""Transactional email delivery through the Resend HTTP API."""

from __future__ import annotations

import logging
from datetime import datetime

import httpx
from flask import Flask, current_app, render_template

from models import utcnow
from utils.errors import MailDeliveryError

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
DEV_MODE_MESSAGE_ID = "dev-mode-no-email-sent"
SUPPRESSED_MESSAGE_ID = "suppressed"


def init_mail(app: Flask) -> None:
    """Attach the in-memory outbox used when sending is suppressed."""

    app.extensions["mail_outbox"] = []
    if not app.config.get("RESEND_API_KEY") and not app.config.get("MAIL_SUPPRESS_SEND"):
        app.logger.warning("Missing RESEND_API_KEY; outgoing email will be skipped.")


def get_outbox() -> list[dict]:
    return current_app.extensions.setdefault("mail_outbox", [])


def _sender() -> str:
    config = current_app.config
    return f"{config.get('FROM_NAME', 'Your App')} <{config.get('FROM_EMAIL')}>"


def send_email(to: str, subject: str, html: str) -> str:
    """Send one email and return the provider message id.

    Raises ``MailDeliveryError`` if the provider rejects the message or
    cannot be reached.
    """

    message = {"from": _sender(), "to": [to], "subject": subject, "html": html}

    if current_app.config.get("MAIL_SUPPRESS_SEND"):
        get_outbox().append(message)
        return SUPPRESSED_MESSAGE_ID

    api_key = current_app.config.get("RESEND_API_KEY")
    if not api_key:
        logger.warning("Skipping email send to %s: no RESEND_API_KEY", to)
        return DEV_MODE_MESSAGE_ID

    timeout = float(current_app.config.get("MAIL_TIMEOUT_SECONDS", 10))
    try:
        response = httpx.post(
            RESEND_API_URL,
            json=message,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        logger.error(
            "Mail provider rejected %r to %s: %s",
            subject,
            to,
            exc.response.text,
        )
        raise MailDeliveryError() from exc
    except httpx.HTTPError as exc:
        logger.error("Mail provider unreachable sending %r to %s: %s", subject, to, exc)
        raise MailDeliveryError() from exc

    return response.json().get("id", "")


def send_verification_email(to: str, user_name: str | None, code: str) -> str:
    html = render_template(
        "emails/verification.html",
        user_name=user_name,
        code=code,
        ttl_minutes=current_app.config.get("VERIFICATION_CODE_TTL_MINUTES", 30),
    )
    return send_email(to, "Verify your email address", html)


def send_forgot_password_email(to: str, user_name: str | None, code: str) -> str:
    html = render_template(
        "emails/password_reset.html",
        user_name=user_name,
        code=code,
        ttl_minutes=current_app.config.get("VERIFICATION_CODE_TTL_MINUTES", 30),
    )
    return send_email(to, "Reset your password", html)


def send_password_changed_email(
    to: str, user_name: str | None, changed_at: datetime | None = None
) -> str:
    changed_at = changed_at or utcnow()
    html = render_template(
        "emails/password_changed.html",
        user_name=user_name,
        change_time=changed_at.strftime("%A, %B %d, %Y %H:%M UTC"),
    )
    return send_email(to, "Your password has been changed", html)


def send_welcome_email(to: str, user_name: str | None) -> str:
    html = render_template(
        "emails/welcome.html",
        user_name=user_name,
        dashboard_url=current_app.config.get("APP_BASE_URL", "").rstrip("/") + "/dashboard",
    )
    return send_email(to, "Welcome aboard", html)


def send_quietly(send, *args, **kwargs) -> bool:
    """Send a notification whose failure must not undo the completed action."""

    try:
        send(*args, **kwargs)
    except MailDeliveryError:
        logger.warning("Notification email %s could not be delivered", send.__name__)
        return False
    return True
