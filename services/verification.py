"""One-time verification codes for email confirmation and password resets.

A user holds at most one live code per purpose. Issuing a new code removes
the previous one of the same purpose in the same transaction, and a code is
consumed on first successful use by deleting every code the user holds.
"""

from __future__ import annotations

import logging
import math
import secrets
from datetime import timedelta

from flask import current_app

from models import db, utcnow
from models.user import User
from models.verification_code import CODE_PURPOSES, VerificationCode
from utils.errors import InvalidOrExpiredCode, ResendTooSoon

logger = logging.getLogger(__name__)

DEFAULT_CODE_LENGTH = 6
DEFAULT_CODE_TTL_MINUTES = 30


def generate_verification_code(length: int = DEFAULT_CODE_LENGTH) -> str:
    """Return a zero-padded random decimal code of ``length`` digits."""

    if length <= 0:
        raise ValueError("Code length must be positive.")
    return str(secrets.randbelow(10**length)).zfill(length)


def _check_purpose(purpose: str) -> None:
    if purpose not in CODE_PURPOSES:
        raise ValueError(f"Unknown verification code purpose: {purpose!r}")


def _enforce_cooldown(user: User, purpose: str) -> None:
    cooldown = int(current_app.config.get("RESEND_COOLDOWN_SECONDS", 0) or 0)
    if cooldown <= 0:
        return

    latest = (
        VerificationCode.query.filter_by(user_id=user.id, purpose=purpose)
        .order_by(VerificationCode.created_at.desc())
        .first()
    )
    if latest is None:
        return

    elapsed = (utcnow() - latest.created_at).total_seconds()
    if elapsed < cooldown:
        retry_after = max(1, math.ceil(cooldown - elapsed))
        logger.info(
            "Refusing %s code for user %s: cooldown has %ss left",
            purpose,
            user.id,
            retry_after,
        )
        raise ResendTooSoon(retry_after)


def issue_code(user: User, purpose: str) -> str:
    """Replace the user's code for ``purpose`` with a fresh one and return it.

    Raises ``ResendTooSoon`` when the previous code of the same purpose is
    younger than ``RESEND_COOLDOWN_SECONDS``.
    """

    _check_purpose(purpose)
    _enforce_cooldown(user, purpose)

    length = int(current_app.config.get("VERIFICATION_CODE_LENGTH", DEFAULT_CODE_LENGTH))
    ttl_minutes = int(
        current_app.config.get("VERIFICATION_CODE_TTL_MINUTES", DEFAULT_CODE_TTL_MINUTES)
    )
    code = generate_verification_code(length)
    now = utcnow()

    VerificationCode.query.filter_by(user_id=user.id, purpose=purpose).delete(
        synchronize_session=False
    )
    db.session.add(
        VerificationCode(
            user_id=user.id,
            code=code,
            purpose=purpose,
            created_at=now,
            expires_at=now + timedelta(minutes=ttl_minutes),
        )
    )
    db.session.commit()

    logger.info("Issued %s code for user %s", purpose, user.id)
    return code


def consume_code(user: User, purpose: str, code: str) -> None:
    """Validate ``code`` for ``user`` and delete every code the user holds.

    The caller applies the guarded action and commits. Raises
    ``InvalidOrExpiredCode`` when no live code matches.
    """

    _check_purpose(purpose)
    match = VerificationCode.query.filter(
        VerificationCode.user_id == user.id,
        VerificationCode.purpose == purpose,
        VerificationCode.code == str(code).strip(),
        VerificationCode.expires_at > utcnow(),
    ).first()
    if match is None:
        logger.info("Rejected %s code for user %s", purpose, user.id)
        raise InvalidOrExpiredCode()

    clear_codes(user)


def clear_codes(user: User) -> None:
    VerificationCode.query.filter_by(user_id=user.id).delete(synchronize_session=False)


def purge_expired_codes() -> int:
    """Delete all expired codes and return how many were removed."""

    removed = VerificationCode.query.filter(
        VerificationCode.expires_at <= utcnow()
    ).delete(synchronize_session=False)
    db.session.commit()
    return removed
