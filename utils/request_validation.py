"""Utilities for validating incoming Flask requests."""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Iterable

from flask import Request
from werkzeug.exceptions import BadRequest

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 8


def parse_json_request(
    req: Request,
    *,
    required_keys: Iterable[str] | None = None,
    allow_empty: bool = False,
) -> dict:
    """Return the parsed JSON body or raise a 400 error."""

    if not req.is_json:
        raise BadRequest("Request content type must be application/json.")

    data = req.get_json(silent=True)
    if data is None:
        raise BadRequest("Request JSON body is required.")

    if not isinstance(data, dict):
        raise BadRequest("Request JSON payload must be an object.")

    if not data and not allow_empty:
        raise BadRequest("Request JSON body must not be empty.")

    if required_keys:
        missing = [key for key in required_keys if not data.get(key)]
        if missing:
            raise BadRequest(
                "Missing required fields: {}.".format(
                    ", ".join(sorted(missing))
                )
            )

    return data


def normalize_email(raw_email: object) -> str:
    """Normalize an email string by stripping whitespace and lowering case."""

    if not isinstance(raw_email, str):
        return ""
    return raw_email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(email) and len(email) <= 255 and bool(EMAIL_PATTERN.match(email))


def validate_username(username: object) -> list[str]:
    """Return the list of problems with a username, empty when it is acceptable."""

    if not isinstance(username, str):
        return ["username must be a string"]
    errors = []
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        errors.append(
            f"username must be between {USERNAME_MIN_LENGTH} and "
            f"{USERNAME_MAX_LENGTH} characters"
        )
    if username and not USERNAME_PATTERN.match(username):
        errors.append("username may only contain letters, digits, '_', '.' and '-'")
    return errors


def validate_password(password: object) -> list[str]:
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        return [f"password must be at least {PASSWORD_MIN_LENGTH} characters"]
    return []


def parse_bool(value: object) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "y"}:
        return True
    if text in {"0", "false", "no", "n"}:
        return False
    return None


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO 8601 timestamp into a naive UTC datetime.

    Raises ``ValueError`` if the value cannot be parsed.
    """

    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def parse_positive_int(
    raw: str | None, *, field: str, default: int, maximum: int | None = None
) -> int:
    """Parse a query-string integer, raising 400 when it is not a positive number."""

    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise BadRequest(f"{field} must be an integer.")
    if value < 1:
        raise BadRequest(f"{field} must be greater than zero.")
    if maximum is not None and value > maximum:
        raise BadRequest(f"{field} must not exceed {maximum}.")
    return value
