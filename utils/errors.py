"""Domain-specific HTTP errors.

Each error keeps the status code of its werkzeug base class but carries its
own ``name``, which the JSON error handler reports in the ``error`` field so
clients can tell, for example, an unverified account apart from bad
credentials.
"""

from __future__ import annotations

import uuid

from flask import g, jsonify
from werkzeug.exceptions import (
    BadRequest,
    Forbidden,
    InternalServerError,
    TooManyRequests,
)


class InvalidOrExpiredCode(BadRequest):
    name = "InvalidOrExpiredCode"
    description = "Invalid or expired code."


class UnverifiedUser(Forbidden):
    name = "UnverifiedUser"
    description = "Email address has not been verified."


class ResendTooSoon(TooManyRequests):
    name = "ResendTooSoon"

    def __init__(self, retry_after: int):
        super().__init__(
            f"A code was sent recently. Try again in {retry_after} seconds.",
            retry_after=retry_after,
        )
        self.retry_after_seconds = retry_after


class MailDeliveryError(InternalServerError):
    name = "MailDeliveryError"
    description = "Failed to send email."


class OAuthError(BadRequest):
    name = "OAuthError"
    description = "OAuth sign-in failed."


def json_error(status: int, error: str, detail: str | None, headers=None):
    """Build the JSON error response used for every failed request."""

    request_id = g.get("request_id") or str(uuid.uuid4())
    response = jsonify({"error": error, "detail": detail, "request_id": request_id})
    response.status_code = status
    for key, value in headers or ():
        if key.lower() != "content-type":
            response.headers[key] = value
    response.headers.setdefault("X-Request-ID", request_id)
    return response
