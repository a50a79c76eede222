"""Per-user activity log."""

from __future__ import annotations

import logging

from flask import has_request_context, request

from models import db
from models.activity import Activity

logger = logging.getLogger(__name__)

DEFAULT_ACTIVITY_LIMIT = 10


def log_user_activity(user_id: int, action: str, details: str | None = None) -> Activity:
    """Stage an activity entry for ``user_id``; the caller's commit persists it."""

    ip_address = user_agent = None
    if has_request_context():
        ip_address = request.remote_addr
        user_agent = (request.headers.get("User-Agent") or "")[:512] or None

    activity = Activity(
        user_id=user_id,
        action=action,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.session.add(activity)
    logger.debug("Activity %s for user %s", action, user_id)
    return activity


def get_recent_activities(
    limit: int = DEFAULT_ACTIVITY_LIMIT, user_id: int | None = None
) -> list[Activity]:
    """Return the newest activities, optionally restricted to one user."""

    query = Activity.query
    if user_id is not None:
        query = query.filter_by(user_id=user_id)
    return (
        query.order_by(Activity.created_at.desc(), Activity.id.desc())
        .limit(limit)
        .all()
    )
