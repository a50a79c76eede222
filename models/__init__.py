"""Database initialization and model exports."""

from datetime import UTC, datetime

from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime, as stored in the database."""

    return datetime.now(UTC).replace(tzinfo=None)


# Import models to register them with SQLAlchemy metadata.
from .user import User  # noqa: E402,F401
from .verification_code import VerificationCode  # noqa: E402,F401
from .account import Account  # noqa: E402,F401
from .activity import Activity  # noqa: E402,F401

__all__ = [
    "db",
    "utcnow",
    "User",
    "VerificationCode",
    "Account",
    "Activity",
]
