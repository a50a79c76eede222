"""User model definition."""

from datetime import datetime
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from . import db, utcnow


ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"
ROLES = (ROLE_USER, ROLE_ADMIN)


class User(db.Model):
    """Represents a registered account."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=True)
    profile_image = db.Column(db.String(512), nullable=True)
    # Empty for accounts created through an OAuth provider.
    password_hash = db.Column(db.String(255), nullable=True)
    is_verified = db.Column(
        db.Boolean,
        nullable=False,
        default=False,
        server_default=db.false(),
    )
    role = db.Column(
        db.Enum(*ROLES, name="user_role"),
        nullable=False,
        default=ROLE_USER,
        server_default=db.text(f"'{ROLE_USER}'"),
    )
    is_active = db.Column(
        db.Boolean,
        nullable=False,
        default=True,
        server_default=db.true(),
    )
    active_until = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    verification_codes = db.relationship(
        "VerificationCode",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )
    accounts = db.relationship(
        "Account",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    def set_password(self, password: str) -> None:
        """Hash and store the password."""

        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""

        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def mark_verified(self) -> None:
        self.is_verified = True

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def display_name(self) -> str:
        return self.name or self.username

    def is_currently_active(self, now: Optional[datetime] = None) -> bool:
        """Return True if the account is enabled and its activation window is open."""

        if not self.is_active:
            return False
        if self.active_until is None:
            return True
        now = now or utcnow()
        return self.active_until > now

    def to_profile_dict(self) -> dict:
        """Serialize the fields a user may see about themselves."""

        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "name": self.name,
            "profileImage": self.profile_image,
            "isVerified": self.is_verified,
        }

    def to_admin_dict(self) -> dict:
        """Serialize the user for the admin listing. Never includes the password hash."""

        payload = self.to_profile_dict()
        payload.update(
            {
                "role": self.role,
                "isActive": self.is_active,
                "activeUntil": self.active_until.isoformat() if self.active_until else None,
                "createdAt": self.created_at.isoformat() if self.created_at else None,
                "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            }
        )
        return payload

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
