"""Activity model definition."""

from . import db, utcnow


class Activity(db.Model):
    """An audit entry for something a user did or had done to their account."""

    __tablename__ = "activities"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action = db.Column(db.String(64), nullable=False)
    details = db.Column(db.Text, nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)
    created_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utcnow,
        server_default=db.func.now(),
        index=True,
    )

    user = db.relationship(
        "User",
        backref=db.backref("activities", lazy="dynamic", cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        """Serialize the activity together with a few user fields."""

        return {
            "id": self.id,
            "userId": self.user_id,
            "action": self.action,
            "details": self.details,
            "ipAddress": self.ip_address,
            "userAgent": self.user_agent,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "email": self.user.email if self.user else None,
            "name": self.user.display_name if self.user else None,
            "profileImage": self.user.profile_image if self.user else None,
        }
