"""VerificationCode model definition."""

from . import db, utcnow


PURPOSE_VERIFY_EMAIL = "verify_email"
PURPOSE_RESET_PASSWORD = "reset_password"
CODE_PURPOSES = (PURPOSE_VERIFY_EMAIL, PURPOSE_RESET_PASSWORD)


class VerificationCode(db.Model):
    """A one-time numeric code proving email ownership or reset intent."""

    __tablename__ = "verification_codes"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code = db.Column(db.String(16), nullable=False)
    purpose = db.Column(
        db.Enum(*CODE_PURPOSES, name="verification_code_purpose"),
        nullable=False,
        default=PURPOSE_VERIFY_EMAIL,
    )
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship("User", back_populates="verification_codes")

    def __repr__(self) -> str:
        return (
            f"<VerificationCode id={self.id} user_id={self.user_id} purpose={self.purpose}>"
        )
