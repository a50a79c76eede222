"""OAuth provider account linkage."""

from . import db, utcnow


class Account(db.Model):
    """Links a user to an identity at an external OAuth provider."""

    __tablename__ = "accounts"
    __table_args__ = (
        db.UniqueConstraint(
            "provider", "provider_account_id", name="uq_accounts_provider_account"
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider = db.Column(db.String(32), nullable=False)
    provider_account_id = db.Column(db.String(255), nullable=False)
    access_token = db.Column(db.Text, nullable=True)
    refresh_token = db.Column(db.Text, nullable=True)
    id_token = db.Column(db.Text, nullable=True)
    token_type = db.Column(db.String(32), nullable=True)
    scope = db.Column(db.String(512), nullable=True)
    expires_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    user = db.relationship("User", back_populates="accounts")

    def __repr__(self) -> str:
        return f"<Account {self.provider}:{self.provider_account_id} user_id={self.user_id}>"
