from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class ApiKey(db.Model):
    """
    Long-lived bearer credential owned by a management user.

    Only the SHA-256 hash of the key is stored, plus a short display prefix.
    Revocation flips is_active; rows are never deleted.
    """
    __tablename__ = "api_keys"
    __table_args__ = (
        db.Index("ix_api_keys_user_id", "user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    name = db.Column(db.String(120), nullable=False)
    key_prefix = db.Column(db.String(16), nullable=False)
    key_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)
    scopes = db.Column(db.JSON, nullable=False, default=list)

    expires_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    user = db.relationship("User", backref=db.backref("api_keys", lazy=True))

    def __repr__(self) -> str:
        return f"<ApiKey id={self.id} prefix={self.key_prefix!r} active={self.is_active}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "key_prefix": self.key_prefix,
            "scopes": list(self.scopes or []),
            "expires_at": to_utc_z(self.expires_at),
            "is_active": self.is_active,
            "last_used_at": to_utc_z(self.last_used_at),
            "created_at": to_utc_z(self.created_at),
            "revoked_at": to_utc_z(self.revoked_at),
        }
