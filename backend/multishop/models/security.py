from __future__ import annotations

from ..extensions import db


class SecurityEvent(db.Model):
    """
    Authentication and authorization audit log.

    Principals live in two tables, so the actor is recorded as
    (principal_kind, principal_id) rather than a foreign key.

    IMMUTABLE: Never update. Rows are only removed by the retention cleanup.
    """
    __tablename__ = "security_events"
    __table_args__ = (
        db.Index("ix_security_events_principal_type", "principal_kind", "principal_id", "event_type"),
        db.Index("ix_security_events_occurred", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    principal_kind = db.Column(db.String(16), nullable=True)  # Nullable for anonymous
    principal_id = db.Column(db.Integer, nullable=True)
    username = db.Column(db.String(64), nullable=True)

    # Event classification
    event_type = db.Column(db.String(64), nullable=False, index=True)  # LOGIN_FAILED, ROLE_DENIED, ...
    resource = db.Column(db.String(128), nullable=True)  # e.g., "/api/customers/12"
    action = db.Column(db.String(64), nullable=True)     # e.g., "GET"

    success = db.Column(db.Boolean, nullable=False, index=True)
    reason = db.Column(db.Text, nullable=True)

    # Branch involved in the decision (requested branch for denials)
    branch_id = db.Column(db.Integer, nullable=True)

    # Client context
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(512), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
