# Overview: Service-layer operations for maintenance; retention cleanup of audit rows.

from __future__ import annotations

from datetime import timedelta

from ..errors import ValidationError
from ..extensions import db
from ..models import SecurityEvent
from ..time_utils import utcnow


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """
    Delete security events older than retention_days.

    API keys are never removed here; revoked keys stay for audit.
    """
    if retention_days < 1:
        raise ValidationError("retention_days must be >= 1")
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
