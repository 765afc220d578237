# Overview: Service-layer operations for maintenance; encapsulates business logic and database work.

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent
from . import session_service
from ..time_utils import utcnow


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """Delete security events older than retention_days."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted


def cleanup_sessions(*, older_than_days: int = 30) -> int:
    """Delete expired or revoked session tokens created before the cutoff."""
    return session_service.cleanup_expired_sessions(older_than_days=older_than_days)
