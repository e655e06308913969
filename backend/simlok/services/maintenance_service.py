# Overview: Service-layer housekeeping; retention cleanup for audit data.

from datetime import timedelta

from ..extensions import db
from ..models import SecurityEvent
from simlok.time_utils import utcnow


def cleanup_security_events(*, retention_days: int = 90) -> int:
    """
    Delete security events older than retention_days.

    Submissions and QR scans are never touched here.
    """
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SecurityEvent).filter(
        SecurityEvent.occurred_at < cutoff
    ).delete()
    db.session.commit()
    return deleted
