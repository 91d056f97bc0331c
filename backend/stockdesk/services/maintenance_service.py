# Overview: Service-layer operations for maintenance; encapsulates business logic and database work.

from __future__ import annotations

from datetime import timedelta

from ..extensions import db
from ..models import SessionToken
from .recycle_bin_service import purge_expired_records
from stockdesk.time_utils import utcnow


def purge_recycle_bin(*, retention_days: int | None = None) -> dict[str, int]:
    """Hard-delete recycle bin rows past the retention window."""
    return purge_expired_records(retention_days=retention_days)


def cleanup_expired_sessions(*, retention_days: int = 30) -> int:
    """
    Delete session rows that are expired or revoked and older than
    retention_days.
    """
    now = utcnow()
    cutoff = now - timedelta(days=retention_days)
    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(True),
        ),
        SessionToken.created_at < cutoff,
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
