from __future__ import annotations

from ..extensions import db
from .base import new_id, TimestampMixin
from stockdesk.time_utils import to_utc_z


class Notification(TimestampMixin, db.Model):
    """
    Automated alert (low stock, overdue order).

    related_id points at the product or order the alert is about and is used
    to avoid creating a second active notification for the same record.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_type_archived", "type", "archived"),
        db.Index("ix_notifications_related", "related_id"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(16), nullable=False)
    priority = db.Column(db.String(16), nullable=False, default="medium")
    link = db.Column(db.String(255), nullable=True)
    related_id = db.Column(db.String(36), nullable=True)

    read = db.Column(db.Boolean, nullable=False, default=False)
    archived = db.Column(db.Boolean, nullable=False, default=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "priority": self.priority,
            "link": self.link,
            "related_id": self.related_id,
            "read": self.read,
            "archived": self.archived,
            "expires_at": to_utc_z(self.expires_at),
            **self.timestamps_dict(),
        }
