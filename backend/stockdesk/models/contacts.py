from __future__ import annotations

from ..extensions import db
from .base import new_id, TimestampMixin, SoftDeleteMixin
from stockdesk.time_utils import to_utc_z


class ContactMixin:
    """Fields shared by clients and suppliers."""
    id = db.Column(db.String(36), primary_key=True, default=new_id)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)
    tax_id = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active")

    def recycle_info(self) -> dict:
        return {"email": self.email, "tax_id": self.tax_id}

    def _contact_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "tax_id": self.tax_id,
            "notes": self.notes,
            "status": self.status,
            "deleted_at": to_utc_z(self.deleted_at),
            **self.timestamps_dict(),
        }


class Client(ContactMixin, TimestampMixin, SoftDeleteMixin, db.Model):
    __tablename__ = "clients"
    __table_args__ = (
        db.Index("ix_clients_name", "name"),
    )

    def to_dict(self) -> dict:
        return self._contact_dict()


class Supplier(ContactMixin, TimestampMixin, SoftDeleteMixin, db.Model):
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_name", "name"),
    )

    payment_terms = db.Column(db.String(255), nullable=True)

    def to_dict(self) -> dict:
        data = self._contact_dict()
        data["payment_terms"] = self.payment_terms
        return data
