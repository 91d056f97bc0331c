from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import inspect

from ..extensions import db
from stockdesk.time_utils import utcnow, to_utc_z


def new_id() -> str:
    """Opaque record identifier."""
    return str(uuid.uuid4())


def percent_to_float(value) -> float:
    if value is None:
        return 0.0
    return float(Decimal(str(value)))


class TimestampMixin:
    """
    created_at / updated_at are stamped on flush (UTC-naive) so the values are
    present on the instance without a reload.
    """
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def timestamps_dict(self) -> dict:
        return {
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SoftDeleteMixin:
    """
    Rows are never removed by a normal delete: deleted_at is stamped instead and
    standard list queries exclude them. Hard deletion happens only from the
    recycle bin.
    """
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    # Column shown as the record's name in the recycle bin
    __recycle_name__ = "name"

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def live(cls):
        return db.session.query(cls).filter(cls.deleted_at.is_(None))

    @classmethod
    def deleted(cls):
        return db.session.query(cls).filter(cls.deleted_at.isnot(None))

    def recycle_name(self) -> str:
        return getattr(self, self.__recycle_name__, None) or self.id

    def recycle_info(self) -> dict:
        return {}


def row_snapshot(obj) -> dict:
    """
    Column values already loaded on the instance, without triggering lazy
    loads. Used by the change feed from inside flush events.
    """
    state = inspect(obj)
    snapshot = {}
    for attr in state.mapper.column_attrs:
        value = state.dict.get(attr.key)
        if hasattr(value, "isoformat"):
            value = value.isoformat()
        elif isinstance(value, Decimal):
            value = float(value)
        snapshot[attr.key] = value
    return snapshot
