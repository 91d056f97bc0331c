from __future__ import annotations

from ..extensions import db
from .base import new_id, TimestampMixin, SoftDeleteMixin
from stockdesk.time_utils import to_utc_z


class Product(TimestampMixin, SoftDeleteMixin, db.Model):
    """
    Product master data.

    current_stock is maintained by stock entries, stock exits and order
    conversion through stock_service; it is never taken from an edit. The
    value is clamped at 0 and must never be persisted negative.

    category holds the category *name*, not a foreign key: renaming or
    deleting a category leaves existing products untouched.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_products_code"),
        db.CheckConstraint("current_stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_name", "name"),
        db.Index("ix_products_category", "category"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)

    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(128), nullable=True)
    image = db.Column(db.String(512), nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    purchase_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sale_price_cents = db.Column(db.Integer, nullable=False, default=0)

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="active")

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.code!r} name={self.name!r} stock={self.current_stock}>"

    @property
    def is_low_stock(self) -> bool:
        return (self.current_stock or 0) < (self.min_stock or 0)

    def recycle_info(self) -> dict:
        return {"code": self.code, "category": self.category}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "image": self.image,
            "purchase_price_cents": self.purchase_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "current_stock": self.current_stock,
            "min_stock": self.min_stock,
            "status": self.status,
            "deleted_at": to_utc_z(self.deleted_at),
            **self.timestamps_dict(),
        }


class Category(TimestampMixin, SoftDeleteMixin, db.Model):
    __tablename__ = "categories"
    __table_args__ = (
        db.Index("ix_categories_name", "name"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active")

    # Denormalized: live products whose category equals this name
    product_count = db.Column(db.Integer, nullable=False, default=0)

    def recycle_info(self) -> dict:
        return {"description": self.description}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "product_count": self.product_count or 0,
            "deleted_at": to_utc_z(self.deleted_at),
            **self.timestamps_dict(),
        }
