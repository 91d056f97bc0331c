from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy.orm import declared_attr

from ..extensions import db
from .base import new_id, percent_to_float, TimestampMixin, SoftDeleteMixin
from stockdesk.time_utils import to_utc_z, to_iso_date
from stockdesk.validation import line_total_cents


class DocumentCounter(db.Model):
    """
    Atomic per-year document counters.

    Human-readable numbers (ENC-2025/003) are scoped per document type and
    year. current_count holds the last number handed out.
    """
    __tablename__ = "document_counters"
    __table_args__ = (
        db.UniqueConstraint("counter_type", "year", name="uq_document_counters_type_year"),
    )

    id = db.Column(db.Integer, primary_key=True)
    counter_type = db.Column(db.String(32), nullable=False, index=True)
    year = db.Column(db.Integer, nullable=False)
    current_count = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "counter_type": self.counter_type,
            "year": self.year,
            "current_count": self.current_count,
        }


class LineItemMixin:
    """
    Line items denormalize product_name at transaction time so history stays
    accurate when the product is later renamed or removed.
    """
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    position = db.Column(db.Integer, nullable=False, default=0)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    # Subclasses name their price column; price_cents reads it uniformly
    __price_column__ = "sale_price_cents"

    @declared_attr
    def product_id(cls):
        return db.Column(db.String(36), db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    @property
    def price_cents(self) -> int:
        return getattr(self, self.__price_column__) or 0

    @property
    def total_cents(self) -> int:
        return line_total_cents(self.quantity, self.price_cents, self.discount_percent)

    def _item_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            self.__price_column__: self.price_cents,
            "discount_percent": percent_to_float(self.discount_percent),
            "total_cents": self.total_cents,
        }


class DocumentMixin:
    """Header fields shared by orders, stock entries, stock exits and expenses."""
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    number = db.Column(db.String(32), nullable=False, unique=True)
    date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    # Header discount (percent) applied on top of line discounts
    discount = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    __recycle_name__ = "number"

    @property
    def subtotal_cents(self) -> int:
        return sum(item.total_cents for item in self.items)

    @property
    def total_cents(self) -> int:
        pct = Decimal(str(self.discount or 0))
        net = Decimal(self.subtotal_cents) * (Decimal(100) - pct) / Decimal(100)
        return int(net.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def _header_dict(self) -> dict:
        return {
            "id": self.id,
            "number": self.number,
            "date": to_iso_date(self.date),
            "notes": self.notes,
            "discount": percent_to_float(self.discount),
            "items": [item.to_dict() for item in self.items],
            "subtotal_cents": self.subtotal_cents,
            "total_cents": self.total_cents,
            "deleted_at": to_utc_z(self.deleted_at),
            **self.timestamps_dict(),
        }


class Order(DocumentMixin, TimestampMixin, SoftDeleteMixin, db.Model):
    """
    Customer order.

    LIFECYCLE: pending -> (cancelled) ; pending -> converted (terminal).
    "Converted" is not a status value: it is the presence of
    converted_to_stock_exit_id, set by the conversion workflow.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_client", "client_id"),
        db.Index("ix_orders_converted", "converted_to_stock_exit_id"),
    )

    client_id = db.Column(db.String(36), db.ForeignKey("clients.id"), nullable=True)
    client_name = db.Column(db.String(255), nullable=False, default="")
    expected_delivery_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="pending")

    converted_to_stock_exit_id = db.Column(db.String(36), nullable=True)
    converted_to_stock_exit_number = db.Column(db.String(32), nullable=True)

    items = db.relationship(
        "OrderItem",
        backref="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
        lazy=True,
    )

    @property
    def is_converted(self) -> bool:
        return self.converted_to_stock_exit_id is not None

    @property
    def is_cancelled(self) -> bool:
        return self.status == "cancelled"

    def recycle_info(self) -> dict:
        return {"client_name": self.client_name, "date": to_iso_date(self.date)}

    def to_dict(self) -> dict:
        data = self._header_dict()
        data.update({
            "client_id": self.client_id,
            "client_name": self.client_name,
            "expected_delivery_date": to_iso_date(self.expected_delivery_date),
            "status": self.status,
            "is_converted": self.is_converted,
            "converted_to_stock_exit_id": self.converted_to_stock_exit_id,
            "converted_to_stock_exit_number": self.converted_to_stock_exit_number,
        })
        return data


class OrderItem(LineItemMixin, TimestampMixin, db.Model):
    __tablename__ = "order_items"

    order_id = db.Column(db.String(36), db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    sale_price_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return self._item_dict()


class StockEntry(DocumentMixin, TimestampMixin, SoftDeleteMixin, db.Model):
    """Purchase from a supplier; creating one increases product stock."""
    __tablename__ = "stock_entries"
    __table_args__ = (
        db.Index("ix_stock_entries_supplier", "supplier_id"),
    )

    supplier_id = db.Column(db.String(36), db.ForeignKey("suppliers.id"), nullable=True)
    supplier_name = db.Column(db.String(255), nullable=False, default="")
    invoice_number = db.Column(db.String(64), nullable=True)

    items = db.relationship(
        "StockEntryItem",
        backref="entry",
        cascade="all, delete-orphan",
        order_by="StockEntryItem.position",
        lazy=True,
    )

    def recycle_info(self) -> dict:
        return {"supplier_name": self.supplier_name, "date": to_iso_date(self.date)}

    def to_dict(self) -> dict:
        data = self._header_dict()
        data.update({
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier_name,
            "invoice_number": self.invoice_number,
        })
        return data


class StockEntryItem(LineItemMixin, TimestampMixin, db.Model):
    __tablename__ = "stock_entry_items"
    __price_column__ = "purchase_price_cents"

    entry_id = db.Column(db.String(36), db.ForeignKey("stock_entries.id", ondelete="CASCADE"), nullable=False, index=True)
    purchase_price_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return self._item_dict()


class StockExit(DocumentMixin, TimestampMixin, SoftDeleteMixin, db.Model):
    """
    Sale to a client; creating one decreases product stock (floored at 0).

    from_order_id / from_order_number are set when the exit was produced by
    converting an order.
    """
    __tablename__ = "stock_exits"
    __table_args__ = (
        db.Index("ix_stock_exits_client", "client_id"),
        db.Index("ix_stock_exits_from_order", "from_order_id"),
    )

    client_id = db.Column(db.String(36), db.ForeignKey("clients.id"), nullable=True)
    client_name = db.Column(db.String(255), nullable=False, default="")
    invoice_number = db.Column(db.String(64), nullable=True)

    from_order_id = db.Column(db.String(36), nullable=True)
    from_order_number = db.Column(db.String(32), nullable=True)

    items = db.relationship(
        "StockExitItem",
        backref="exit",
        cascade="all, delete-orphan",
        order_by="StockExitItem.position",
        lazy=True,
    )

    def recycle_info(self) -> dict:
        return {
            "client_name": self.client_name,
            "date": to_iso_date(self.date),
            "from_order_number": self.from_order_number,
        }

    def to_dict(self) -> dict:
        data = self._header_dict()
        data.update({
            "client_id": self.client_id,
            "client_name": self.client_name,
            "invoice_number": self.invoice_number,
            "from_order_id": self.from_order_id,
            "from_order_number": self.from_order_number,
        })
        return data


class StockExitItem(LineItemMixin, TimestampMixin, db.Model):
    __tablename__ = "stock_exit_items"

    exit_id = db.Column(db.String(36), db.ForeignKey("stock_exits.id", ondelete="CASCADE"), nullable=False, index=True)
    sale_price_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return self._item_dict()


class Expense(DocumentMixin, TimestampMixin, SoftDeleteMixin, db.Model):
    """Supplier expense. Items are free text and have no stock effect."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_supplier", "supplier_id"),
    )

    supplier_id = db.Column(db.String(36), db.ForeignKey("suppliers.id"), nullable=True)
    supplier_name = db.Column(db.String(255), nullable=False, default="")

    items = db.relationship(
        "ExpenseItem",
        backref="expense",
        cascade="all, delete-orphan",
        order_by="ExpenseItem.position",
        lazy=True,
    )

    def recycle_info(self) -> dict:
        return {"supplier_name": self.supplier_name, "date": to_iso_date(self.date)}

    def to_dict(self) -> dict:
        data = self._header_dict()
        data.update({
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier_name,
        })
        return data


class ExpenseItem(TimestampMixin, db.Model):
    __tablename__ = "expense_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    expense_id = db.Column(db.String(36), db.ForeignKey("expenses.id", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    @property
    def total_cents(self) -> int:
        return line_total_cents(self.quantity, self.unit_price_cents, self.discount_percent)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_percent": percent_to_float(self.discount_percent),
            "total_cents": self.total_cents,
        }
