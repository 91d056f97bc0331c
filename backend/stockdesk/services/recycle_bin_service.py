# Overview: Service-layer operations for soft delete and the recycle bin; encapsulates business logic and database work.

"""
Recycle Bin Service

Deleting a record through the API stamps deleted_at; standard list queries
skip such rows. The recycle bin lists them across all tables, restores them
unchanged, or removes them for good. Rows older than the retention window
are purged by `flask maintenance purge-recycle-bin`.

SIDE EFFECTS:
- products: category product counts are recomputed on delete and restore.
- soft delete never touches stock.

DEPENDENCY GUARDS (soft delete only):
- products with items on live entries, exits or orders
- categories with live products
- clients with live exits or orders; suppliers with live entries or expenses
- converted orders, and stock exits created from an order
A guarded delete raises DependencyError (409) naming what depends on it.
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import (
    Category,
    Client,
    Expense,
    Order,
    OrderItem,
    Product,
    StockEntry,
    StockEntryItem,
    StockExit,
    StockExitItem,
    Supplier,
)
from ..validation import ConflictError, NotFoundError, ValidationError
from .category_service import refresh_product_count
from stockdesk.time_utils import days_elapsed, to_utc_z, utcnow


# table_type -> model, in recycle bin listing order
RECYCLABLE_TABLES = {
    "products": Product,
    "categories": Category,
    "clients": Client,
    "suppliers": Supplier,
    "orders": Order,
    "stock_entries": StockEntry,
    "stock_exits": StockExit,
    "expenses": Expense,
}

DEFAULT_RETENTION_DAYS = 30


class RecycleBinError(ValidationError):
    """Raised for an unknown table or an operation the record's state forbids."""
    pass


def _retention_days() -> int:
    return current_app.config.get("RECYCLE_BIN_RETENTION_DAYS", DEFAULT_RETENTION_DAYS)


def _model(table_name: str):
    model = RECYCLABLE_TABLES.get(table_name)
    if model is None:
        raise RecycleBinError(f"Unknown table: {table_name}")
    return model


class DependencyError(ConflictError):
    """Raised when a record still has documents or links that depend on it."""

    def __init__(self, message: str, dependencies: list[str]):
        super().__init__(message)
        self.dependencies = dependencies


def _has_live_items(item_model, document_model, document_fk, product_id: str) -> bool:
    row = (
        db.session.query(item_model.id)
        .join(document_model, document_model.id == document_fk)
        .filter(item_model.product_id == product_id, document_model.deleted_at.is_(None))
        .first()
    )
    return row is not None


def _has_live(model, *criteria) -> bool:
    return model.live().filter(*criteria).first() is not None


def _dependencies(table_name: str, record) -> list[str]:
    """What keeps a live record from being deleted. Deleted documents do not count."""
    found: list[str] = []
    if table_name == "products":
        if _has_live_items(StockEntryItem, StockEntry, StockEntryItem.entry_id, record.id):
            found.append("stock entries")
        if _has_live_items(StockExitItem, StockExit, StockExitItem.exit_id, record.id):
            found.append("stock exits")
        if _has_live_items(OrderItem, Order, OrderItem.order_id, record.id):
            found.append("orders")
    elif table_name == "categories":
        if _has_live(Product, Product.category == record.name):
            found.append("products")
    elif table_name == "clients":
        if _has_live(StockExit, StockExit.client_id == record.id):
            found.append("stock exits")
        if _has_live(Order, Order.client_id == record.id):
            found.append("orders")
    elif table_name == "suppliers":
        if _has_live(StockEntry, StockEntry.supplier_id == record.id):
            found.append("stock entries")
        if _has_live(Expense, Expense.supplier_id == record.id):
            found.append("expenses")
    elif table_name == "orders":
        if record.converted_to_stock_exit_id:
            found.append("stock exit")
    elif table_name == "stock_exits":
        if record.from_order_id:
            found.append("order")
    return found


def _dependency_message(table_name: str, dependencies: list[str]) -> str:
    if table_name == "orders":
        return "This order cannot be deleted because it was converted to a stock exit"
    if table_name == "stock_exits":
        return "This stock exit cannot be deleted because it was created from an order"
    noun = {"products": "product", "categories": "category", "clients": "client", "suppliers": "supplier"}[table_name]
    return f"This {noun} cannot be deleted because it has associated {', '.join(dependencies)}"


def check_dependencies(table_name: str, record_id: str) -> dict:
    """
    Whether a live record may be soft-deleted.

    Returns {"can_delete", "message", "dependencies"}.
    """
    model = _model(table_name)
    record = model.live().filter(model.id == record_id).first()
    if not record:
        raise NotFoundError(f"Record {record_id} not found in {table_name}")

    dependencies = _dependencies(table_name, record)
    if not dependencies:
        return {"can_delete": True, "message": None, "dependencies": []}
    return {
        "can_delete": False,
        "message": _dependency_message(table_name, dependencies),
        "dependencies": dependencies,
    }


def _after_state_change(table_name: str, record) -> None:
    if table_name == "products":
        refresh_product_count([record.category])
    elif table_name == "categories" and record.deleted_at is None:
        refresh_product_count([record.name])


def soft_delete_record(table_name: str, record_id: str):
    """
    Stamp deleted_at on a live record. Returns the record.

    Raises:
        DependencyError: live documents or an order conversion depend on it
        NotFoundError: no live record
    """
    model = _model(table_name)
    record = model.live().filter(model.id == record_id).first()
    if not record:
        raise NotFoundError(f"Record {record_id} not found in {table_name}")

    dependencies = _dependencies(table_name, record)
    if dependencies:
        current_app.logger.info("Delete of %s %s refused: %s", table_name, record_id, dependencies)
        raise DependencyError(_dependency_message(table_name, dependencies), dependencies)

    record.deleted_at = utcnow()
    _after_state_change(table_name, record)
    db.session.commit()

    current_app.logger.info("Soft-deleted %s %s", table_name, record_id)
    return record


def restore_record(table_name: str, record_id: str):
    """Clear deleted_at; every other field is left as it was."""
    model = _model(table_name)
    record = model.deleted().filter(model.id == record_id).first()
    if not record:
        raise NotFoundError(f"Deleted record {record_id} not found in {table_name}")

    record.deleted_at = None
    _after_state_change(table_name, record)
    db.session.commit()

    current_app.logger.info("Restored %s %s", table_name, record_id)
    return record


def _detach_references(table_name: str, record_id: str) -> None:
    """Contacts are referenced by documents; keep the denormalized names, drop the FK."""
    if table_name == "clients":
        for model in (Order, StockExit):
            db.session.query(model).filter(model.client_id == record_id).update(
                {model.client_id: None}, synchronize_session=False
            )
    elif table_name == "suppliers":
        for model in (StockEntry, Expense):
            db.session.query(model).filter(model.supplier_id == record_id).update(
                {model.supplier_id: None}, synchronize_session=False
            )


def _hard_delete(table_name: str, record) -> None:
    _detach_references(table_name, record.id)
    db.session.delete(record)


def permanent_delete_record(table_name: str, record_id: str) -> None:
    """
    Remove a soft-deleted record and its line items for good.

    Raises:
        RecycleBinError: the record is not in the recycle bin
        NotFoundError: no such record
    """
    model = _model(table_name)
    record = db.session.query(model).filter(model.id == record_id).first()
    if not record:
        raise NotFoundError(f"Record {record_id} not found in {table_name}")
    if record.deleted_at is None:
        raise RecycleBinError("Only records in the recycle bin can be permanently deleted")

    _hard_delete(table_name, record)
    db.session.commit()

    current_app.logger.info("Permanently deleted %s %s", table_name, record_id)


def _bin_entry(table_name: str, record, retention_days: int, now) -> dict:
    return {
        "id": record.id,
        "name": record.recycle_name(),
        "table_type": table_name,
        "deleted_at": to_utc_z(record.deleted_at),
        "additional_info": record.recycle_info(),
        "days_in_bin": days_elapsed(record.deleted_at, now),
        "permanent_deletion_date": to_utc_z(record.deleted_at + timedelta(days=retention_days)),
    }


def get_deleted_records(table_name: str | None = None) -> list[dict]:
    """Soft-deleted rows across all recyclable tables, newest first."""
    tables = [table_name] if table_name else list(RECYCLABLE_TABLES)
    retention_days = _retention_days()
    now = utcnow()

    entries = []
    for name in tables:
        model = _model(name)
        for record in model.deleted().all():
            entries.append((record.deleted_at, _bin_entry(name, record, retention_days, now)))

    entries.sort(key=lambda pair: pair[0], reverse=True)
    return [entry for _, entry in entries]


def purge_expired_records(*, retention_days: int | None = None) -> dict[str, int]:
    """
    Permanently delete rows that have been in the bin longer than the
    retention window. Returns {table_type: rows_removed}.
    """
    if retention_days is None:
        retention_days = _retention_days()
    cutoff = utcnow() - timedelta(days=retention_days)

    removed: dict[str, int] = {}
    for name, model in RECYCLABLE_TABLES.items():
        expired = model.deleted().filter(model.deleted_at < cutoff).all()
        for record in expired:
            _hard_delete(name, record)
        if expired:
            removed[name] = len(expired)
    db.session.commit()

    if removed:
        current_app.logger.info("Recycle bin purge removed %s", removed)
    return removed
