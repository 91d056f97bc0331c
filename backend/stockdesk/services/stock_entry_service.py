# Overview: Service-layer operations for stock entries (purchases); encapsulates business logic and database work.

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import StockEntry, StockEntryItem
from ..validation import (
    NotFoundError,
    ValidationError,
    optional_text,
    parse_discount_percent,
    parse_optional_date,
    parse_required_date,
)
from .concurrency import atomic, run_with_retry
from .contact_service import resolve_contact_name
from .document_service import next_document_number
from .line_items import parse_line_items, replace_items
from .stock_service import apply_stock_adjustments, item_pairs, reconcile_stock_adjustments


def list_stock_entries(
    *,
    supplier_id: str | None = None,
    date_from=None,
    date_to=None,
    search: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[StockEntry], int]:
    query = StockEntry.live()
    if supplier_id:
        query = query.filter(StockEntry.supplier_id == supplier_id)
    start = parse_optional_date(date_from, "date_from")
    end = parse_optional_date(date_to, "date_to")
    if start:
        query = query.filter(StockEntry.date >= start)
    if end:
        query = query.filter(StockEntry.date <= end)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(
            StockEntry.number.ilike(term),
            StockEntry.supplier_name.ilike(term),
            StockEntry.invoice_number.ilike(term),
        ))

    total = query.count()
    query = query.order_by(StockEntry.date.desc(), StockEntry.number.desc()).offset(offset)
    if limit:
        query = query.limit(limit)
    return query.all(), total


def get_stock_entry(entry_id: str) -> StockEntry:
    entry = StockEntry.live().filter(StockEntry.id == entry_id).first()
    if not entry:
        raise NotFoundError(f"Stock entry {entry_id} not found")
    return entry


def create_stock_entry(
    *,
    date,
    items,
    supplier_id: str | None = None,
    supplier_name: str | None = None,
    invoice_number: str | None = None,
    discount=None,
    notes: str | None = None,
) -> StockEntry:
    """
    Record a purchase and add each item's quantity to product stock.

    Everything is validated first; the number, the rows and the stock
    increments then commit together.
    """
    entry_date = parse_required_date(date)
    header_discount = parse_discount_percent(discount, "discount")
    parsed_items = parse_line_items(items, price_field="purchase_price_cents")
    resolved_name = resolve_contact_name("suppliers", supplier_id, supplier_name)

    def _create():
        with atomic():
            entry = StockEntry(
                number=next_document_number("stock_entries", entry_date.year),
                supplier_id=supplier_id,
                supplier_name=resolved_name,
                date=entry_date,
                invoice_number=optional_text(invoice_number),
                discount=header_discount,
                notes=optional_text(notes),
            )
            entry.items = [StockEntryItem(**values) for values in parsed_items]
            db.session.add(entry)
            db.session.flush()
            apply_stock_adjustments(item_pairs(entry.items), "entry")
        return entry

    entry = run_with_retry(_create)
    current_app.logger.info("Stock entry created: %s (%d items)", entry.number, len(entry.items))
    return entry


def update_stock_entry(*, entry_id: str, patch: dict) -> StockEntry:
    """
    Edit an entry. When items change, each product's stock moves by the
    difference between its new and old quantities, in the same transaction.
    """
    entry = get_stock_entry(entry_id)

    if "number" in patch:
        raise ValidationError("number cannot be edited")

    changes: dict = {}
    if "supplier_id" in patch or "supplier_name" in patch:
        supplier_id = patch.get("supplier_id", entry.supplier_id)
        changes["supplier_id"] = supplier_id
        changes["supplier_name"] = resolve_contact_name("suppliers", supplier_id, patch.get("supplier_name"))
    if "date" in patch:
        changes["date"] = parse_required_date(patch["date"])
    if "invoice_number" in patch:
        changes["invoice_number"] = optional_text(patch["invoice_number"])
    if "discount" in patch:
        changes["discount"] = parse_discount_percent(patch["discount"], "discount")
    if "notes" in patch:
        changes["notes"] = optional_text(patch["notes"])

    parsed_items = None
    if "items" in patch:
        parsed_items = parse_line_items(patch["items"], price_field="purchase_price_cents")

    def _update():
        with atomic():
            for k, v in changes.items():
                setattr(entry, k, v)
            if parsed_items is not None:
                old_pairs = item_pairs(entry.items)
                replace_items(entry, StockEntryItem, parsed_items)
                db.session.flush()
                reconcile_stock_adjustments(old_pairs, item_pairs(entry.items), "entry")
        return entry

    entry = run_with_retry(_update)
    current_app.logger.info("Stock entry updated: %s", entry.number)
    return entry
