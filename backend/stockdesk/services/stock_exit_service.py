# Overview: Service-layer operations for stock exits (sales); encapsulates business logic and database work.

"""
Stock Exit Service

Creating an exit subtracts each item's quantity from product stock, floored
at 0. Exits produced by order conversion are created by order_service and
carry from_order_id / from_order_number; editing such an exit keeps the
back-reference.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import StockExit, StockExitItem
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

PROTECTED_FIELDS = {"number", "from_order_id", "from_order_number"}


def list_stock_exits(
    *,
    client_id: str | None = None,
    from_order_id: str | None = None,
    date_from=None,
    date_to=None,
    search: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[StockExit], int]:
    query = StockExit.live()
    if client_id:
        query = query.filter(StockExit.client_id == client_id)
    if from_order_id:
        query = query.filter(StockExit.from_order_id == from_order_id)
    start = parse_optional_date(date_from, "date_from")
    end = parse_optional_date(date_to, "date_to")
    if start:
        query = query.filter(StockExit.date >= start)
    if end:
        query = query.filter(StockExit.date <= end)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(
            StockExit.number.ilike(term),
            StockExit.client_name.ilike(term),
            StockExit.invoice_number.ilike(term),
            StockExit.from_order_number.ilike(term),
        ))

    total = query.count()
    query = query.order_by(StockExit.date.desc(), StockExit.number.desc()).offset(offset)
    if limit:
        query = query.limit(limit)
    return query.all(), total


def get_stock_exit(exit_id: str) -> StockExit:
    stock_exit = StockExit.live().filter(StockExit.id == exit_id).first()
    if not stock_exit:
        raise NotFoundError(f"Stock exit {exit_id} not found")
    return stock_exit


def create_stock_exit(
    *,
    date,
    items,
    client_id: str | None = None,
    client_name: str | None = None,
    invoice_number: str | None = None,
    discount=None,
    notes: str | None = None,
) -> StockExit:
    exit_date = parse_required_date(date)
    header_discount = parse_discount_percent(discount, "discount")
    parsed_items = parse_line_items(items, price_field="sale_price_cents")
    resolved_name = resolve_contact_name("clients", client_id, client_name)

    def _create():
        with atomic():
            stock_exit = StockExit(
                number=next_document_number("stock_exits", exit_date.year),
                client_id=client_id,
                client_name=resolved_name,
                date=exit_date,
                invoice_number=optional_text(invoice_number),
                discount=header_discount,
                notes=optional_text(notes),
            )
            stock_exit.items = [StockExitItem(**values) for values in parsed_items]
            db.session.add(stock_exit)
            db.session.flush()
            apply_stock_adjustments(item_pairs(stock_exit.items), "exit")
        return stock_exit

    stock_exit = run_with_retry(_create)
    current_app.logger.info("Stock exit created: %s (%d items)", stock_exit.number, len(stock_exit.items))
    return stock_exit


def update_stock_exit(*, exit_id: str, patch: dict) -> StockExit:
    """
    Edit an exit. When items change, each product's stock moves by the
    difference between its old and new quantities, in one transaction.
    """
    stock_exit = get_stock_exit(exit_id)

    protected = PROTECTED_FIELDS & set(patch)
    if protected:
        raise ValidationError(f"Field not allowed: {sorted(protected)[0]}")

    changes: dict = {}
    if "client_id" in patch or "client_name" in patch:
        client_id = patch.get("client_id", stock_exit.client_id)
        changes["client_id"] = client_id
        changes["client_name"] = resolve_contact_name("clients", client_id, patch.get("client_name"))
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
        parsed_items = parse_line_items(patch["items"], price_field="sale_price_cents")

    def _update():
        with atomic():
            for k, v in changes.items():
                setattr(stock_exit, k, v)
            if parsed_items is not None:
                old_pairs = item_pairs(stock_exit.items)
                replace_items(stock_exit, StockExitItem, parsed_items)
                db.session.flush()
                reconcile_stock_adjustments(old_pairs, item_pairs(stock_exit.items), "exit")
        return stock_exit

    stock_exit = run_with_retry(_update)
    current_app.logger.info("Stock exit updated: %s", stock_exit.number)
    return stock_exit
