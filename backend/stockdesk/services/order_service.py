# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order Service

LIFECYCLE:
- pending: editable, cancellable, convertible
- cancelled: cannot be converted
- converted: converted_to_stock_exit_id is set; items are frozen and the
  order can no longer be cancelled

CONVERSION (convert_order_to_stock_exit):
The stock exit, its items, the stock decrements, the SAI number and the
order's back-reference are written in one transaction. Either all of them
are committed or none are.

If a live stock exit already points at the order through from_order_id
while the order itself is not marked converted, the order is re-linked to
that exit and no second exit is created.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Order, OrderItem, StockExit, StockExitItem
from ..validation import (
    ConflictError,
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
from .stock_service import apply_stock_adjustments, item_pairs
from stockdesk.time_utils import today


ORDER_STATUSES = {"pending", "cancelled"}


class OrderError(ConflictError):
    """Raised when an order operation conflicts with the order's lifecycle."""
    pass


class OrderAlreadyConvertedError(OrderError):
    """Raised when converting an order that already has a stock exit."""
    pass


def list_orders(
    *,
    status: str | None = None,
    client_id: str | None = None,
    converted: bool | None = None,
    search: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[Order], int]:
    query = Order.live()
    if status:
        query = query.filter(Order.status == status)
    if client_id:
        query = query.filter(Order.client_id == client_id)
    if converted is True:
        query = query.filter(Order.converted_to_stock_exit_id.isnot(None))
    elif converted is False:
        query = query.filter(Order.converted_to_stock_exit_id.is_(None))
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(Order.number.ilike(term), Order.client_name.ilike(term)))

    total = query.count()
    query = query.order_by(Order.date.desc(), Order.number.desc()).offset(offset)
    if limit:
        query = query.limit(limit)
    return query.all(), total


def get_order(order_id: str) -> Order:
    order = Order.live().filter(Order.id == order_id).first()
    if not order:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def create_order(
    *,
    client_id: str | None,
    date,
    items,
    client_name: str | None = None,
    expected_delivery_date=None,
    discount=None,
    notes: str | None = None,
) -> Order:
    """
    Create a pending order with an ENC number.

    Raises:
        ValidationError: no client, no items, bad dates/quantities/prices
        NotFoundError: client_id does not exist and no client_name was given
    """
    if not client_id and not (client_name or "").strip():
        raise ValidationError("client is required")

    order_date = parse_required_date(date)
    delivery_date = parse_optional_date(expected_delivery_date, "expected_delivery_date")
    header_discount = parse_discount_percent(discount, "discount")
    parsed_items = parse_line_items(items, price_field="sale_price_cents")
    resolved_name = resolve_contact_name("clients", client_id, client_name)

    def _create():
        with atomic():
            order = Order(
                number=next_document_number("orders", order_date.year),
                client_id=client_id,
                client_name=resolved_name,
                date=order_date,
                expected_delivery_date=delivery_date,
                discount=header_discount,
                notes=optional_text(notes),
                status="pending",
            )
            order.items = [OrderItem(**values) for values in parsed_items]
            db.session.add(order)
        return order

    order = run_with_retry(_create)
    current_app.logger.info("Order created: %s (%d items)", order.number, len(order.items))
    return order


def update_order(*, order_id: str, patch: dict) -> Order:
    """
    Update header fields and, unless the order is converted, replace its items.

    status is not editable here; use cancel_order.
    """
    order = get_order(order_id)

    if "status" in patch:
        raise ValidationError("status cannot be edited; cancel the order instead")
    if "items" in patch and order.is_converted:
        raise OrderError("Converted orders cannot have their items changed")

    changes: dict = {}
    if "client_id" in patch or "client_name" in patch:
        client_id = patch.get("client_id", order.client_id)
        client_name = patch.get("client_name")
        if not client_id and not (client_name or "").strip():
            raise ValidationError("client is required")
        changes["client_id"] = client_id
        changes["client_name"] = resolve_contact_name("clients", client_id, client_name)
    if "date" in patch:
        changes["date"] = parse_required_date(patch["date"])
    if "expected_delivery_date" in patch:
        changes["expected_delivery_date"] = parse_optional_date(patch["expected_delivery_date"], "expected_delivery_date")
    if "discount" in patch:
        changes["discount"] = parse_discount_percent(patch["discount"], "discount")
    if "notes" in patch:
        changes["notes"] = optional_text(patch["notes"])

    parsed_items = None
    if "items" in patch:
        parsed_items = parse_line_items(patch["items"], price_field="sale_price_cents")

    with atomic():
        for k, v in changes.items():
            setattr(order, k, v)
        if parsed_items is not None:
            replace_items(order, OrderItem, parsed_items)
    return order


def cancel_order(order_id: str) -> Order:
    order = get_order(order_id)
    if order.is_converted:
        raise OrderError(f"Order {order.number} was converted to {order.converted_to_stock_exit_number} and cannot be cancelled")
    if order.is_cancelled:
        return order

    order.status = "cancelled"
    db.session.commit()
    current_app.logger.info("Order cancelled: %s", order.number)
    return order


def duplicate_order(order_id: str) -> Order:
    """
    Copy an order into a new pending order dated today with the next ENC number.

    Client, discount, notes and items are copied. The delivery date and any
    conversion or cancellation are not, so converted and cancelled orders
    can be re-ordered.
    """
    source = get_order(order_id)
    order_date = today()

    def _duplicate():
        with atomic():
            order = Order(
                number=next_document_number("orders", order_date.year),
                client_id=source.client_id,
                client_name=source.client_name,
                date=order_date,
                discount=source.discount,
                notes=source.notes,
                status="pending",
            )
            order.items = [
                OrderItem(
                    position=item.position,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    sale_price_cents=item.sale_price_cents,
                    discount_percent=item.discount_percent,
                )
                for item in source.items
            ]
            db.session.add(order)
        return order

    order = run_with_retry(_duplicate)
    current_app.logger.info("Order %s duplicated as %s", source.number, order.number)
    return order


def _find_linked_exit(order: Order) -> StockExit | None:
    return (
        StockExit.live()
        .filter(StockExit.from_order_id == order.id)
        .order_by(StockExit.created_at.asc())
        .first()
    )


def convert_order_to_stock_exit(order_id: str, invoice_number: str | None = None) -> StockExit:
    """
    Turn a pending order into a stock exit and decrement stock.

    Raises:
        NotFoundError: order missing or soft-deleted
        OrderAlreadyConvertedError: order already has a stock exit
        OrderError: order cancelled or without items
        DocumentSequenceError / StockAdjustmentError: nothing is written
    """
    invoice_number = optional_text(invoice_number)

    def _convert():
        with atomic():
            order = get_order(order_id)
            if order.is_converted:
                raise OrderAlreadyConvertedError(
                    f"Order {order.number} was already converted to {order.converted_to_stock_exit_number}"
                )
            if order.is_cancelled:
                raise OrderError(f"Order {order.number} is cancelled and cannot be converted")

            linked = _find_linked_exit(order)
            if linked is not None:
                current_app.logger.warning(
                    "Order %s already has stock exit %s; re-linking instead of converting again",
                    order.number, linked.number,
                )
                order.converted_to_stock_exit_id = linked.id
                order.converted_to_stock_exit_number = linked.number
                return linked, order.number

            if not order.items:
                raise OrderError(f"Order {order.number} has no items")

            stock_exit = StockExit(
                number=next_document_number("stock_exits"),
                client_id=order.client_id,
                client_name=order.client_name,
                date=today(),
                discount=order.discount,
                invoice_number=invoice_number,
                notes=f"Converted from order {order.number}",
                from_order_id=order.id,
                from_order_number=order.number,
            )
            stock_exit.items = [
                StockExitItem(
                    position=item.position,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    sale_price_cents=item.sale_price_cents,
                    discount_percent=item.discount_percent,
                )
                for item in order.items
            ]
            db.session.add(stock_exit)
            db.session.flush()

            apply_stock_adjustments(item_pairs(order.items), "exit")

            order.converted_to_stock_exit_id = stock_exit.id
            order.converted_to_stock_exit_number = stock_exit.number
            return stock_exit, order.number

    stock_exit, order_number = run_with_retry(_convert)
    current_app.logger.info("Order %s converted to stock exit %s", order_number, stock_exit.number)
    return stock_exit
