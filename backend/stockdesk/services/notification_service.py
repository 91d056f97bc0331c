# Overview: Service-layer operations for automated notifications; low stock and overdue order alerts.

"""
Notification Service

run_automated_checks() is the periodic job (`flask notifications watch`):
1. archive notifications past expires_at, and those whose cause is gone
   (product restocked, inactive or deleted; order converted, cancelled,
   deleted or no longer overdue)
2. create notifications for active low-stock products and overdue
   unconverted orders

At most one active (non-archived) notification exists per related record
and type. Stock alerts expire after LOW_STOCK_NOTIFICATION_TTL_DAYS, order
alerts after OVERDUE_ORDER_NOTIFICATION_TTL_DAYS.
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Notification, Order, Product
from ..validation import NotFoundError
from stockdesk.time_utils import today, utcnow


NOTIFICATION_TYPES = {"stock", "order"}
PRIORITIES = {"low", "medium", "high"}


def create_notification(
    *,
    title: str,
    message: str,
    type: str,
    priority: str = "medium",
    link: str | None = None,
    related_id: str | None = None,
    expires_at=None,
) -> Notification:
    """Adds the notification to the session; the caller commits."""
    notification = Notification(
        title=title,
        message=message,
        type=type,
        priority=priority if priority in PRIORITIES else "medium",
        link=link,
        related_id=related_id,
        expires_at=expires_at,
    )
    db.session.add(notification)
    return notification


def _unexpired(query):
    """Notifications past expires_at are treated as gone."""
    return query.filter(or_(Notification.expires_at.is_(None), Notification.expires_at >= utcnow()))


def _active_related_ids(notification_type: str) -> set[str]:
    rows = (
        _unexpired(db.session.query(Notification.related_id))
        .filter(
            Notification.type == notification_type,
            Notification.archived.is_(False),
            Notification.related_id.isnot(None),
        )
        .all()
    )
    return {r[0] for r in rows}


def _archive(notification_type: str, related_ids: set[str]) -> int:
    if not related_ids:
        return 0
    return (
        db.session.query(Notification)
        .filter(
            Notification.type == notification_type,
            Notification.archived.is_(False),
            Notification.related_id.in_(related_ids),
        )
        .update({Notification.archived: True, Notification.updated_at: utcnow()}, synchronize_session=False)
    )


def archive_resolved_low_stock_notifications() -> int:
    """Restocked, inactive, deleted or missing products no longer need an alert."""
    active = _active_related_ids("stock")
    if not active:
        return 0
    products = {p.id: p for p in db.session.query(Product).filter(Product.id.in_(active)).all()}
    resolved = {
        related_id
        for related_id in active
        if related_id not in products
        or products[related_id].deleted_at is not None
        or products[related_id].status != "active"
        or products[related_id].current_stock >= products[related_id].min_stock
    }
    return _archive("stock", resolved)


def archive_resolved_order_notifications() -> int:
    """Converted, cancelled, deleted or no longer overdue orders drop their alert."""
    active = _active_related_ids("order")
    if not active:
        return 0
    current_day = today()
    orders = {o.id: o for o in db.session.query(Order).filter(Order.id.in_(active)).all()}
    resolved = set()
    for related_id in active:
        order = orders.get(related_id)
        if (
            order is None
            or order.deleted_at is not None
            or order.is_converted
            or order.is_cancelled
            or order.expected_delivery_date is None
            or order.expected_delivery_date >= current_day
        ):
            resolved.add(related_id)
    return _archive("order", resolved)


def check_low_stock_notifications() -> int:
    ttl_days = current_app.config.get("LOW_STOCK_NOTIFICATION_TTL_DAYS", 7)
    existing = _active_related_ids("stock")
    products = (
        Product.live()
        .filter(Product.status == "active", Product.current_stock < Product.min_stock)
        .all()
    )

    created = 0
    for product in products:
        if product.id in existing:
            continue
        create_notification(
            title="Low stock",
            message=(
                f"{product.name} ({product.code}) is low on stock: "
                f"{product.current_stock} units (minimum: {product.min_stock})"
            ),
            type="stock",
            priority="high",
            link=f"/products/{product.id}",
            related_id=product.id,
            expires_at=utcnow() + timedelta(days=ttl_days),
        )
        created += 1
    return created


def check_overdue_order_notifications() -> int:
    ttl_days = current_app.config.get("OVERDUE_ORDER_NOTIFICATION_TTL_DAYS", 3)
    existing = _active_related_ids("order")
    orders = (
        Order.live()
        .filter(
            Order.converted_to_stock_exit_id.is_(None),
            Order.status == "pending",
            Order.expected_delivery_date.isnot(None),
            Order.expected_delivery_date < today(),
        )
        .all()
    )

    created = 0
    for order in orders:
        if order.id in existing:
            continue
        create_notification(
            title="Overdue order",
            message=f"Order {order.number} for {order.client_name} is overdue",
            type="order",
            priority="high",
            link=f"/orders/{order.id}",
            related_id=order.id,
            expires_at=utcnow() + timedelta(days=ttl_days),
        )
        created += 1
    return created


def archive_expired_notifications() -> int:
    return (
        db.session.query(Notification)
        .filter(
            Notification.archived.is_(False),
            Notification.expires_at.isnot(None),
            Notification.expires_at < utcnow(),
        )
        .update({Notification.archived: True, Notification.updated_at: utcnow()}, synchronize_session=False)
    )


def run_automated_checks() -> dict:
    """Archive expired and resolved alerts, then raise new ones. Commits once."""
    result = {
        "archived_expired": archive_expired_notifications(),
        "archived_stock": archive_resolved_low_stock_notifications(),
        "archived_orders": archive_resolved_order_notifications(),
    }
    db.session.flush()
    result["created_stock"] = check_low_stock_notifications()
    result["created_orders"] = check_overdue_order_notifications()
    db.session.commit()

    current_app.logger.info(
        "Notification checks: archived %d expired / %d stock / %d order, created %d stock / %d order",
        result["archived_expired"], result["archived_stock"], result["archived_orders"],
        result["created_stock"], result["created_orders"],
    )
    return result


def list_notifications(
    *,
    include_archived: bool = False,
    unread_only: bool = False,
    type: str | None = None,
    priority: str | None = None,
    limit: int | None = None,
) -> list[Notification]:
    query = db.session.query(Notification)
    if not include_archived:
        query = _unexpired(query.filter(Notification.archived.is_(False)))
    if unread_only:
        query = query.filter(Notification.read.is_(False))
    if type:
        query = query.filter(Notification.type == type)
    if priority:
        query = query.filter(Notification.priority == priority)
    query = query.order_by(Notification.created_at.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def unread_count() -> int:
    return (
        _unexpired(db.session.query(Notification))
        .filter(Notification.archived.is_(False), Notification.read.is_(False))
        .count()
    )


def _get(notification_id: str) -> Notification:
    notification = db.session.query(Notification).filter_by(id=notification_id).first()
    if not notification:
        raise NotFoundError(f"Notification {notification_id} not found")
    return notification


def mark_read(notification_id: str) -> Notification:
    notification = _get(notification_id)
    notification.read = True
    db.session.commit()
    return notification


def mark_all_read() -> int:
    updated = (
        db.session.query(Notification)
        .filter(Notification.archived.is_(False), Notification.read.is_(False))
        .update({Notification.read: True}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def archive_notification(notification_id: str) -> Notification:
    notification = _get(notification_id)
    notification.archived = True
    notification.read = True
    db.session.commit()
    return notification
