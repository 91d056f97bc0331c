# Overview: Service-layer operations for product stock levels; atomic clamped adjustments.

"""
Stock Adjustment

current_stock on a product is changed only here, by stock entries (add),
stock exits (subtract) and order conversion (subtract).

INVARIANTS:
- new_stock = max(0, current_stock + delta), computed by the database in a
  single UPDATE. There is no read-then-write window for a concurrent
  adjustment to slip into.
- Soft-deleted products are adjusted like live ones, so a restored product
  comes back with the stock its documents imply. Only a product row that
  does not exist raises StockAdjustmentError. Callers run inside atomic(),
  so the whole document is rolled back.
- Editing a document's items applies one net delta per product
  (reconcile_stock_adjustments). Reversing the old items and then applying
  the new ones would pass through the 0 floor twice and drift.
- Bulk UPDATEs skip the ORM unit of work, so each adjustment is queued on the
  change feed explicitly.
"""

from __future__ import annotations

from typing import Iterable

from flask import current_app
from sqlalchemy import case, update

from ..extensions import db
from ..models import Product
from . import change_feed
from stockdesk.time_utils import utcnow


DIRECTIONS = {"entry": 1, "exit": -1}


class StockAdjustmentError(Exception):
    """Raised when a product's stock cannot be adjusted."""
    pass


def adjust_stock(product_id: str, delta: int) -> int:
    """
    Apply `delta` to a product's stock, floored at 0.

    Returns the new current_stock.
    """
    if not product_id:
        raise StockAdjustmentError("product_id is required")
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise StockAdjustmentError("delta must be an integer")

    new_value = Product.current_stock + delta
    now = utcnow()
    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(
            current_stock=case((new_value < 0, 0), else_=new_value),
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        raise StockAdjustmentError(f"Product {product_id} not found")

    current = (
        db.session.query(Product.current_stock)
        .filter(Product.id == product_id)
        .scalar()
    )

    # Keep an already-loaded instance consistent with the row
    product = db.session.identity_map.get(db.session.identity_key(Product, product_id))
    if product is not None:
        db.session.expire(product, ["current_stock", "updated_at"])

    change_feed.record_change(
        db.session,
        "products",
        "update",
        product_id,
        {"id": product_id, "current_stock": current, "updated_at": now.isoformat()},
    )

    current_app.logger.info("Stock adjusted: product=%s delta=%+d new_stock=%d", product_id, delta, current)
    return current


def apply_stock_adjustments(pairs: Iterable[tuple[str | None, int]], direction: str) -> dict[str, int]:
    """
    Apply (product_id, quantity) pairs as an entry (add) or exit (subtract).

    Items without a product_id are free-text lines and are skipped.
    Returns {product_id: new_stock} for the products touched.
    """
    if direction not in DIRECTIONS:
        raise StockAdjustmentError(f"direction must be one of: {', '.join(DIRECTIONS)}")
    sign = DIRECTIONS[direction]

    results: dict[str, int] = {}
    for product_id, quantity in pairs:
        if not product_id:
            current_app.logger.warning("Skipping stock %s for item without product_id", direction)
            continue
        results[product_id] = adjust_stock(product_id, sign * quantity)
    return results


def net_quantities(pairs: Iterable[tuple[str | None, int]]) -> dict[str, int]:
    """Total quantity per product_id; free-text lines are left out."""
    totals: dict[str, int] = {}
    for product_id, quantity in pairs:
        if product_id:
            totals[product_id] = totals.get(product_id, 0) + quantity
    return totals


def reconcile_stock_adjustments(
    old_pairs: Iterable[tuple[str | None, int]],
    new_pairs: Iterable[tuple[str | None, int]],
    direction: str,
) -> dict[str, int]:
    """
    Move stock from what a document's old items did to what its new items do.

    Each product gets a single adjustment of (new - old) quantity in the
    document's direction; products whose quantity did not change are not
    touched. Returns {product_id: new_stock} for the products adjusted.
    """
    if direction not in DIRECTIONS:
        raise StockAdjustmentError(f"direction must be one of: {', '.join(DIRECTIONS)}")
    sign = DIRECTIONS[direction]

    old = net_quantities(old_pairs)
    new = net_quantities(new_pairs)

    results: dict[str, int] = {}
    for product_id in sorted(old.keys() | new.keys()):
        delta = new.get(product_id, 0) - old.get(product_id, 0)
        if delta:
            results[product_id] = adjust_stock(product_id, sign * delta)
    return results


def item_pairs(items) -> list[tuple[str | None, int]]:
    """(product_id, quantity) for each line item."""
    return [(item.product_id, item.quantity) for item in items]

