# Overview: Parsing and construction of document line items shared by orders, entries, exits and expenses.

from __future__ import annotations

from ..extensions import db
from ..models import Product
from ..validation import (
    ValidationError,
    optional_text,
    parse_discount_percent,
    parse_price_cents,
    parse_quantity,
)


def parse_line_items(raw_items, *, price_field: str, require_items: bool = True) -> list[dict]:
    """
    Validate incoming line items before anything is written.

    Each item needs a quantity > 0 and either a product_id (a live product)
    or a product_name. product_name and the unit price default to the
    product's current values; the name is frozen onto the item from then on.
    """
    if raw_items is None:
        raw_items = []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")
    if require_items and not raw_items:
        raise ValidationError("At least one item is required")

    product_price_field = "purchase_price_cents" if price_field == "purchase_price_cents" else "sale_price_cents"

    parsed = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")

        product_id = optional_text(raw.get("product_id"))
        product = None
        if product_id:
            product = Product.live().filter(Product.id == product_id).first()
            if not product:
                raise ValidationError(f"items[{index}]: product {product_id} not found")

        product_name = optional_text(raw.get("product_name")) or (product.name if product else None)
        if not product_name:
            raise ValidationError(f"items[{index}]: product_name is required")

        raw_price = raw.get(price_field)
        if raw_price is None and product is not None:
            raw_price = getattr(product, product_price_field)

        parsed.append({
            "position": index,
            "product_id": product_id,
            "product_name": product_name,
            "quantity": parse_quantity(raw.get("quantity"), f"items[{index}].quantity"),
            price_field: parse_price_cents(raw_price, f"items[{index}].{price_field}"),
            "discount_percent": parse_discount_percent(raw.get("discount_percent"), f"items[{index}].discount_percent"),
        })
    return parsed


def parse_expense_items(raw_items) -> list[dict]:
    """Expense lines are free text: no product reference, no stock effect."""
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("At least one item is required")

    parsed = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        name = optional_text(raw.get("product_name") or raw.get("description"))
        if not name:
            raise ValidationError(f"items[{index}]: product_name is required")
        parsed.append({
            "position": index,
            "product_name": name,
            "quantity": parse_quantity(raw.get("quantity"), f"items[{index}].quantity"),
            "unit_price_cents": parse_price_cents(raw.get("unit_price_cents"), f"items[{index}].unit_price_cents"),
            "discount_percent": parse_discount_percent(raw.get("discount_percent"), f"items[{index}].discount_percent"),
        })
    return parsed


def replace_items(document, item_model, parsed: list[dict]) -> None:
    """Drop the document's items and insert the new set (delete-orphan cascade)."""
    document.items.clear()
    db.session.flush()
    for values in parsed:
        document.items.append(item_model(**values))
