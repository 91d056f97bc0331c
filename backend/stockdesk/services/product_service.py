# Overview: Service-layer operations for products; encapsulates business logic and database work.

"""
Products Service

current_stock may be given once, on create, as the opening count. After
that it is owned by stock_service and silently dropped from updates.

Product codes are unique across live and soft-deleted rows, since a
deleted product can be restored from the recycle bin.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Product
from ..validation import ConflictError, NotFoundError, ValidationError, enforce_rules_product
from .category_service import refresh_product_count
from stockdesk.time_utils import utcnow

PRODUCT_MUTABLE_FIELDS = {
    "code", "name", "description", "category", "image",
    "purchase_price_cents", "sale_price_cents", "min_stock", "status",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_code_available(code: str, *, exclude_id: str | None = None) -> None:
    query = db.session.query(Product.id).filter(Product.code == code)
    if exclude_id:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError(f"Product code '{code}' already exists")


def list_products(
    *,
    include_inactive: bool = True,
    search: str | None = None,
    category: str | None = None,
    low_stock_only: bool = False,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[Product], int]:
    """Live products ordered by name."""
    query = Product.live()
    if not include_inactive:
        query = query.filter(Product.status == "active")
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(Product.name.ilike(term), Product.code.ilike(term)))
    if category:
        query = query.filter(Product.category == category)
    if low_stock_only:
        query = query.filter(Product.current_stock < Product.min_stock)

    total = query.count()
    query = query.order_by(Product.name.asc(), Product.id.asc()).offset(offset)
    if limit:
        query = query.limit(limit)
    return query.all(), total


def get_product(product_id: str) -> Product:
    product = Product.live().filter(Product.id == product_id).first()
    if not product:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def create_product(*, patch: dict) -> Product:
    """
    Create a product from a validated patch dict.

    Raises:
        ValidationError: missing code/name or invalid prices
        ConflictError: code already used
    """
    enforce_rules_product(patch)

    code = (patch.get("code") or "").strip()
    name = (patch.get("name") or "").strip()
    if not code:
        raise ValidationError("code is required")
    if not name:
        raise ValidationError("name is required")

    _ensure_code_available(code)

    product = Product(current_stock=patch.get("current_stock") or 0)
    apply_product_patch(product, patch)
    product.code = code
    product.name = name

    db.session.add(product)
    refresh_product_count([product.category])
    db.session.commit()
    return product


def update_product(*, product_id: str, patch: dict) -> Product:
    """
    Update a product. current_stock in the patch is ignored.

    Raises:
        NotFoundError: product missing or soft-deleted
        ConflictError: new code already used
    """
    product = get_product(product_id)

    patch = {k: v for k, v in patch.items() if k != "current_stock"}
    enforce_rules_product(patch)

    if "code" in patch:
        code = (patch["code"] or "").strip()
        if not code:
            raise ValidationError("code cannot be blank")
        if code != product.code:
            _ensure_code_available(code, exclude_id=product.id)
        patch["code"] = code

    previous_category = product.category
    apply_product_patch(product, patch)
    product.updated_at = utcnow()

    if product.category != previous_category:
        refresh_product_count([previous_category, product.category])

    db.session.commit()
    return product
