# Overview: Service-layer operations for categories; encapsulates business logic and database work.

from __future__ import annotations

from typing import Iterable

from sqlalchemy import func

from ..extensions import db
from ..models import Category, Product
from ..validation import NotFoundError, ValidationError
from stockdesk.time_utils import utcnow


CATEGORY_MUTABLE_FIELDS = {"name", "description", "status"}


def _live_product_count(name: str) -> int:
    return (
        db.session.query(func.count(Product.id))
        .filter(Product.category == name, Product.deleted_at.is_(None))
        .scalar()
    ) or 0


def refresh_product_count(names: Iterable[str | None]) -> None:
    """
    Recompute product_count for the live categories with these names.

    Called whenever a product is created, recategorised, deleted or
    restored. Does not commit.
    """
    wanted = {n for n in names if n}
    if not wanted:
        return
    db.session.flush()
    for category in Category.live().filter(Category.name.in_(wanted)).all():
        category.product_count = _live_product_count(category.name)


def list_categories(
    *,
    include_inactive: bool = True,
    search: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[Category], int]:
    query = Category.live()
    if not include_inactive:
        query = query.filter(Category.status == "active")
    if search:
        query = query.filter(Category.name.ilike(f"%{search.strip()}%"))

    total = query.count()
    query = query.order_by(Category.name.asc(), Category.id.asc()).offset(offset)
    if limit:
        query = query.limit(limit)
    return query.all(), total


def get_category(category_id: str) -> Category:
    category = Category.live().filter(Category.id == category_id).first()
    if not category:
        raise NotFoundError(f"Category {category_id} not found")
    return category


def create_category(*, patch: dict) -> Category:
    name = (patch.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")

    category = Category(
        name=name,
        description=patch.get("description"),
        status=patch.get("status") or "active",
    )
    db.session.add(category)
    db.session.flush()
    category.product_count = _live_product_count(name)
    db.session.commit()
    return category


def update_category(*, category_id: str, patch: dict) -> Category:
    category = get_category(category_id)

    for k, v in patch.items():
        if k not in CATEGORY_MUTABLE_FIELDS:
            continue
        if k == "name" and not (v or "").strip():
            raise ValidationError("name cannot be blank")
        setattr(category, k, v)

    db.session.flush()
    category.product_count = _live_product_count(category.name)
    category.updated_at = utcnow()
    db.session.commit()
    return category
