# Overview: Service-layer operations for expenses; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Expense, ExpenseItem
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
from .line_items import parse_expense_items, replace_items


def list_expenses(
    *,
    supplier_id: str | None = None,
    date_from=None,
    date_to=None,
    search: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[Expense], int]:
    query = Expense.live()
    if supplier_id:
        query = query.filter(Expense.supplier_id == supplier_id)
    start = parse_optional_date(date_from, "date_from")
    end = parse_optional_date(date_to, "date_to")
    if start:
        query = query.filter(Expense.date >= start)
    if end:
        query = query.filter(Expense.date <= end)
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(Expense.number.ilike(term), Expense.supplier_name.ilike(term)))

    total = query.count()
    query = query.order_by(Expense.date.desc(), Expense.number.desc()).offset(offset)
    if limit:
        query = query.limit(limit)
    return query.all(), total


def get_expense(expense_id: str) -> Expense:
    expense = Expense.live().filter(Expense.id == expense_id).first()
    if not expense:
        raise NotFoundError(f"Expense {expense_id} not found")
    return expense


def create_expense(
    *,
    date,
    items,
    supplier_id: str | None = None,
    supplier_name: str | None = None,
    discount=None,
    notes: str | None = None,
) -> Expense:
    """Record a supplier expense. No stock effect."""
    expense_date = parse_required_date(date)
    header_discount = parse_discount_percent(discount, "discount")
    parsed_items = parse_expense_items(items)
    resolved_name = resolve_contact_name("suppliers", supplier_id, supplier_name)

    def _create():
        with atomic():
            expense = Expense(
                number=next_document_number("expenses", expense_date.year),
                supplier_id=supplier_id,
                supplier_name=resolved_name,
                date=expense_date,
                discount=header_discount,
                notes=optional_text(notes),
            )
            expense.items = [ExpenseItem(**values) for values in parsed_items]
            db.session.add(expense)
        return expense

    return run_with_retry(_create)


def update_expense(*, expense_id: str, patch: dict) -> Expense:
    expense = get_expense(expense_id)

    if "number" in patch:
        raise ValidationError("number cannot be edited")

    changes: dict = {}
    if "supplier_id" in patch or "supplier_name" in patch:
        supplier_id = patch.get("supplier_id", expense.supplier_id)
        changes["supplier_id"] = supplier_id
        changes["supplier_name"] = resolve_contact_name("suppliers", supplier_id, patch.get("supplier_name"))
    if "date" in patch:
        changes["date"] = parse_required_date(patch["date"])
    if "discount" in patch:
        changes["discount"] = parse_discount_percent(patch["discount"], "discount")
    if "notes" in patch:
        changes["notes"] = optional_text(patch["notes"])

    parsed_items = parse_expense_items(patch["items"]) if "items" in patch else None

    with atomic():
        for k, v in changes.items():
            setattr(expense, k, v)
        if parsed_items is not None:
            replace_items(expense, ExpenseItem, parsed_items)
    return expense
