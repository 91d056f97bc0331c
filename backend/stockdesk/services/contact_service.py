# Overview: Service-layer operations for clients and suppliers; encapsulates business logic and database work.

"""
Contact Service

Clients and suppliers share one set of operations; `kind` selects the
table ("clients" or "suppliers"). Names are denormalized onto documents at
transaction time, so editing a contact never rewrites existing orders,
entries or exits.
"""

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Client, Supplier
from ..validation import NotFoundError, ValidationError


CONTACT_MODELS = {
    "clients": Client,
    "suppliers": Supplier,
}

CONTACT_MUTABLE_FIELDS = {"name", "email", "phone", "address", "tax_id", "notes", "status"}
SUPPLIER_MUTABLE_FIELDS = CONTACT_MUTABLE_FIELDS | {"payment_terms"}


def contact_model(kind: str):
    try:
        return CONTACT_MODELS[kind]
    except KeyError:
        raise ValidationError(f"Unknown contact type: {kind}")


def _mutable_fields(kind: str) -> set[str]:
    return SUPPLIER_MUTABLE_FIELDS if kind == "suppliers" else CONTACT_MUTABLE_FIELDS


def _label(kind: str) -> str:
    return "Supplier" if kind == "suppliers" else "Client"


def list_contacts(
    kind: str,
    *,
    include_inactive: bool = True,
    search: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list, int]:
    model = contact_model(kind)
    query = model.live()
    if not include_inactive:
        query = query.filter(model.status == "active")
    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(
            model.name.ilike(term),
            model.email.ilike(term),
            model.tax_id.ilike(term),
        ))

    total = query.count()
    query = query.order_by(model.name.asc(), model.id.asc()).offset(offset)
    if limit:
        query = query.limit(limit)
    return query.all(), total


def get_contact(kind: str, contact_id: str):
    model = contact_model(kind)
    contact = model.live().filter(model.id == contact_id).first()
    if not contact:
        raise NotFoundError(f"{_label(kind)} {contact_id} not found")
    return contact


def create_contact(kind: str, *, patch: dict):
    model = contact_model(kind)
    name = (patch.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")

    contact = model(status="active")
    for k, v in patch.items():
        if k in _mutable_fields(kind):
            setattr(contact, k, v)
    contact.name = name

    db.session.add(contact)
    db.session.commit()
    return contact


def update_contact(kind: str, *, contact_id: str, patch: dict):
    contact = get_contact(kind, contact_id)

    for k, v in patch.items():
        if k not in _mutable_fields(kind):
            continue
        if k == "name" and not (v or "").strip():
            raise ValidationError("name cannot be blank")
        setattr(contact, k, v)

    db.session.commit()
    return contact


def resolve_contact_name(kind: str, contact_id: str | None, fallback: str | None = None) -> str:
    """
    Name to denormalize onto a document.

    A live contact's current name wins; otherwise the caller-supplied name
    is kept (e.g. a client deleted after the order was taken).
    """
    if contact_id:
        model = contact_model(kind)
        name = (
            db.session.query(model.name)
            .filter(model.id == contact_id, model.deleted_at.is_(None))
            .scalar()
        )
        if name:
            return name
        if not fallback:
            raise NotFoundError(f"{_label(kind)} {contact_id} not found")
    return (fallback or "").strip()
