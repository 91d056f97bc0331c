# Overview: Flask API routes for client and supplier operations; parses input and returns JSON responses.

"""
Client and Supplier Routes

Both resources share one set of handlers; make_contacts_blueprint() binds
them to a table ("clients" or "suppliers").
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..services import contact_service
from ..services.recycle_bin_service import DependencyError, soft_delete_record
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    clamp_paging,
    parse_bool_arg,
    ValidationError,
    NotFoundError,
)

CONTACT_FIELDS = {"name", "email", "phone", "address", "tax_id", "notes", "status"}

CONTACT_POLICIES = {
    "clients": ModelValidationPolicy(
        writable_fields=CONTACT_FIELDS,
        required_on_create={"name"},
    ),
    "suppliers": ModelValidationPolicy(
        writable_fields=CONTACT_FIELDS | {"payment_terms"},
        required_on_create={"name"},
    ),
}


def make_contacts_blueprint(kind: str) -> Blueprint:
    bp = Blueprint(kind, __name__, url_prefix=f"/api/{kind}")
    model = contact_service.contact_model(kind)
    policy = CONTACT_POLICIES[kind]
    label = kind[:-1]

    @bp.get("")
    @require_auth
    def list_route():
        """
        Query parameters:
        - include_inactive: default true
        - search: name, email or tax id
        - limit / offset
        """
        limit, offset = clamp_paging(
            request.args.get("limit", type=int),
            request.args.get("offset", type=int),
        )
        contacts, total = contact_service.list_contacts(
            kind,
            include_inactive=parse_bool_arg(request.args.get("include_inactive"), default=True),
            search=request.args.get("search"),
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "items": [c.to_dict() for c in contacts],
            "count": total,
            "limit": limit,
            "offset": offset,
        })

    @bp.get("/<contact_id>")
    @require_auth
    def get_route(contact_id: str):
        try:
            return jsonify(contact_service.get_contact(kind, contact_id).to_dict())
        except NotFoundError as e:
            return jsonify({"error": str(e)}), 404

    @bp.post("")
    @require_auth
    def create_route():
        payload = request.get_json(silent=True) or {}
        try:
            patch = validate_payload(model=model, payload=payload, policy=policy, partial=False)
            contact = contact_service.create_contact(kind, patch=patch)
            return jsonify(contact.to_dict()), 201
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        except Exception:
            current_app.logger.exception("Failed to create %s", label)
            return jsonify({"error": "Internal server error"}), 500

    @bp.put("/<contact_id>")
    @require_auth
    def update_route(contact_id: str):
        payload = request.get_json(silent=True) or {}
        try:
            patch = validate_payload(model=model, payload=payload, policy=policy, partial=True)
            contact = contact_service.update_contact(kind, contact_id=contact_id, patch=patch)
            return jsonify(contact.to_dict()), 200
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        except NotFoundError as e:
            return jsonify({"error": str(e)}), 404
        except Exception:
            current_app.logger.exception("Failed to update %s", label)
            return jsonify({"error": "Internal server error"}), 500

    @bp.delete("/<contact_id>")
    @require_auth
    def delete_route(contact_id: str):
        try:
            soft_delete_record(kind, contact_id)
            return jsonify({"ok": True}), 200
        except NotFoundError as e:
            return jsonify({"error": str(e)}), 404
        except DependencyError as e:
            return jsonify({"error": str(e), "dependencies": e.dependencies}), 409
        except Exception:
            current_app.logger.exception("Failed to delete %s", label)
            return jsonify({"error": "Internal server error"}), 500

    return bp


clients_bp = make_contacts_blueprint("clients")
suppliers_bp = make_contacts_blueprint("suppliers")
