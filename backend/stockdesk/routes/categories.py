# Overview: Flask API routes for category operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..models import Category
from ..services import category_service
from ..services.recycle_bin_service import DependencyError, soft_delete_record
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    clamp_paging,
    parse_bool_arg,
    ValidationError,
    NotFoundError,
)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "status"},
    required_on_create={"name"},
    ignored_on_update={"product_count"},
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
@require_auth
def list_categories_route():
    limit, offset = clamp_paging(
        request.args.get("limit", type=int),
        request.args.get("offset", type=int),
    )
    categories, total = category_service.list_categories(
        include_inactive=parse_bool_arg(request.args.get("include_inactive"), default=True),
        search=request.args.get("search"),
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "items": [c.to_dict() for c in categories],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@categories_bp.get("/<category_id>")
@require_auth
def get_category_route(category_id: str):
    try:
        return jsonify(category_service.get_category(category_id).to_dict())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@categories_bp.post("")
@require_auth
def create_category_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        category = category_service.create_category(patch=patch)
        return jsonify(category.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.put("/<category_id>")
@require_auth
def update_category_route(category_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
        category = category_service.update_category(category_id=category_id, patch=patch)
        return jsonify(category.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update category")
        return jsonify({"error": "Internal server error"}), 500


@categories_bp.delete("/<category_id>")
@require_auth
def delete_category_route(category_id: str):
    try:
        soft_delete_record("categories", category_id)
        return jsonify({"ok": True}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DependencyError as e:
        return jsonify({"error": str(e), "dependencies": e.dependencies}), 409
    except Exception:
        current_app.logger.exception("Failed to delete category")
        return jsonify({"error": "Internal server error"}), 500
