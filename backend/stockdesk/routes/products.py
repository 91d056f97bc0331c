# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stockdesk/routes/products.py
"""
Product management routes.

All routes require authentication. DELETE moves the product to the recycle
bin; current_stock is accepted on create only.
"""
from flask import Blueprint, request, jsonify, current_app
from ..services import product_service
from ..services.recycle_bin_service import DependencyError, soft_delete_record
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    clamp_paging,
    parse_bool_arg,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "code", "name", "description", "category", "image",
        "purchase_price_cents", "sale_price_cents",
        "current_stock", "min_stock", "status",
    },
    required_on_create={"code", "name"},
    ignored_on_update={"current_stock"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    Query params:
    - search: matches name or code
    - category: exact category name
    - include_inactive: default true
    - low_stock: only products below their minimum
    - limit / offset
    """
    limit, offset = clamp_paging(
        request.args.get("limit", type=int),
        request.args.get("offset", type=int),
    )
    products, total = product_service.list_products(
        include_inactive=parse_bool_arg(request.args.get("include_inactive"), default=True),
        search=request.args.get("search"),
        category=request.args.get("category"),
        low_stock_only=parse_bool_arg(request.args.get("low_stock")),
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "items": [p.to_dict() for p in products],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@products_bp.get("/<product_id>")
@require_auth
def get_product_route(product_id: str):
    try:
        return jsonify(product_service.get_product(product_id).to_dict())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        product = product_service.create_product(patch=patch)
        return jsonify(product.to_dict()), 201
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<product_id>")
@require_auth
def update_product_route(product_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        product = product_service.update_product(product_id=product_id, patch=patch)
        return jsonify(product.to_dict()), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<product_id>")
@require_auth
def delete_product_route(product_id: str):
    try:
        soft_delete_record("products", product_id)
        return jsonify({"ok": True}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DependencyError as e:
        return jsonify({"error": str(e), "dependencies": e.dependencies}), 409
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500
