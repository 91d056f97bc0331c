# Overview: Flask API routes for order operations; parses input and returns JSON responses.

"""
Order Routes

POST /api/orders/<id>/convert turns a pending order into a stock exit in
one transaction (number, exit, items, stock decrements, back-reference).
A second conversion of the same order answers 409.
"""

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..services import order_service
from ..services.document_service import DocumentSequenceError
from ..services.recycle_bin_service import DependencyError, soft_delete_record
from ..services.stock_service import StockAdjustmentError
from ..validation import (
    clamp_paging,
    parse_bool_arg,
    ValidationError,
    NotFoundError,
    ConflictError,
)


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
def list_orders_route():
    """
    Query parameters:
    - status: pending | cancelled
    - client_id
    - converted: true | false
    - search: number or client name
    - limit / offset
    """
    limit, offset = clamp_paging(
        request.args.get("limit", type=int),
        request.args.get("offset", type=int),
    )
    converted = request.args.get("converted")
    orders, total = order_service.list_orders(
        status=request.args.get("status"),
        client_id=request.args.get("client_id"),
        converted=None if converted is None else parse_bool_arg(converted),
        search=request.args.get("search"),
        limit=limit,
        offset=offset,
    )
    return jsonify({
        "items": [o.to_dict() for o in orders],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@orders_bp.get("/<order_id>")
@require_auth
def get_order_route(order_id: str):
    try:
        return jsonify(order_service.get_order(order_id).to_dict())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Request body:
    {
        "client_id": "...",              // or client_name
        "date": "2025-03-01",            // required
        "expected_delivery_date": "...", // optional
        "discount": 5,                   // header discount percent
        "notes": "...",
        "items": [{"product_id": "...", "quantity": 2, "sale_price_cents": 1000, "discount_percent": 0}]
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        order = order_service.create_order(
            client_id=data.get("client_id"),
            client_name=data.get("client_name"),
            date=data.get("date"),
            expected_delivery_date=data.get("expected_delivery_date"),
            discount=data.get("discount"),
            notes=data.get("notes"),
            items=data.get("items"),
        )
        return jsonify(order.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.put("/<order_id>")
@require_auth
def update_order_route(order_id: str):
    data = request.get_json(silent=True) or {}

    try:
        order = order_service.update_order(order_id=order_id, patch=data)
        return jsonify(order.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<order_id>/cancel")
@require_auth
def cancel_order_route(order_id: str):
    try:
        order = order_service.cancel_order(order_id)
        return jsonify(order.to_dict()), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<order_id>/convert")
@require_auth
def convert_order_route(order_id: str):
    """
    Request body (optional): {"invoice_number": "FT 2025/10"}

    Returns the created (or re-linked) stock exit.
    """
    data = request.get_json(silent=True) or {}

    try:
        stock_exit = order_service.convert_order_to_stock_exit(
            order_id, invoice_number=data.get("invoice_number")
        )
        return jsonify(stock_exit.to_dict()), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except StockAdjustmentError as e:
        return jsonify({"error": str(e)}), 409
    except DocumentSequenceError:
        current_app.logger.exception("Failed to allocate stock exit number")
        return jsonify({"error": "Could not allocate a document number"}), 500
    except Exception:
        current_app.logger.exception("Failed to convert order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<order_id>/duplicate")
@require_auth
def duplicate_order_route(order_id: str):
    """Copy the order into a new pending order with its own ENC number."""
    try:
        order = order_service.duplicate_order(order_id)
        return jsonify(order.to_dict()), 201
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DocumentSequenceError:
        current_app.logger.exception("Failed to allocate order number")
        return jsonify({"error": "Could not allocate a document number"}), 500
    except Exception:
        current_app.logger.exception("Failed to duplicate order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<order_id>")
@require_auth
def delete_order_route(order_id: str):
    try:
        soft_delete_record("orders", order_id)
        return jsonify({"ok": True}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DependencyError as e:
        return jsonify({"error": str(e), "dependencies": e.dependencies}), 409
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500
