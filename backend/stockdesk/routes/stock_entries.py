# Overview: Flask API routes for stock entry operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..services import stock_entry_service
from ..services.recycle_bin_service import soft_delete_record
from ..services.stock_service import StockAdjustmentError
from ..validation import clamp_paging, ValidationError, NotFoundError


stock_entries_bp = Blueprint("stock_entries", __name__, url_prefix="/api/stock-entries")


@stock_entries_bp.get("")
@require_auth
def list_stock_entries_route():
    limit, offset = clamp_paging(
        request.args.get("limit", type=int),
        request.args.get("offset", type=int),
    )
    try:
        entries, total = stock_entry_service.list_stock_entries(
            supplier_id=request.args.get("supplier_id"),
            date_from=request.args.get("date_from"),
            date_to=request.args.get("date_to"),
            search=request.args.get("search"),
            limit=limit,
            offset=offset,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "items": [e.to_dict() for e in entries],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@stock_entries_bp.get("/<entry_id>")
@require_auth
def get_stock_entry_route(entry_id: str):
    try:
        return jsonify(stock_entry_service.get_stock_entry(entry_id).to_dict())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@stock_entries_bp.post("")
@require_auth
def create_stock_entry_route():
    """
    Request body:
    {
        "supplier_id": "...",       // or supplier_name
        "date": "2025-03-01",       // required
        "invoice_number": "...",
        "notes": "...",
        "items": [{"product_id": "...", "quantity": 10, "purchase_price_cents": 450}]
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        entry = stock_entry_service.create_stock_entry(
            supplier_id=data.get("supplier_id"),
            supplier_name=data.get("supplier_name"),
            date=data.get("date"),
            invoice_number=data.get("invoice_number"),
            discount=data.get("discount"),
            notes=data.get("notes"),
            items=data.get("items"),
        )
        return jsonify(entry.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except StockAdjustmentError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create stock entry")
        return jsonify({"error": "Internal server error"}), 500


@stock_entries_bp.put("/<entry_id>")
@require_auth
def update_stock_entry_route(entry_id: str):
    data = request.get_json(silent=True) or {}

    try:
        entry = stock_entry_service.update_stock_entry(entry_id=entry_id, patch=data)
        return jsonify(entry.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except StockAdjustmentError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update stock entry")
        return jsonify({"error": "Internal server error"}), 500


@stock_entries_bp.delete("/<entry_id>")
@require_auth
def delete_stock_entry_route(entry_id: str):
    try:
        soft_delete_record("stock_entries", entry_id)
        return jsonify({"ok": True}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete stock entry")
        return jsonify({"error": "Internal server error"}), 500
