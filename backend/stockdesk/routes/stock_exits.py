# Overview: Flask API routes for stock exit operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..services import stock_exit_service
from ..services.recycle_bin_service import DependencyError, soft_delete_record
from ..services.stock_service import StockAdjustmentError
from ..validation import clamp_paging, ValidationError, NotFoundError


stock_exits_bp = Blueprint("stock_exits", __name__, url_prefix="/api/stock-exits")


@stock_exits_bp.get("")
@require_auth
def list_stock_exits_route():
    limit, offset = clamp_paging(
        request.args.get("limit", type=int),
        request.args.get("offset", type=int),
    )
    try:
        exits, total = stock_exit_service.list_stock_exits(
            client_id=request.args.get("client_id"),
            from_order_id=request.args.get("from_order_id"),
            date_from=request.args.get("date_from"),
            date_to=request.args.get("date_to"),
            search=request.args.get("search"),
            limit=limit,
            offset=offset,
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({
        "items": [e.to_dict() for e in exits],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@stock_exits_bp.get("/<exit_id>")
@require_auth
def get_stock_exit_route(exit_id: str):
    try:
        return jsonify(stock_exit_service.get_stock_exit(exit_id).to_dict())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@stock_exits_bp.post("")
@require_auth
def create_stock_exit_route():
    data = request.get_json(silent=True) or {}

    try:
        stock_exit = stock_exit_service.create_stock_exit(
            client_id=data.get("client_id"),
            client_name=data.get("client_name"),
            date=data.get("date"),
            invoice_number=data.get("invoice_number"),
            discount=data.get("discount"),
            notes=data.get("notes"),
            items=data.get("items"),
        )
        return jsonify(stock_exit.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except StockAdjustmentError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create stock exit")
        return jsonify({"error": "Internal server error"}), 500


@stock_exits_bp.put("/<exit_id>")
@require_auth
def update_stock_exit_route(exit_id: str):
    data = request.get_json(silent=True) or {}

    try:
        stock_exit = stock_exit_service.update_stock_exit(exit_id=exit_id, patch=data)
        return jsonify(stock_exit.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except StockAdjustmentError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update stock exit")
        return jsonify({"error": "Internal server error"}), 500


@stock_exits_bp.delete("/<exit_id>")
@require_auth
def delete_stock_exit_route(exit_id: str):
    """Soft delete. Exits created from an order answer 409."""
    try:
        soft_delete_record("stock_exits", exit_id)
        return jsonify({"ok": True}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DependencyError as e:
        return jsonify({"error": str(e), "dependencies": e.dependencies}), 409
    except Exception:
        current_app.logger.exception("Failed to delete stock exit")
        return jsonify({"error": "Internal server error"}), 500
