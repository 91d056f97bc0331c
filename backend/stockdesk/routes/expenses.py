# Overview: Flask API routes for expense operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..services import expense_service
from ..services.recycle_bin_service import soft_delete_record
from ..validation import clamp_paging, ValidationError, NotFoundError


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
def list_expenses_route():
    limit, offset = clamp_paging(
        request.args.get("limit", type=int),
        request.args.get("offset", type=int),
    )
    try:
        expenses, total = expense_service.list_expenses(
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
        "items": [e.to_dict() for e in expenses],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@expenses_bp.get("/<expense_id>")
@require_auth
def get_expense_route(expense_id: str):
    try:
        return jsonify(expense_service.get_expense(expense_id).to_dict())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@expenses_bp.post("")
@require_auth
def create_expense_route():
    """
    Request body:
    {
        "supplier_id": "...",     // or supplier_name
        "date": "2025-03-01",     // required
        "discount": 0,
        "notes": "...",
        "items": [{"product_name": "Electricity", "quantity": 1, "unit_price_cents": 8990}]
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        expense = expense_service.create_expense(
            supplier_id=data.get("supplier_id"),
            supplier_name=data.get("supplier_name"),
            date=data.get("date"),
            discount=data.get("discount"),
            notes=data.get("notes"),
            items=data.get("items"),
        )
        return jsonify(expense.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to create expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.put("/<expense_id>")
@require_auth
def update_expense_route(expense_id: str):
    data = request.get_json(silent=True) or {}

    try:
        expense = expense_service.update_expense(expense_id=expense_id, patch=data)
        return jsonify(expense.to_dict()), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to update expense")
        return jsonify({"error": "Internal server error"}), 500


@expenses_bp.delete("/<expense_id>")
@require_auth
def delete_expense_route(expense_id: str):
    try:
        soft_delete_record("expenses", expense_id)
        return jsonify({"ok": True}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete expense")
        return jsonify({"error": "Internal server error"}), 500
