# Overview: Flask API routes for the dashboard; returns aggregated JSON totals.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..services import dashboard_service


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("")
@require_auth
def dashboard_summary_route():
    """
    Query parameters:
    - year: year of the monthly breakdown (default: current year)
    """
    try:
        return jsonify(dashboard_service.get_dashboard_summary(year=request.args.get("year", type=int)))
    except Exception:
        current_app.logger.exception("Failed to build dashboard summary")
        return jsonify({"error": "Internal server error"}), 500


@dashboard_bp.get("/low-stock")
@require_auth
def low_stock_route():
    items = dashboard_service.get_low_stock_products()
    return jsonify({"items": items, "count": len(items)})


@dashboard_bp.get("/insufficient-stock-orders")
@require_auth
def insufficient_stock_orders_route():
    items = dashboard_service.get_insufficient_stock_orders()
    return jsonify({"items": items, "count": len(items)})
