# Overview: Flask API routes for the recycle bin; parses input and returns JSON responses.

"""
Recycle Bin Routes

Listing and dependency checks are open to any signed-in user. Restore and
permanent delete require an admin.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth, require_admin
from ..services import recycle_bin_service
from ..services.recycle_bin_service import RecycleBinError
from ..validation import NotFoundError


recycle_bin_bp = Blueprint("recycle_bin", __name__, url_prefix="/api/recycle-bin")


@recycle_bin_bp.get("")
@require_auth
def list_deleted_route():
    """
    Query parameters:
    - table_type: restrict to one table (products, categories, clients,
      suppliers, orders, stock_entries, stock_exits, expenses)
    """
    try:
        records = recycle_bin_service.get_deleted_records(request.args.get("table_type"))
        return jsonify({"items": records, "count": len(records)})
    except RecycleBinError as e:
        return jsonify({"error": str(e)}), 400


@recycle_bin_bp.get("/<table_name>/<record_id>/dependencies")
@require_auth
def dependencies_route(table_name: str, record_id: str):
    """Whether a live record can be deleted, and what blocks it."""
    try:
        return jsonify(recycle_bin_service.check_dependencies(table_name, record_id)), 200
    except RecycleBinError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@recycle_bin_bp.post("/<table_name>/<record_id>/restore")
@require_auth
@require_admin
def restore_route(table_name: str, record_id: str):
    try:
        record = recycle_bin_service.restore_record(table_name, record_id)
        current_app.logger.info("Restore by user %s: %s %s", g.current_user.id, table_name, record_id)
        return jsonify(record.to_dict()), 200
    except RecycleBinError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to restore record")
        return jsonify({"error": "Internal server error"}), 500


@recycle_bin_bp.delete("/<table_name>/<record_id>")
@require_auth
@require_admin
def permanent_delete_route(table_name: str, record_id: str):
    try:
        recycle_bin_service.permanent_delete_record(table_name, record_id)
        current_app.logger.info("Permanent delete by user %s: %s %s", g.current_user.id, table_name, record_id)
        return jsonify({"ok": True}), 200
    except RecycleBinError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to permanently delete record")
        return jsonify({"error": "Internal server error"}), 500
