# Overview: Flask API routes for notifications; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_admin
from ..services import notification_service
from ..validation import NotFoundError, parse_bool_arg


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.get("")
@require_auth
def list_notifications_route():
    """
    Query parameters:
    - include_archived: default false
    - unread: only unread
    - type: stock | order
    - priority: low | medium | high
    - limit
    """
    notifications = notification_service.list_notifications(
        include_archived=parse_bool_arg(request.args.get("include_archived")),
        unread_only=parse_bool_arg(request.args.get("unread")),
        type=request.args.get("type"),
        priority=request.args.get("priority"),
        limit=request.args.get("limit", type=int),
    )
    return jsonify({
        "items": [n.to_dict() for n in notifications],
        "count": len(notifications),
        "unread": notification_service.unread_count(),
    })


@notifications_bp.post("/<notification_id>/read")
@require_auth
def mark_read_route(notification_id: str):
    try:
        return jsonify(notification_service.mark_read(notification_id).to_dict())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@notifications_bp.post("/read-all")
@require_auth
def mark_all_read_route():
    return jsonify({"updated": notification_service.mark_all_read()})


@notifications_bp.post("/<notification_id>/archive")
@require_auth
def archive_route(notification_id: str):
    try:
        return jsonify(notification_service.archive_notification(notification_id).to_dict())
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@notifications_bp.post("/run-checks")
@require_auth
@require_admin
def run_checks_route():
    try:
        return jsonify(notification_service.run_automated_checks())
    except Exception:
        current_app.logger.exception("Failed to run notification checks")
        return jsonify({"error": "Internal server error"}), 500
