# Overview: Request decorators for API routes (authentication, admin-only access).

from functools import wraps
from flask import request, jsonify, g

from .services import session_service
from .services.auth_service import UserSuspendedError


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require a valid session token (Authorization: Bearer <token>).

    Sets g.current_user.

    Returns 401 for a missing, invalid or expired token, and 403
    {"error": "Account suspended", "message": <reason>} for a suspended
    account. The client must sign out on 403; retrying will not help.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        try:
            user = session_service.validate_session(token)
        except UserSuspendedError as e:
            return jsonify({"error": "Account suspended", "message": e.reason}), 403

        if not user:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require the authenticated user to be an admin. Use after @require_auth."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if not g.current_user.is_admin:
            return jsonify({"error": "Admin access required"}), 403
        return f(*args, **kwargs)
    return decorated_function
