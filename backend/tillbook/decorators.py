# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import session_service, permission_service
from .services.permission_service import PermissionDeniedError


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require a valid bearer token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.store_id: The store captured at login (None for back-office users)
    - g.session_context: The full SessionContext object
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.store_id = context.store_id
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a specific permission (apply after @require_auth)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            try:
                permission_service.require_permission(
                    user_id=g.current_user.id,
                    permission_code=permission_code,
                    resource=request.path,
                    ip_address=request.remote_addr,
                )
            except PermissionDeniedError as e:
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission_code,
                    "message": str(e)
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
