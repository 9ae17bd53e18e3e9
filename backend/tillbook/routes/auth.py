# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            current_app.logger.warning("Failed login for %s from %s", username, request.remote_addr)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "user": user.to_dict(),
            "permissions": sorted(permission_service.get_user_permissions(user.id)),
            "token": token,
            "session": session.to_dict(),
            "store_id": session.store_id,
        }), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers["Authorization"].split(" ", 1)[1]
    session_service.revoke_session(token)
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.current_user.to_dict(),
        "permissions": sorted(permission_service.get_user_permissions(g.current_user.id)),
        "store_id": g.store_id,
    }), 200
