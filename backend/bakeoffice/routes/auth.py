# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/bakeoffice/routes/auth.py
"""
Authentication API routes

- Login returns a bearer token; only its hash is stored
- Logout revokes the presented token
- /me lists the restaurants the user belongs to and the role held in each
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..services import auth_service, permission_service, session_service, tenant_service
from .responses import json_body, server_error


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Request body: {"email": "...", "password": "..."}

    Returns:
        200: {token, user, restaurants}
        400: Missing credentials
        401: Invalid credentials
    """
    try:
        data = json_body()
        email = data.get("email")
        password = data.get("password")

        if not all([email, password]):
            return jsonify({"error": "email and password required"}), 400

        user = auth_service.authenticate(email, password)

        if not user:
            permission_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                reason=f"Invalid credentials for {str(email)[:255]}",
            )
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        permission_service.log_security_event(
            user_id=user.id,
            event_type="LOGIN_SUCCESS",
            success=True,
        )

        return jsonify({
            "token": token,
            "expiresAt": session.expires_at.isoformat() + "Z",
            "user": user.to_dict(),
            "restaurants": [m.to_dict() for m in tenant_service.get_user_restaurants(user.id)],
        }), 200

    except Exception:
        return server_error("Login failed")


@auth_bp.post("/logout")
@require_auth
def logout_route():
    try:
        session_service.revoke_session(g.token)
        permission_service.log_security_event(
            user_id=g.current_user.id,
            event_type="LOGOUT",
            success=True,
        )
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        return server_error("Logout failed")


@auth_bp.get("/me")
@require_auth
def me_route():
    try:
        user = g.current_user
        return jsonify({
            "user": user.to_dict(),
            "restaurants": [m.to_dict() for m in tenant_service.get_user_restaurants(user.id)],
        }), 200
    except Exception:
        return server_error("Failed to load current user")
