# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/salesflow/routes/auth.py
"""
Authentication API routes

Login issues an opaque bearer token; every portal route reads it from the
Authorization header. Accounts are created by administrators through the
CLI (flask users create), never by self-registration.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..decorators import require_auth
from ..errors import SalesFlowError, StorageFailure
from ..validation import require_json_object


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Request body:
        {"username": "...", "password": "..."}   (or "email" / "identifier")

    Returns user info and session token on success.
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        identifier = data.get("username") or data.get("email") or data.get("identifier")
        password = data.get("password")

        if not all([identifier, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(identifier, password)
        if not user:
            current_app.logger.info("Failed login for %s", identifier)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except StorageFailure as e:
        current_app.logger.exception("Failed to login user")
        return jsonify(e.to_dict()), e.status_code
    except SalesFlowError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the session token from the Authorization header."""
    try:
        token = request.headers["Authorization"].split(" ", 1)[1].strip()
        session_service.revoke_session(token, reason="User logout")
        return jsonify({"message": "Logout successful"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    principal = g.principal
    return jsonify({
        "user": g.current_user.to_dict(),
        "principal": {
            "id": principal.id,
            "email": principal.email,
            "name": principal.name,
            "role": principal.role,
        },
    }), 200
