# Overview: Flask API routes for registration, login and sessions.

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..errors import DomainError
from ..services import access_service, auth_service, session_service
from ..decorators import require_auth
from .responses import domain_error, unexpected_error


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


@auth_bp.post("/register")
def register_route():
    """
    Self-registration.

    Accounts wait for admin approval unless the role is roasteryOwner;
    pending accounts cannot log in.
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.register_user(
            data.get("username"),
            data.get("password"),
            data.get("role"),
        )
        return jsonify({
            "user": user.to_dict(),
            "message": "Registration pending approval" if user.is_pending_approval else "Registration successful",
        }), 201
    except DomainError as e:
        return domain_error(e)
    except Exception:
        return unexpected_error("Failed to register user")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    The token goes in the Authorization header of later requests.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "ValidationError", "message": "username and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            return jsonify({"error": "Unauthorized", "message": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "user": user.to_dict(),
            "capabilities": sorted(access_service.get_user_capabilities(user)),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "InternalError", "message": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    try:
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        if not session_service.revoke_session(token, reason="User logout"):
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "InternalError", "message": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user with effective capabilities and visible shops."""
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "capabilities": sorted(g.capabilities),
        "shops": [shop.to_dict() for shop in access_service.get_user_shops(user)],
    }), 200
