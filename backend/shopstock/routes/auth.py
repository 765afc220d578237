# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Self-registration creates a "user"-role account and logs it in
- Login by username or email + password; accounts without a password
  hash (external identity provider) cannot log in here
- Session tokens are returned once and validated per request
"""

from flask import Blueprint, request, jsonify, current_app

from ..errors import ShopError
from ..services import auth_service
from ..services import session_service
from ..services import permission_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, session, token: str, message: str) -> dict:
    return {
        "user": user.to_dict(),
        "permissions": permission_service.get_effective_permissions(user).to_dict(),
        "token": token,
        "session": session.to_dict(),
        "message": message,
    }


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


@auth_bp.post("/register")
def register_route():
    """
    Create a user-role account and return a session token.

    Request body: {"username", "email", "password"}
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        email = data.get("email")
        password = data.get("password")

        if not all([username, email, password]):
            return jsonify({"error": "username, email and password required"}), 400

        user = auth_service.create_user(username=username, email=email, password=password)

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr
        permission_service.log_security_event(
            user_id=user.id,
            event_type="USER_REGISTERED",
            success=True,
            resource=request.path,
            action="POST",
            ip_address=ip_address,
            user_agent=user_agent,
        )

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        return jsonify(_session_payload(user, session, token, "Registration successful")), 201

    except ShopError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        identifier = data.get("username") or data.get("email") or data.get("identifier")
        password = data.get("password")

        if not all([identifier, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        user = auth_service.authenticate(identifier, password)

        if not user:
            permission_service.log_security_event(
                user_id=None,
                event_type="LOGIN_FAILED",
                success=False,
                resource=request.path,
                action="POST",
                reason=f"Invalid credentials for {str(identifier)[:64]}",
                ip_address=ip_address,
                user_agent=user_agent,
            )
            return jsonify({"error": "Invalid credentials"}), 401

        permission_service.log_security_event(
            user_id=user.id,
            event_type="LOGIN_SUCCESS",
            success=True,
            resource=request.path,
            action="POST",
            ip_address=ip_address,
            user_agent=user_agent,
        )

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        return jsonify(_session_payload(user, session, token, "Login successful")), 200

    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    try:
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        if not session_service.revoke_session(token, reason="User logout"):
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({"message": "Logout successful"}), 200

    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/validate")
def validate_route():
    """
    Validate session token and return user info with effective permissions.

    WHY: Frontend can check if token is still valid and get permissions
    for UI filtering (hiding nav items, buttons, etc.)
    """
    try:
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authorization header required"}), 401

        context = session_service.validate_session(token)
        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        return jsonify({
            "user": context.user.to_dict(),
            "permissions": permission_service.get_effective_permissions(context.user).to_dict(),
            "message": "Token valid",
        }), 200

    except Exception:
        current_app.logger.exception("Failed to validate session")
        return jsonify({"error": "Internal server error"}), 500
