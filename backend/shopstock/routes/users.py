# Overview: Flask API routes for users, roles and permissions; parses input and returns JSON responses.

"""
User management routes.

- /me and /me/display-name: any authenticated user, own account only
- Listing users, changing roles and permissions: admin only

Role changes enforce the self-demotion and last-admin guards and then
reset the user's permissions to the new role's defaults.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_admin, require_auth
from ..errors import ShopError
from ..permissions import get_permission_catalog
from ..services import permission_service, user_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _error_response(e: ShopError):
    return jsonify(e.to_dict()), e.status_code


@users_bp.get("/me")
@require_auth
def me_route():
    return jsonify(g.current_user.to_dict()), 200


@users_bp.route("/me/display-name", methods=["PUT", "POST"])
@require_auth
def update_display_name_route():
    """Body: {"username": "..."} (display_name is accepted as an alias)."""
    try:
        data = request.get_json(silent=True) or {}
        new_name = data.get("username", data.get("display_name"))
        user = user_service.update_display_name(g.current_user, new_name)
        return jsonify(user.to_dict()), 200
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update display name")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.get("")
@require_auth
@require_admin
def list_users_route():
    try:
        return jsonify([u.to_dict() for u in user_service.list_users()]), 200
    except Exception:
        current_app.logger.exception("Failed to list users")
        return jsonify({"error": "Internal server error"}), 500


@users_bp.get("/permissions")
@require_auth
@require_admin
def permission_catalog_route():
    """Every permission flag with its description and default roles."""
    return jsonify(get_permission_catalog()), 200


@users_bp.put("/<int:user_id>/role")
@require_auth
@require_admin
def change_role_route(user_id: int):
    """
    Body: {"role": "admin|manager|user"}

    Response includes permissions_reset: false when the role changed but
    the role default permissions could not be applied.
    """
    try:
        data = request.get_json(silent=True) or {}
        user, permissions_reset = permission_service.change_role(
            user_id, data.get("role"), g.current_user,
        )
        return jsonify({
            "message": "Role updated successfully",
            "user": user.to_dict(),
            "permissions_reset": permissions_reset,
        }), 200
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to change role for user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500


@users_bp.put("/<int:user_id>/permissions")
@require_auth
@require_admin
def set_permissions_route(user_id: int):
    """
    Body: {"permissions": {"can_edit_inventory": true, ...}} or {"reset": true}
    """
    try:
        data = request.get_json(silent=True) or {}
        reset = data.get("reset") is True
        flags = data.get("permissions", {} if reset else None)
        if flags is None:
            return jsonify({"error": "permissions object is required"}), 400
        user = permission_service.set_permissions(user_id, flags, g.current_user, reset=reset)
        return jsonify({
            "message": "Permissions updated successfully",
            "user": user.to_dict(),
        }), 200
    except ShopError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to set permissions for user %s", user_id)
        return jsonify({"error": "Internal server error"}), 500
